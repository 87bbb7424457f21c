"""MCP server exposing repository resolution over stdio."""

import logging
import sys
from dataclasses import replace
from typing import Optional
from urllib.parse import urlsplit

from mcp.server.fastmcp import FastMCP

from . import __version__
from .config import Config, load_configuration, validate_configuration
from .errors import error_handler
from .manager import ResolutionManager, get_resolution_manager
from .resolver import (
    InvalidLocatorError, PresetPrompter, RemoteLocator, ResolutionError, canonical_remote,
    create_resolution_outcome, parse_resource,
)
from .resolver.prompter import CHECKOUT_DETACHED_LABEL, FORCE_UPDATE_LABEL


CHECKOUT_STRATEGY_CHOICES = {
    "detached": CHECKOUT_DETACHED_LABEL,
    "reset": FORCE_UPDATE_LABEL,
}


def setup_logging(config: Config) -> None:
    """Setup logging configuration with structured logging."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    # stdout carries the MCP protocol, so everything is logged to stderr
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr
    )

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    logger = logging.getLogger('repo_resolver')
    logger.setLevel(getattr(logging, config.log_level))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False


def _locator_for(clone_url: str, revision: Optional[str]) -> RemoteLocator:
    """
    Build a locator from a clone URL or a ``git+<scheme>://...?<revision>`` resource.

    An explicit revision overrides the one carried in the resource query.

    Raises:
        InvalidLocatorError: if no canonical remote can be derived
    """
    if urlsplit(clone_url.strip()).scheme.startswith("git+"):
        locator = parse_resource(clone_url.strip())
        if revision:
            locator = replace(locator, revision=revision)
        return locator
    return RemoteLocator.from_clone_url(clone_url, revision)


def resolve_repository(manager: ResolutionManager, clone_url: str, revision: Optional[str] = None,
                       selected_path: Optional[str] = None,
                       checkout_strategy: Optional[str] = None) -> dict:
    """Resolve a clone URL to a local working copy, returning a response dict."""
    if checkout_strategy is not None and checkout_strategy not in CHECKOUT_STRATEGY_CHOICES:
        return error_handler.handle_validation_error(
            ValueError(f"Unknown checkout strategy {checkout_strategy!r}, expected one of "
                       f"{sorted(CHECKOUT_STRATEGY_CHOICES)}"),
            {"field": "checkout_strategy", "value": checkout_strategy},
        ).to_dict()

    try:
        locator = _locator_for(clone_url, revision)
    except InvalidLocatorError as e:
        return error_handler.handle_validation_error(e, {"field": "clone_url", "value": clone_url}).to_dict()

    prompter = PresetPrompter(
        selected_path=selected_path,
        choice=CHECKOUT_STRATEGY_CHOICES.get(checkout_strategy),
    )
    try:
        path, strategy = manager.resolve_locator(locator, prompter)
    except ResolutionError as e:
        return error_handler.handle_resolution_error(e, {"clone_url": clone_url}).to_dict()

    outcome = create_resolution_outcome(
        True, f"Resolved {locator} to {path}",
        path=path, strategy=strategy.value, locator=str(locator),
    )
    return error_handler.create_success_response("resolve_repository", outcome.to_dict())


def rebuild_index(manager: ResolutionManager, directory: Optional[str] = None) -> dict:
    """Rebuild the remote index synchronously and report its size."""
    if manager.index is None:
        return error_handler.handle_validation_error(ValueError("No remote index configured")).to_dict()

    if directory is None:
        scan_directory = manager.config.scan_directory
        if scan_directory is None:
            return error_handler.handle_validation_error(
                ValueError("Repository discovery is disabled and no directory was given"),
                {"field": "directory"},
            ).to_dict()
        directory = str(scan_directory)

    committed = manager.index.rebuild(directory)
    return error_handler.create_success_response("rebuild_index", {
        "directory": directory,
        "committed": committed,
        "repositories": len(manager.index.entries()),
    })


def lookup_remote(manager: ResolutionManager, clone_url: str) -> dict:
    """Look up the indexed path of a remote without touching the filesystem."""
    remote = canonical_remote(clone_url)
    if remote is None:
        return error_handler.handle_validation_error(
            ValueError(f"Invalid git clone URL {clone_url}"), {"field": "clone_url", "value": clone_url},
        ).to_dict()

    return error_handler.create_success_response("lookup_remote", {
        "remote": remote,
        "path": manager.lookup_remote(remote),
    })


def list_index(manager: ResolutionManager) -> dict:
    """Every canonical remote -> path entry of the default index."""
    entries = manager.index.entries() if manager.index is not None else {}
    return error_handler.create_success_response("list_index", {
        "entries": [{"remote": remote, "path": path} for remote, path in sorted(entries.items())],
    })


def register_tools(server: FastMCP, manager: ResolutionManager) -> None:
    """Register MCP tools with the server instance."""

    @server.tool(name="resolve_repository")
    def resolve_repository_tool(clone_url: str, revision: Optional[str] = None,
                                selected_path: Optional[str] = None,
                                checkout_strategy: Optional[str] = None) -> dict:
        """
        Get a local working copy of a git remote, at a revision if given.

        Reuses an existing clone when one is at (or can be fast-forwarded to)
        the revision, otherwise clones it or moves an existing clone onto the
        revision after stashing local changes.

        Args:
            clone_url: Any clone URL spelling, e.g. git@github.com:owner/repo.git, or a
                resource such as git+ssh://git@github.com/owner/repo.git?main
            revision: Branch, tag or full 40 character commit id
            selected_path: Working copy to use when several match; take it from
                the "choices" of a previous NO_SELECTION response
            checkout_strategy: "detached" or "reset" when the local branch has
                diverged from the remote and cannot be fast-forwarded

        Returns:
            Success response with the local path, or an error response
        """
        return resolve_repository(manager, clone_url, revision, selected_path, checkout_strategy)

    @server.tool(name="rebuild_index")
    def rebuild_index_tool(directory: Optional[str] = None) -> dict:
        """
        Crawl a directory for git repositories and rebuild the remote index.

        Args:
            directory: Root to crawl; the configured scan directory if omitted
        """
        return rebuild_index(manager, directory)

    @server.tool(name="lookup_remote")
    def lookup_remote_tool(clone_url: str) -> dict:
        """Return the indexed local path for a clone URL, if any."""
        return lookup_remote(manager, clone_url)

    @server.tool(name="list_index")
    def list_index_tool() -> dict:
        """List every remote in the index with its local path."""
        return list_index(manager)

    init_logger = logging.getLogger('repo_resolver.init')
    init_logger.info("MCP tools registered successfully")


def initialize_server() -> FastMCP:
    """Initialize MCP server with stdio transport."""
    try:
        server_config = load_configuration()
        validation_issues = validate_configuration(server_config)

        setup_logging(server_config)
        init_logger = logging.getLogger('repo_resolver.init')

        if validation_issues:
            for issue in validation_issues:
                if issue.startswith("ERROR:"):
                    init_logger.error(issue[7:])
                elif issue.startswith("WARNING:"):
                    init_logger.warning(issue[9:])

            error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
            if error_count > 0:
                init_logger.critical(f"Server startup failed due to {error_count} configuration error(s)")
                sys.exit(1)

        init_logger.info("Configuration loaded successfully")

        manager = get_resolution_manager(server_config)
        if server_config.auto_scan:
            manager.start_discovery()

        init_logger.info("Initializing MCP server with stdio transport")
        server = FastMCP("Repo Resolver", log_level=server_config.log_level)
        register_tools(server, manager)

        init_logger.info("Repo Resolver MCP server initialized successfully")
        return server

    except Exception as e:
        if 'init_logger' not in locals():
            logging.basicConfig(level=logging.ERROR)
            init_logger = logging.getLogger('repo_resolver.init')

        init_logger.critical(f"Server initialization failed: {e}", exc_info=True)
        raise


def main():
    """Main entry point for the Repo Resolver server with stdio transport."""
    startup_logger = None

    try:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            stream=sys.stderr
        )
        startup_logger = logging.getLogger('repo_resolver.startup')
        startup_logger.info(f"Repo Resolver MCP Server {__version__}")

        from .platform import validate_git_availability
        git_available, git_error = validate_git_availability()
        if not git_available:
            startup_logger.error(f"Git is required: {git_error}")
            sys.exit(1)

        server = initialize_server()

        startup_logger.info("Starting server with stdio transport")
        server.run(transport="stdio")

    except KeyboardInterrupt:
        if startup_logger:
            startup_logger.info("Server stopped by user (Ctrl+C)")
    except SystemExit:
        raise
    except Exception as e:
        if startup_logger:
            startup_logger.critical(f"Server failed to start: {e}", exc_info=True)
        else:
            print(f"CRITICAL: Server failed to start: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
