"""Configuration management for Repo Resolver."""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Tuple

from dotenv import load_dotenv

from .platform import get_platform_specific_defaults, get_template_variables, replace_variables

load_dotenv()  # Load .env file if it exists


FOLDER_RELATIVE_PATH_VARIABLE = "${folderRelativePath}"


@dataclass
class Config:
    """Configuration class for Repo Resolver with validation and defaults."""

    # Storage
    data_dir: Path = field(default_factory=lambda: Path.home() / ".repo_resolver")

    # Where fresh clones go; ${folderRelativePath} is the canonical remote
    clone_path_template: str = "${homePath}${separator}src${separator}${folderRelativePath}"

    # Discovery
    scan_directory_template: str = "${homePath}"
    crawl_max_depth: int = 10
    crawl_prune_names: Tuple[str, ...] = (".*", "node_modules")
    auto_scan: bool = True

    # Concurrency for remote probes and candidate classification
    max_workers: int = 8

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)

        from .platform import normalize_path
        self.data_dir = normalize_path(self.data_dir)

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")
        self.log_level = self.log_level.upper()

        if self.crawl_max_depth <= 0:
            raise ValueError("crawl_max_depth must be positive")

        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")

        if FOLDER_RELATIVE_PATH_VARIABLE not in self.clone_path_template:
            raise ValueError(
                f"clone_path_template must contain {FOLDER_RELATIVE_PATH_VARIABLE}: {self.clone_path_template}"
            )

        self.crawl_prune_names = tuple(self.crawl_prune_names)

    @property
    def index_path(self) -> Path:
        """File holding the persisted canonical remote -> path index."""
        return self.data_dir / "remote_index.json"

    @property
    def lock_dir(self) -> Path:
        """Directory for file locks."""
        return self.data_dir / "locks"

    @property
    def scan_directory(self) -> Optional[Path]:
        """Root directory crawled for repositories, or None when discovery is disabled."""
        if not self.scan_directory_template:
            return None
        expanded = replace_variables(self.scan_directory_template, get_template_variables())
        return Path(os.path.normpath(os.path.expanduser(expanded)))


def load_configuration() -> Config:
    """Load configuration from environment variables with platform-specific defaults."""
    try:
        platform_defaults = get_platform_specific_defaults()

        return Config(
            data_dir=Path(os.getenv("REPO_RESOLVER_DATA_DIR", str(platform_defaults['data_dir']))),
            clone_path_template=os.getenv("REPO_RESOLVER_CLONE_PATH", platform_defaults['clone_path_template']),
            scan_directory_template=os.getenv("REPO_RESOLVER_SCAN_DIRECTORY", platform_defaults['scan_directory_template']),
            crawl_max_depth=int(os.getenv("REPO_RESOLVER_CRAWL_MAX_DEPTH", str(platform_defaults['crawl_max_depth']))),
            max_workers=int(os.getenv("REPO_RESOLVER_MAX_WORKERS", str(platform_defaults['max_workers']))),
            log_level=os.getenv("REPO_RESOLVER_LOG_LEVEL", platform_defaults['log_level']).upper(),
            auto_scan=os.getenv("REPO_RESOLVER_AUTO_SCAN", "true").lower() == "true",
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    # Check data directory permissions
    try:
        config.data_dir.mkdir(parents=True, exist_ok=True)
        test_file = config.data_dir / ".test_write"
        test_file.write_text("test")
        test_file.unlink()
    except PermissionError:
        errors.append(f"ERROR: No write permission for data directory: {config.data_dir}")
    except OSError as e:
        errors.append(f"ERROR: Cannot access data directory {config.data_dir}: {e}")

    scan_directory = config.scan_directory
    if scan_directory is not None and not scan_directory.is_dir():
        errors.append(f"WARNING: Scan directory does not exist: {scan_directory}")

    if config.crawl_max_depth > 20:
        errors.append("WARNING: High crawl_max_depth may make discovery very slow")

    if errors:
        logging.getLogger('repo_resolver.config').debug(f"Configuration issues: {errors}")

    return errors
