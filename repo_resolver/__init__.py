"""
Repo Resolver - turn a remote repository locator into a local working copy.

Given a clone URL and an optional revision, the resolver finds (or clones) a
local checkout of that remote and brings it to the requested revision. A
background crawler keeps an index of the repositories already on disk.
"""

__version__ = "1.0.0"
__author__ = "Repo Resolver Team"
__description__ = "Resolve remote git locators to local working copies"


def main():
    """Run the MCP server (requires the mcp package)."""
    from .server import main as server_main
    return server_main()


__all__ = ["main"]
