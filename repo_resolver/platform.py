"""Platform differences that matter to the resolver: paths, templates and external tools."""

import os
import platform
import re
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Dict, Any, Union

from git import Git
from git.exc import GitCommandError, GitCommandNotFound


class PlatformInfo:
    """The operating system the resolver runs on."""

    def __init__(self, system: Optional[str] = None):
        self.system = (system or platform.system()).lower()

    @property
    def is_windows(self) -> bool:
        return self.system == "windows"

    @property
    def is_macos(self) -> bool:
        return self.system == "darwin"


_platform_info: Optional[PlatformInfo] = None


def get_platform_info() -> PlatformInfo:
    global _platform_info
    if _platform_info is None:
        _platform_info = PlatformInfo()
    return _platform_info


def normalize_path(path: Union[str, Path]) -> Path:
    """Absolute, user-expanded, symlink-resolved version of ``path``."""
    if isinstance(path, str):
        path = Path(path)
    return path.expanduser().resolve()


def real_path(path: Union[str, Path]) -> str:
    """Resolve symlinks and return an absolute path string used as an identity key."""
    return os.path.realpath(os.path.abspath(os.path.expanduser(str(path))))


_TEMPLATE_VARIABLE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def replace_variables(template: str, variables: Dict[str, str]) -> str:
    """
    Substitute ``${name}`` placeholders in a path template.

    Unknown placeholders are left untouched so that a typo in a configured
    template is visible in the resulting path instead of silently vanishing.
    """
    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        return variables.get(name, match.group(0))

    return _TEMPLATE_VARIABLE.sub(substitute, template)


def get_template_variables() -> Dict[str, str]:
    """Variables every path template may reference."""
    return {
        'homePath': str(Path.home()),
        'separator': os.sep,
    }


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Configuration defaults, adjusted for the current platform.

    Returns:
        Mapping of Config field name to default value
    """
    platform_info = get_platform_info()

    defaults = {
        'data_dir': Path.home() / ".repo_resolver",
        'clone_path_template': "${homePath}${separator}src${separator}${folderRelativePath}",
        'scan_directory_template': "${homePath}",
        'crawl_max_depth': 10,
        'max_workers': 8,
        'log_level': "INFO",
    }

    if platform_info.is_windows:
        # No directory crawler on Windows, so discovery is off by default
        defaults.update({
            'scan_directory_template': "",
            'max_workers': 4,  # process creation is expensive on Windows
        })
    elif platform_info.is_macos:
        defaults.update({
            'crawl_max_depth': 8,  # ~/Library is deep and rarely holds clones
        })

    return defaults


def create_secure_temp_file(directory: Path, suffix: str = '.tmp') -> tuple[int, Path]:
    """
    Create a private temporary file next to the file it will replace.

    Returns:
        Tuple of (file_descriptor, file_path)
    """
    directory.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=str(directory), suffix=suffix)
    return fd, Path(temp_path)


def get_git_executable() -> str:
    return "git.exe" if get_platform_info().is_windows else "git"


def get_find_executable() -> Optional[str]:
    """
    Locate the ``find`` utility used by the repository crawler.

    Returns:
        Absolute path of ``find``, or None when the platform has no usable one
    """
    if get_platform_info().is_windows:
        # find.exe on Windows is an unrelated text-search tool
        return None
    return shutil.which("find")


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Check that git can be run.

    Returns:
        Tuple of (is_available, error_message)
    """
    try:
        Git().version()
        return True, None
    except GitCommandNotFound:
        return False, f"Git executable '{get_git_executable()}' not found"
    except GitCommandError as e:
        return False, f"Git command failed: {e.stderr.strip()}"
    except OSError as e:
        return False, f"Error checking Git availability: {e}"
