"""Environment and host capability helpers.

Handles:
- Resolution of the invoking user and home directory
- Discovery of the external tools the transports shell out to
- Symlink support detection
"""

import os
import shutil
import sys
from pathlib import Path
from typing import Mapping, Optional

from storage_manager.config import ConfigurationError


def resolve_user(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the current user name from the environment.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigurationError: If USER is unset or empty.
    """
    env = os.environ if environ is None else environ
    user = env.get("USER", "").strip()
    if not user:
        raise ConfigurationError("Cannot resolve the current user: USER is not set")
    if "/" in user:
        raise ConfigurationError(f"Invalid user name: {user!r}")
    return user


def resolve_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the current home directory from the environment.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigurationError: If HOME is unset, empty, or not absolute.
    """
    env = os.environ if environ is None else environ
    home = env.get("HOME", "").strip()
    if not home:
        raise ConfigurationError("Cannot find the home directory: HOME is not set")
    path = Path(home)
    if not path.is_absolute():
        raise ConfigurationError(f"HOME must be an absolute path, got {home!r}")
    return path


def tool_available(name: str) -> bool:
    """Check whether an executable is on PATH."""
    return shutil.which(name) is not None


def supports_symlinks() -> bool:
    """Symlink creation is only relied upon on POSIX hosts."""
    return hasattr(os, "symlink") and sys.platform != "win32"
