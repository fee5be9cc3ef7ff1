"""Utility modules for Storage Manager.

This package provides:
- hashing: Fast tree hashing for copy verification
- logging: Text/JSON log configuration for the CLI
- platform: User/home resolution and tool discovery
"""

from storage_manager.utils.hashing import fast_hash_file, hash_tree, tree_contains
from storage_manager.utils.logging import configure_logging, JsonFormatter
from storage_manager.utils.platform import resolve_user, resolve_home, supports_symlinks, tool_available

__all__ = [
    "fast_hash_file",
    "hash_tree",
    "tree_contains",
    "configure_logging",
    "JsonFormatter",
    "resolve_user",
    "resolve_home",
    "tool_available",
    "supports_symlinks",
]
