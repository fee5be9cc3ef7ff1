"""Fast tree hashing used to verify mirror copies.

Uses xxhash for speed when available, falls back to md5.
Copies never delete extras, so verification checks that the destination
contains every source entry unchanged rather than strict equality.
"""

import hashlib
import os
from pathlib import Path
from typing import Dict, List

try:
    import xxhash
    XXHASH_AVAILABLE = True
except ImportError:
    XXHASH_AVAILABLE = False

# 1MB chunks; folders routinely hold multi-GB files
BUFFER_SIZE = 1024 * 1024


def _new_hasher():
    if XXHASH_AVAILABLE:
        return xxhash.xxh64()
    return hashlib.md5()


def fast_hash_file(file_path: Path) -> str:
    """Compute a non-cryptographic digest of a regular file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If path is not a regular file
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    if not file_path.is_file():
        raise ValueError(f"Not a file: {file_path}")

    hasher = _new_hasher()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(BUFFER_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def hash_tree(directory: Path) -> Dict[str, str]:
    """Map every entry below a directory to a digest.

    Symlinks are not followed; they are recorded by their target text.
    Directories are recorded so empty ones are verified too.

    Returns:
        Dict of POSIX-style relative path -> digest ("dir" for directories)

    Raises:
        FileNotFoundError: If directory doesn't exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    result: Dict[str, str] = {}
    for root, dirs, files in os.walk(directory):
        root_path = Path(root)
        for name in dirs:
            entry = root_path / name
            key = entry.relative_to(directory).as_posix()
            if entry.is_symlink():
                result[key] = f"link:{os.readlink(entry)}"
            else:
                result[key] = "dir"
        for name in files:
            entry = root_path / name
            key = entry.relative_to(directory).as_posix()
            if entry.is_symlink():
                result[key] = f"link:{os.readlink(entry)}"
            elif entry.is_file():
                result[key] = fast_hash_file(entry)
    return result


def compare_trees(source: Dict[str, str], target: Dict[str, str]) -> Dict[str, List[str]]:
    """Compare two hash_tree() results.

    Returns:
        Dict with keys:
            - "missing": In source but not target
            - "modified": In both with different digests
            - "extra": In target only (tolerated by copies)
    """
    source_keys = set(source)
    target_keys = set(target)
    return {
        "missing": sorted(source_keys - target_keys),
        "modified": sorted(k for k in source_keys & target_keys if source[k] != target[k]),
        "extra": sorted(target_keys - source_keys),
    }


def tree_contains(source_dir: Path, target_dir: Path) -> Dict[str, List[str]]:
    """Hash both trees and compare them (see compare_trees)."""
    return compare_trees(hash_tree(source_dir), hash_tree(target_dir))
