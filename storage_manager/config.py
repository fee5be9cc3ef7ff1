"""Configuration dataclasses for Storage Manager."""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional


# Folders virtualized when no configuration file says otherwise
DEFAULT_FOLDERS = (".rustup", ".vscode", ".cargo", "Downloads", "Documents")

# Base of the fast, session-scoped scratch area
DEFAULT_LOCAL_BASE = Path("/goinfre")

# Base of the durable network share
DEFAULT_REMOTE_BASE = Path("/sgoinfre/goinfre/Perso")

CONFIG_KEYS = (
    "folders",
    "variant",
    "local_base",
    "remote_base",
    "verify_integrity",
    "max_workers",
)


class ConfigurationError(RuntimeError):
    """Raised when the run cannot start (user, home or config unresolvable)."""


class SyncVariant(Enum):
    """How folder content is stored on the remote tier."""
    ARCHIVE = "archive"  # One <name>.tar per folder
    MIRROR = "mirror"    # Plain directory copy per folder


def validate_folder_name(name: str) -> Optional[str]:
    """Check that a folder name is a single plain path component.

    Returns:
        Error message if invalid, None if valid
    """
    if not name:
        return "Folder name must not be empty"
    if name in (".", ".."):
        return f"Folder name cannot be '{name}'"
    if "/" in name or "\\" in name or "\0" in name:
        return f"Folder name must not contain path separators: {name!r}"
    return None


@dataclass(frozen=True)
class ManagedFolder:
    """Paths derived for one managed folder.

    Attributes:
        name: Folder name, relative to each root
        home_path: User-visible location (becomes a symlink)
        local_path: Materialization on fast local storage
        remote_archive_path: Durable archive (archive variant)
        remote_path: Durable mirror directory (mirror variant, and fetch)
        backup_path: Holding location for displaced real content
        variant: Remote storage form in use
    """
    name: str
    home_path: Path
    local_path: Path
    remote_archive_path: Path
    remote_path: Path
    backup_path: Path
    variant: Optional[SyncVariant] = None

    @property
    def remote_entry(self) -> Path:
        """The remote path the configured variant reads and writes."""
        if self.variant == SyncVariant.MIRROR:
            return self.remote_path
        return self.remote_archive_path


@dataclass
class StorageConfig:
    """Configuration shared by every folder task of a run.

    Attributes:
        home_root: User home directory holding the virtualized entries
        local_root: Fast storage root (e.g. /goinfre/<user>/local_data)
        remote_root: Durable storage root (my_archives or my_data)
        folders: Ordered list of managed folder names
        variant: Archive or mirror remote form
        backup_suffix: Suffix of the backup entry next to the home entry
        archive_suffix: Suffix of remote archives
        verify_integrity: Hash-verify mirror copies after they complete
        max_workers: Thread pool size (one thread per folder if None)
    """
    home_root: Path
    local_root: Path
    remote_root: Path
    folders: List[str] = field(default_factory=lambda: list(DEFAULT_FOLDERS))
    variant: SyncVariant = SyncVariant.ARCHIVE
    backup_suffix: str = "_OLD"
    archive_suffix: str = ".tar"
    verify_integrity: bool = False
    max_workers: Optional[int] = None

    def __post_init__(self):
        """Coerce paths and enums, then validate folder names."""
        if isinstance(self.home_root, str):
            self.home_root = Path(self.home_root)
        if isinstance(self.local_root, str):
            self.local_root = Path(self.local_root)
        if isinstance(self.remote_root, str):
            self.remote_root = Path(self.remote_root)
        if isinstance(self.variant, str):
            self.variant = SyncVariant(self.variant.lower())
        self.folders = list(self.folders)

        seen = set()
        for name in self.folders:
            error = validate_folder_name(name)
            if error:
                raise ValueError(error)
            if name in seen:
                raise ValueError(f"Folder '{name}' is listed more than once")
            seen.add(name)

        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

    def folder(self, name: str) -> ManagedFolder:
        """Compute the derived paths for a folder name.

        Raises:
            ValueError: If the name is not a plain folder name.
        """
        error = validate_folder_name(name)
        if error:
            raise ValueError(error)
        return ManagedFolder(
            name=name,
            home_path=self.home_root / name,
            local_path=self.local_root / name,
            remote_archive_path=self.remote_root / f"{name}{self.archive_suffix}",
            remote_path=self.remote_root / name,
            backup_path=self.home_root / f"{name}{self.backup_suffix}",
            variant=self.variant,
        )

    def managed_folders(self) -> List[ManagedFolder]:
        """Derived paths for every configured folder, in configured order."""
        return [self.folder(name) for name in self.folders]

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "home_root": str(self.home_root),
            "local_root": str(self.local_root),
            "remote_root": str(self.remote_root),
            "folders": list(self.folders),
            "variant": self.variant.value,
            "verify_integrity": self.verify_integrity,
            "max_workers": self.max_workers,
        }

    @classmethod
    def for_user(
        cls,
        user: str,
        home: Path,
        local_base: Path = DEFAULT_LOCAL_BASE,
        remote_base: Path = DEFAULT_REMOTE_BASE,
        variant: SyncVariant = SyncVariant.ARCHIVE,
        **kwargs,
    ) -> "StorageConfig":
        """Build the standard per-user directory layout.

        Local:  <local_base>/<user>/local_data
        Remote: <remote_base>/<user>/my_archives (archive) or my_data (mirror)
        """
        if isinstance(variant, str):
            variant = SyncVariant(variant.lower())
        remote_dir = "my_data" if variant == SyncVariant.MIRROR else "my_archives"
        return cls(
            home_root=Path(home),
            local_root=Path(local_base) / user / "local_data",
            remote_root=Path(remote_base) / user / remote_dir,
            variant=variant,
            **kwargs,
        )

    @classmethod
    def from_environment(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "StorageConfig":
        """Build the per-user layout from USER and HOME.

        Raises:
            ConfigurationError: If the user or home directory is unresolvable.
        """
        from storage_manager.utils.platform import resolve_home, resolve_user

        user = resolve_user(environ)
        home = resolve_home(environ)
        try:
            return cls.for_user(user, home, **overrides)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def load(
        cls,
        path: Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "StorageConfig":
        """Load overrides from a JSON file and build the per-user layout.

        Raises:
            ConfigurationError: If the file is unreadable, malformed, or
                contains unknown keys.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        unknown = sorted(set(data) - set(CONFIG_KEYS))
        if unknown:
            raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(unknown)}")

        overrides: Dict[str, object] = dict(data)
        for key in ("local_base", "remote_base"):
            if key in overrides:
                overrides[key] = Path(overrides[key])
        if "variant" in overrides:
            try:
                overrides["variant"] = SyncVariant(str(overrides["variant"]).lower())
            except ValueError as e:
                raise ConfigurationError(f"Invalid variant in {path}: {e}") from e

        return cls.from_environment(environ, **overrides)
