"""Storage Manager - keep working folders on fast local storage, durably.

Each managed folder in the home directory is replaced by a symlink into a
fast, session-scoped scratch area; its content is persisted to a durable
network share as an archive (or a plain mirror copy) on save and restored
from there on the next init.

Key Features:
    - Init: restore from remote, else seed from the existing home folder
    - Home entries virtualized as symlinks, prior content kept in <name>_OLD
    - Save: tar archive or rsync mirror per folder
    - Fetch: restore a single folder on demand
    - One task per folder, failures isolated per folder

Quick Start:
    from storage_manager import StorageConfig, TaskOrchestrator

    config = StorageConfig.from_environment()
    orchestrator = TaskOrchestrator(config)
    report = orchestrator.init()
    ...
    report = orchestrator.save()

Classes:
    StorageConfig: Paths, folder list and variant for a run
    TaskOrchestrator: Runs an operation across all folders
    FolderSynchronizer: Init/Save/Fetch state machine for one folder
    DirectoryVirtualizer: Symlink/backup handling of a home entry
    SyncVariant: Enum for remote storage form (ARCHIVE, MIRROR)
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .config import (
    StorageConfig,
    ManagedFolder,
    SyncVariant,
    ConfigurationError,
    DEFAULT_FOLDERS,
)
from .results import (
    Operation,
    FolderOutcome,
    FailureReason,
    FolderResult,
    RunReport,
)
from .virtualizer import DirectoryVirtualizer, EntryKind, inspect_entry
from .synchronizer import FolderSynchronizer
from .orchestrator import TaskOrchestrator, ToolUnavailableError
from .session import SessionHooks, LockAndLogoutHooks
from .transport import (
    ArchiveTransport,
    MirrorCopy,
    TransportResult,
    TarArchiveTransport,
    RsyncMirrorCopy,
    LocalMirrorCopy,
    MemoryArchiveTransport,
)

__all__ = [
    "__version__",
    "__license__",
    # Configuration
    "StorageConfig",
    "ManagedFolder",
    "SyncVariant",
    "ConfigurationError",
    "DEFAULT_FOLDERS",
    # Results
    "Operation",
    "FolderOutcome",
    "FailureReason",
    "FolderResult",
    "RunReport",
    # Core
    "DirectoryVirtualizer",
    "EntryKind",
    "inspect_entry",
    "FolderSynchronizer",
    "TaskOrchestrator",
    "ToolUnavailableError",
    # Hooks
    "SessionHooks",
    "LockAndLogoutHooks",
    # Transports
    "ArchiveTransport",
    "MirrorCopy",
    "TransportResult",
    "TarArchiveTransport",
    "RsyncMirrorCopy",
    "LocalMirrorCopy",
    "MemoryArchiveTransport",
]


def create_orchestrator(
    variant: str = "archive",
    config_file: str = None,
    verify_integrity: bool = False,
    logout_after_save: bool = False,
) -> TaskOrchestrator:
    """Convenience function to build an orchestrator from the environment.

    Args:
        variant: "archive" or "mirror" (ignored when config_file sets one)
        config_file: Optional JSON configuration file
        verify_integrity: Hash-verify mirror copies
        logout_after_save: Lock before and log out after a save

    Raises:
        ConfigurationError: If USER/HOME or the config file are unusable.
    """
    from pathlib import Path

    if config_file:
        config = StorageConfig.load(Path(config_file))
    else:
        config = StorageConfig.from_environment(variant=SyncVariant(variant.lower()))
    if verify_integrity:
        config.verify_integrity = True

    hooks = LockAndLogoutHooks() if logout_after_save else None
    return TaskOrchestrator(config, hooks=hooks)
