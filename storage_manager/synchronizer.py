"""Folder synchronizer: Init, Save and Fetch for a single managed folder.

Philosophy: LOCAL IS WORKING COPY, REMOTE IS DURABLE.

- init:  populate local storage (remote, else seed from home, else empty)
         and virtualize the home entry
- save:  persist local storage to the remote tier
- fetch: restore one folder from a remote directory and link it if the
         home entry is free

Each step depends on the filesystem state left by the previous one, so a
failed step ends the operation for that folder. Errors never raise out of
this module; they are returned as FolderResult failures.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .config import ManagedFolder, StorageConfig, SyncVariant, validate_folder_name
from .results import FailureReason, FolderResult, Operation
from .transport.base import ArchiveTransport, MirrorCopy
from .utils.hashing import tree_contains
from .virtualizer import DirectoryVirtualizer, EntryKind, inspect_entry, remove_entry

logger = logging.getLogger(__name__)


class FolderSynchronizer:
    """State machine for one managed folder.

    Attributes:
        config: Run configuration
        folder: Derived paths for the folder
        archive: Archive transport (archive variant)
        mirror: Mirror copier (seeding, mirror variant and fetch)

    Example:
        sync = FolderSynchronizer(config, "Documents", TarArchiveTransport(), RsyncMirrorCopy())
        result = sync.init()
        if result.failed:
            print(result.reason, result.message)
    """

    def __init__(
        self,
        config: StorageConfig,
        name: str,
        archive: ArchiveTransport,
        mirror: MirrorCopy,
    ):
        self.config = config
        self.name = name
        self.archive = archive
        self.mirror = mirror
        self.folder: Optional[ManagedFolder] = None
        if validate_folder_name(name) is None:
            self.folder = config.folder(name)

    # ------------------------------------------------------------------
    # Init
    # ------------------------------------------------------------------

    def init(self) -> FolderResult:
        """Populate local storage and link the home entry to it."""
        result = FolderResult(folder=self.name, operation=Operation.INIT)
        return self._timed(result, self._init)

    def _init(self, result: FolderResult) -> FolderResult:
        folder = self.folder
        logger.info(f"Start init: {folder.name}")

        if inspect_entry(folder.local_path) == EntryKind.ABSENT:
            if not self._populate_local(result):
                return result
        else:
            result.source = "existing"
            logger.debug(f"{folder.local_path} already present, keeping it")

        result.stage("link")
        virtualizer = DirectoryVirtualizer(folder.home_path, folder.local_path, folder.backup_path)
        outcome = virtualizer.virtualize()
        result.backup_created = outcome.backup_created
        result.rolled_back = outcome.rolled_back
        if not outcome.success:
            logger.error(f"Init failed for {folder.name}: {outcome.message}")
            return result.fail(outcome.reason, outcome.message)

        if outcome.linked:
            logger.info(f"Linked: {folder.home_path} -> {folder.local_path}")
        result.message = outcome.message
        logger.info(f"Ready: {folder.name}")
        return result

    def _populate_local(self, result: FolderResult) -> bool:
        """Fill the absent local copy. On failure nothing is left at local_path."""
        try:
            if self._fill_local(result):
                return True
        except OSError as e:
            logger.error(f"Populating {self.folder.local_path} failed: {e}")
            result.fail(FailureReason.UNEXPECTED, str(e))

        local_path = self.folder.local_path
        try:
            remove_entry(local_path)
        except OSError as e:
            logger.error(f"Cannot remove incomplete {local_path}: {e}")
            result.message = f"{result.message} (incomplete {local_path} left in place: {e})"
        else:
            logger.debug(f"Removed incomplete {local_path}")
        return False

    def _fill_local(self, result: FolderResult) -> bool:
        folder = self.folder

        if self.remote_available():
            result.source = "remote"
            if self.config.variant == SyncVariant.MIRROR:
                result.stage("restore")
                return self._copy(
                    folder.remote_path, folder.local_path, result,
                    "Restored", FailureReason.COPY_FAILED,
                )

            result.stage("unpack")
            outcome = self.archive.unpack(folder.remote_archive_path, self.config.local_root)
            if not outcome.success:
                logger.error(f"Unpack failed for {folder.name}: {outcome.message}")
                result.fail(FailureReason.UNPACK_FAILED, outcome.message)
                return False
            if inspect_entry(folder.local_path) != EntryKind.DIRECTORY:
                result.fail(
                    FailureReason.UNPACK_FAILED,
                    f"{folder.remote_archive_path.name} did not produce {folder.local_path}",
                )
                return False
            logger.info(f"Restored: {folder.name} from {folder.remote_archive_path}")
            return True

        home_state = inspect_entry(folder.home_path)
        if home_state == EntryKind.DIRECTORY:
            result.source = "home"
            result.stage("seed")
            return self._copy(
                folder.home_path, folder.local_path, result,
                "Seeded", FailureReason.COPY_FAILED,
            )

        result.source = "empty"
        result.stage("create")
        try:
            folder.local_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.fail(FailureReason.PREPARE_FAILED, f"Cannot create {folder.local_path}: {e}")
            return False
        logger.info(f"Created empty: {folder.local_path}")
        return True

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self) -> FolderResult:
        """Persist local storage to the remote tier (no-op if absent)."""
        result = FolderResult(folder=self.name, operation=Operation.SAVE)
        return self._timed(result, self._save)

    def _save(self, result: FolderResult) -> FolderResult:
        folder = self.folder

        if inspect_entry(folder.local_path) != EntryKind.DIRECTORY:
            logger.debug(f"Nothing to save for {folder.name}")
            return result.skip(f"{folder.local_path} does not exist")

        logger.info(f"Start save: {folder.name}")

        if self.config.variant == SyncVariant.MIRROR:
            result.stage("copy")
            if not self._copy(
                folder.local_path, folder.remote_path, result,
                "Saved", FailureReason.COPY_FAILED,
            ):
                return result
            result.message = f"Saved to {folder.remote_path}"
            return result

        result.stage("pack")
        outcome = self.archive.pack(folder.local_path, folder.remote_archive_path)
        if not outcome.success:
            logger.error(f"Save failed for {folder.name}: {outcome.message}")
            return result.fail(FailureReason.PACK_FAILED, outcome.message)

        result.message = f"Saved to {folder.remote_archive_path}"
        logger.info(f"Saved: {folder.name}")
        return result

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def fetch(self) -> FolderResult:
        """Restore this folder from its remote directory.

        Fails with NOT_FOUND, touching nothing, if there is no remote
        directory (or, in the archive variant, no archive either). The home
        entry is linked only if nothing exists there yet.
        """
        result = FolderResult(folder=self.name, operation=Operation.FETCH)
        return self._timed(result, self._fetch)

    def _fetch(self, result: FolderResult) -> FolderResult:
        folder = self.folder

        from_directory = inspect_entry(folder.remote_path) == EntryKind.DIRECTORY
        from_archive = (
            not from_directory
            and self.config.variant == SyncVariant.ARCHIVE
            and inspect_entry(folder.remote_archive_path) == EntryKind.FILE
        )
        if not (from_directory or from_archive):
            logger.error(f"'{folder.name}' not found on remote storage")
            return result.fail(FailureReason.NOT_FOUND, f"'{folder.name}' not found in {self.config.remote_root}")

        logger.info(f"Fetching '{folder.name}'...")
        result.source = "remote"

        if from_directory:
            result.stage("create")
            try:
                folder.local_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                return result.fail(FailureReason.PREPARE_FAILED, f"Cannot create {folder.local_path}: {e}")
            result.stage("copy")
            if not self._copy(
                folder.remote_path, folder.local_path, result,
                "Fetched", FailureReason.COPY_FAILED,
            ):
                return result
        else:
            result.stage("unpack")
            outcome = self.archive.unpack(folder.remote_archive_path, self.config.local_root)
            if not outcome.success:
                logger.error(f"Unpack failed for {folder.name}: {outcome.message}")
                return result.fail(FailureReason.UNPACK_FAILED, outcome.message)
            logger.info(f"Fetched: {folder.name} from {folder.remote_archive_path}")

        result.stage("link")
        virtualizer = DirectoryVirtualizer(folder.home_path, folder.local_path, folder.backup_path)
        outcome = virtualizer.link_if_absent()
        if not outcome.success:
            logger.error(f"Fetch failed for {folder.name}: {outcome.message}")
            return result.fail(outcome.reason, outcome.message)
        if outcome.linked:
            logger.info(f"Linked: {folder.home_path} -> {folder.local_path}")
        else:
            logger.info(outcome.message)

        result.message = f"'{folder.name}' fetched"
        return result

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def remote_available(self) -> bool:
        """Check for the variant's remote copy of this folder."""
        if self.config.variant == SyncVariant.MIRROR:
            return inspect_entry(self.folder.remote_path) == EntryKind.DIRECTORY
        return inspect_entry(self.folder.remote_archive_path) == EntryKind.FILE

    def status(self) -> Dict[str, Any]:
        """Describe the folder's current state without changing anything."""
        folder = self.folder
        virtualizer = DirectoryVirtualizer(folder.home_path, folder.local_path, folder.backup_path)
        home = virtualizer.home_state()
        return {
            "folder": folder.name,
            "home": home.value,
            "linked": home == EntryKind.SYMLINK and virtualizer.points_to_local(),
            "local": inspect_entry(folder.local_path).value,
            "remote": self.remote_available(),
            "remote_path": str(folder.remote_entry),
            "backup": inspect_entry(folder.backup_path) != EntryKind.ABSENT,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _copy(
        self,
        source: Path,
        dest: Path,
        result: FolderResult,
        label: str,
        reason: FailureReason,
    ) -> bool:
        outcome = self.mirror.copy(source, dest)
        if not outcome.success:
            logger.error(f"Copy failed for {self.name}: {outcome.message}")
            result.fail(reason, outcome.message)
            return False

        if self.config.verify_integrity and not self._verify(source, dest, result):
            return False

        logger.info(f"{label}: {self.name} ({source} -> {dest})")
        return True

    def _verify(self, source: Path, dest: Path, result: FolderResult) -> bool:
        result.stage("verify")
        try:
            diff = tree_contains(source, dest)
        except OSError as e:
            result.fail(FailureReason.VERIFY_FAILED, f"Cannot verify {dest}: {e}")
            return False

        if diff["missing"] or diff["modified"]:
            message = (
                f"Verification of {dest} failed: "
                f"{len(diff['missing'])} missing, {len(diff['modified'])} modified"
            )
            logger.error(message)
            result.fail(FailureReason.VERIFY_FAILED, message)
            return False
        return True

    def _timed(self, result: FolderResult, step) -> FolderResult:
        start = time.perf_counter()
        if self.folder is None:
            result.fail(FailureReason.INVALID_NAME, validate_folder_name(self.name))
        else:
            try:
                step(result)
            except OSError as e:
                logger.error(f"{result.operation.value} failed for {self.name}: {e}")
                result.fail(FailureReason.UNEXPECTED, str(e))
        result.duration_ms = (time.perf_counter() - start) * 1000
        return result
