"""Task orchestrator: run a folder operation across every configured folder.

One task per folder runs on a thread pool; the orchestrator waits for all of
them (success or failure) before returning a RunReport. Folder tasks touch
disjoint paths and share only the read-only configuration, so no locking
is needed between them.

Example:
    from storage_manager import StorageConfig, TaskOrchestrator

    orchestrator = TaskOrchestrator(StorageConfig.from_environment())
    report = orchestrator.init()
    for result in report.failed:
        print(f"{result.folder}: {result.message}")
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from .config import StorageConfig, SyncVariant
from .results import FailureReason, FolderResult, Operation, RunReport
from .session import SessionHooks
from .synchronizer import FolderSynchronizer
from .transport import get_archive_transport, get_mirror_copy
from .transport.base import ArchiveTransport, MirrorCopy
from .utils.platform import supports_symlinks

logger = logging.getLogger(__name__)


class ToolUnavailableError(RuntimeError):
    """Raised before a run when a required external tool or host feature is missing."""


class TaskOrchestrator:
    """Fans an operation out to one FolderSynchronizer per folder.

    Attributes:
        config: Run configuration (read-only during a run)
        archive: Archive transport shared by all tasks
        mirror: Mirror copier shared by all tasks
        hooks: Session hooks run before fan-out and after the join
    """

    def __init__(
        self,
        config: StorageConfig,
        archive: Optional[ArchiveTransport] = None,
        mirror: Optional[MirrorCopy] = None,
        hooks: Optional[SessionHooks] = None,
    ):
        self.config = config
        self.archive = archive or get_archive_transport()
        self.mirror = mirror or get_mirror_copy()
        self.hooks = hooks or SessionHooks()

    def synchronizer(self, name: str) -> FolderSynchronizer:
        return FolderSynchronizer(self.config, name, self.archive, self.mirror)

    def prepare(self) -> bool:
        """Create the local and remote roots.

        Failures are logged only; the folder tasks report them individually.
        """
        ok = True
        for root in (self.config.local_root, self.config.remote_root):
            try:
                root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"Cannot create {root}: {e}")
                ok = False
        return ok

    def preflight(self, operation: Operation) -> None:
        """Check the external tools and host features the operation needs.

        Raises:
            ToolUnavailableError: If a required tool is not installed, or
                the operation links home entries on a host without symlinks.
        """
        if operation != Operation.SAVE and not supports_symlinks():
            raise ToolUnavailableError(f"Symbolic links are required for {operation.value} but are not supported here")
        needed = [self.mirror]
        if self.config.variant == SyncVariant.ARCHIVE:
            needed.append(self.archive)
        for transport in needed:
            if not transport.is_available():
                tool = transport.tool or transport.__class__.__name__
                raise ToolUnavailableError(f"'{tool}' is required for {operation.value} but was not found")

    def init(self) -> RunReport:
        return self.run(Operation.INIT)

    def save(self) -> RunReport:
        return self.run(Operation.SAVE)

    def run(self, operation: Operation) -> RunReport:
        """Run INIT or SAVE on every configured folder and wait for all.

        Raises:
            ValueError: For FETCH, which targets a single folder.
            ToolUnavailableError: If a required tool is missing.
        """
        if operation == Operation.FETCH:
            raise ValueError("fetch targets a single folder; use fetch(name)")

        self.preflight(operation)
        self.prepare()

        self.hooks.before_fanout(operation)

        start = time.perf_counter()
        results = self._fan_out(operation)
        report = RunReport(
            operation=operation,
            results=results,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        self._log_report(report)

        self.hooks.after_join(report)
        return report

    def fetch(self, name: str) -> RunReport:
        """Fetch one folder by name (need not be in the configured list).

        The roots are not prepared here, so a fetch that finds nothing on
        the remote side leaves the filesystem untouched.
        """
        self.preflight(Operation.FETCH)

        start = time.perf_counter()
        try:
            result = self.synchronizer(name).fetch()
        except Exception as e:
            result = self._unexpected(Operation.FETCH, name, e)
        report = RunReport(
            operation=Operation.FETCH,
            results=[result],
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        self._log_report(report)
        return report

    def status(self) -> List[Dict[str, Any]]:
        """Per-folder state for every configured folder."""
        return [self.synchronizer(name).status() for name in self.config.folders]

    def _fan_out(self, operation: Operation) -> List[FolderResult]:
        folders = self.config.folders
        if not folders:
            logger.warning("No folders configured")
            return []

        workers = self.config.max_workers or len(folders)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="folder") as executor:
            futures = {
                name: executor.submit(self._run_one, operation, name)
                for name in folders
            }
            # Barrier: collect every future, in configured order
            return [self._collect(operation, name, futures[name]) for name in folders]

    def _run_one(self, operation: Operation, name: str) -> FolderResult:
        sync = self.synchronizer(name)
        if operation == Operation.INIT:
            return sync.init()
        return sync.save()

    def _collect(self, operation: Operation, name: str, future) -> FolderResult:
        try:
            return future.result()
        except Exception as e:
            # Isolate the folder; the remaining tasks are unaffected
            return self._unexpected(operation, name, e)

    def _unexpected(self, operation: Operation, name: str, error: Exception) -> FolderResult:
        logger.exception(f"Unexpected error during {operation.value} of {name}")
        return FolderResult(folder=name, operation=operation).fail(FailureReason.UNEXPECTED, str(error))

    def _log_report(self, report: RunReport) -> None:
        for result in report.failed:
            logger.error(f"{result.folder}: {result.reason.value} - {result.message}")
        logger.info(
            f"Operation {report.operation.value} finished: "
            f"{len(report.succeeded)} ok, {len(report.skipped)} skipped, "
            f"{len(report.failed)} failed in {report.duration_ms:.1f}ms"
        )
