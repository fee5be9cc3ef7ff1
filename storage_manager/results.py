"""Per-folder results and the per-run report.

Every folder task returns a FolderResult instead of raising; the
orchestrator collects them into a RunReport once all tasks have joined.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Operation(Enum):
    """User-facing operations."""
    INIT = "init"
    SAVE = "save"
    FETCH = "fetch"


class FolderOutcome(Enum):
    """Final state of one folder task."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class FailureReason(Enum):
    """Why a folder task failed."""
    NOT_FOUND = "not_found"              # Fetch: nothing on the remote tier
    INVALID_NAME = "invalid_name"
    PREPARE_FAILED = "prepare_failed"    # Could not create a directory
    UNPACK_FAILED = "unpack_failed"
    PACK_FAILED = "pack_failed"
    COPY_FAILED = "copy_failed"
    VERIFY_FAILED = "verify_failed"
    BACKUP_FAILED = "backup_failed"      # Home -> backup rename
    LINK_FAILED = "link_failed"          # Symlink creation (rolled back)
    ROLLBACK_FAILED = "rollback_failed"  # Symlink failed and backup stayed put
    UNEXPECTED = "unexpected"


@dataclass
class FolderResult:
    """Result of one operation on one folder.

    Attributes:
        folder: Folder name
        operation: Operation performed
        outcome: success, skipped or failed
        reason: Failure reason (failed outcomes only)
        message: Human-readable detail
        stages: Stages attempted, in order
        source: Where local content came from (remote, home, empty, existing)
        backup_created: Whether real home content was moved to the backup path
        rolled_back: Whether the backup was moved back after a link failure
        duration_ms: Wall time of the task
    """
    folder: str
    operation: Operation
    outcome: FolderOutcome = FolderOutcome.SUCCESS
    reason: Optional[FailureReason] = None
    message: str = ""
    stages: List[str] = field(default_factory=list)
    source: Optional[str] = None
    backup_created: bool = False
    rolled_back: bool = False
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome == FolderOutcome.SUCCESS

    @property
    def failed(self) -> bool:
        return self.outcome == FolderOutcome.FAILED

    def stage(self, name: str) -> None:
        """Record that a stage was attempted."""
        self.stages.append(name)

    def fail(self, reason: FailureReason, message: str) -> "FolderResult":
        """Mark the task failed and return self."""
        self.outcome = FolderOutcome.FAILED
        self.reason = reason
        self.message = message
        return self

    def skip(self, message: str) -> "FolderResult":
        """Mark the task skipped and return self."""
        self.outcome = FolderOutcome.SKIPPED
        self.message = message
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "folder": self.folder,
            "operation": self.operation.value,
            "outcome": self.outcome.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "stages": list(self.stages),
            "source": self.source,
            "backup_created": self.backup_created,
            "rolled_back": self.rolled_back,
            "duration_ms": self.duration_ms,
        }


@dataclass
class RunReport:
    """Aggregated results of one orchestrated run."""
    operation: Operation
    results: List[FolderResult] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> List[FolderResult]:
        return [r for r in self.results if r.outcome == FolderOutcome.SUCCESS]

    @property
    def failed(self) -> List[FolderResult]:
        return [r for r in self.results if r.outcome == FolderOutcome.FAILED]

    @property
    def skipped(self) -> List[FolderResult]:
        return [r for r in self.results if r.outcome == FolderOutcome.SKIPPED]

    @property
    def all_succeeded(self) -> bool:
        """True if no folder failed (skipped folders count as fine)."""
        return not self.failed

    @property
    def exit_code(self) -> int:
        return 0 if self.all_succeeded else 1

    def get(self, folder: str) -> Optional[FolderResult]:
        """Look up the result for a folder name."""
        for result in self.results:
            if result.folder == folder:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "operation": self.operation.value,
            "success": self.all_succeeded,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "duration_ms": self.duration_ms,
            "folders": [r.to_dict() for r in self.results],
        }
