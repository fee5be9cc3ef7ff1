"""Session hooks run around an orchestrated operation.

Hooks run strictly outside the parallel phase: before_fanout() before any
folder task starts and after_join() once every task has finished.
"""

import logging
import subprocess
import time
from typing import List, Optional, Sequence

from .results import Operation, RunReport

logger = logging.getLogger(__name__)

LOCKER_COMMAND = ["ft_lock"]

# All run when ft_lock is unavailable; desktops honour one or the other
FALLBACK_LOCK_COMMANDS: Sequence[List[str]] = (
    ["gnome-screensaver-command", "-l"],
    ["loginctl", "lock-session"],
)

LOGOUT_COMMAND = ["gnome-session-quit", "--logout", "--no-prompt"]


class SessionHooks:
    """No-op hooks; subclass and override what you need."""

    def before_fanout(self, operation: Operation) -> None:
        pass

    def after_join(self, report: RunReport) -> None:
        pass


def lock_screen(
    settle_seconds: float = 2.0,
    processes: Optional[List[subprocess.Popen]] = None,
) -> bool:
    """Lock the screen with ft_lock, else with every fallback locker.

    ft_lock keeps running while the screen is locked, so it is not waited on;
    its handle is appended to ``processes`` when a list is given.

    Returns:
        True if at least one locker was launched
    """
    logger.info("Locking the screen...")
    try:
        proc = subprocess.Popen(LOCKER_COMMAND)
    except OSError as e:
        logger.warning(f"{LOCKER_COMMAND[0]} unavailable ({e}), trying desktop lockers")
        launched = False
        for cmd in FALLBACK_LOCK_COMMANDS:
            try:
                subprocess.run(cmd, check=False)
            except OSError as e:
                logger.warning(f"{cmd[0]} unavailable: {e}")
                continue
            launched = True
        if not launched:
            logger.error("No screen locker could be started")
            return False
    else:
        if processes is not None:
            processes.append(proc)

    # Let the locker grab the display before the save starts loading the CPU
    if settle_seconds > 0:
        time.sleep(settle_seconds)
    return True


def trigger_logout(processes: Optional[List[subprocess.Popen]] = None) -> bool:
    """Ask the desktop session to log out without prompting.

    The command is not waited on; its handle is appended to ``processes``
    when a list is given.

    Returns:
        True if the logout command was launched
    """
    logger.info("Logging out...")
    try:
        proc = subprocess.Popen(LOGOUT_COMMAND)
    except OSError as e:
        logger.error(f"Could not trigger logout: {e}")
        return False
    if processes is not None:
        processes.append(proc)
    return True


class LockAndLogoutHooks(SessionHooks):
    """Lock before a save fans out, log out after it joins.

    Only acts on SAVE runs. Logout happens even if some folders failed to
    save; the report has already been logged by then.

    Args:
        settle_seconds: Pause after locking before the save starts

    Attributes:
        processes: Handles of launched background commands not yet reaped
    """

    def __init__(self, settle_seconds: float = 2.0):
        self.settle_seconds = settle_seconds
        self.processes: List[subprocess.Popen] = []

    def before_fanout(self, operation: Operation) -> None:
        if operation == Operation.SAVE:
            lock_screen(self.settle_seconds, self.processes)

    def after_join(self, report: RunReport) -> None:
        if report.operation != Operation.SAVE:
            return
        if report.failed:
            names = ", ".join(r.folder for r in report.failed)
            logger.warning(f"Logging out although some folders failed to save: {names}")
        trigger_logout(self.processes)
        self.reap()

    def reap(self) -> int:
        """Collect exit status of finished commands; return how many still run."""
        running = []
        for proc in self.processes:
            returncode = proc.poll()
            if returncode is None:
                running.append(proc)
            elif returncode != 0:
                logger.warning(f"{proc.args[0]} exited with status {returncode}")
        self.processes = running
        return len(running)
