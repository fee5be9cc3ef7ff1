"""Tests for storage_manager.session module.

External desktop commands are replaced with recorders; nothing is locked.
"""

import pytest

from storage_manager import session
from storage_manager.results import FailureReason, FolderResult, Operation, RunReport
from storage_manager.session import LockAndLogoutHooks, SessionHooks, lock_screen, trigger_logout


class FakeProcess:
    """Stands in for subprocess.Popen; poll() returns `returncode`."""

    def __init__(self, args, returncode=None):
        self.args = args
        self.returncode = returncode

    def poll(self):
        return self.returncode


@pytest.fixture
def launched(monkeypatch):
    """Record commands instead of running them."""
    calls = []

    def fake_popen(cmd, *args, **kwargs):
        calls.append(("popen", list(cmd)))
        return FakeProcess(list(cmd))

    def fake_run(cmd, *args, **kwargs):
        calls.append(("run", list(cmd)))
        return None

    monkeypatch.setattr(session.subprocess, "Popen", fake_popen)
    monkeypatch.setattr(session.subprocess, "run", fake_run)
    monkeypatch.setattr(session.time, "sleep", lambda s: None)
    return calls


@pytest.fixture
def no_ft_lock(monkeypatch):
    """ft_lock is missing; fallback lockers are recorded."""
    calls = []

    def fake_popen(cmd, *args, **kwargs):
        if cmd[0] == "ft_lock":
            raise FileNotFoundError(cmd[0])
        calls.append(("popen", list(cmd)))
        return FakeProcess(list(cmd))

    def fake_run(cmd, *args, **kwargs):
        calls.append(("run", list(cmd)))

    monkeypatch.setattr(session.subprocess, "Popen", fake_popen)
    monkeypatch.setattr(session.subprocess, "run", fake_run)
    return calls


def test_default_hooks_do_nothing():
    hooks = SessionHooks()
    hooks.before_fanout(Operation.SAVE)
    hooks.after_join(RunReport(operation=Operation.SAVE))


def test_lock_prefers_ft_lock(launched):
    processes = []
    assert lock_screen(settle_seconds=0, processes=processes) is True
    assert launched == [("popen", ["ft_lock"])]
    assert [p.args for p in processes] == [["ft_lock"]]


def test_lock_runs_every_fallback(no_ft_lock):
    processes = []
    assert lock_screen(settle_seconds=0, processes=processes) is True
    assert no_ft_lock == [
        ("run", ["gnome-screensaver-command", "-l"]),
        ("run", ["loginctl", "lock-session"]),
    ]
    assert processes == []


def test_lock_fallback_survives_one_missing_locker(monkeypatch):
    calls = []

    def fake_popen(cmd, *args, **kwargs):
        raise FileNotFoundError(cmd[0])

    def fake_run(cmd, *args, **kwargs):
        if cmd[0] == "gnome-screensaver-command":
            raise FileNotFoundError(cmd[0])
        calls.append(list(cmd))

    monkeypatch.setattr(session.subprocess, "Popen", fake_popen)
    monkeypatch.setattr(session.subprocess, "run", fake_run)

    assert lock_screen(settle_seconds=0) is True
    assert calls == [["loginctl", "lock-session"]]


def test_lock_reports_no_locker(monkeypatch):
    def missing(cmd, *args, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(session.subprocess, "Popen", missing)
    monkeypatch.setattr(session.subprocess, "run", missing)
    assert lock_screen(settle_seconds=0) is False


def test_trigger_logout(launched):
    processes = []
    assert trigger_logout(processes) is True
    assert launched == [("popen", ["gnome-session-quit", "--logout", "--no-prompt"])]
    assert len(processes) == 1


def test_trigger_logout_missing_command(monkeypatch):
    def missing(cmd, *args, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(session.subprocess, "Popen", missing)
    assert trigger_logout() is False


class TestLockAndLogoutHooks:

    def test_save_locks_then_logs_out(self, launched):
        hooks = LockAndLogoutHooks(settle_seconds=0)
        hooks.before_fanout(Operation.SAVE)
        hooks.after_join(RunReport(operation=Operation.SAVE))
        assert [cmd[0] for _, cmd in launched] == ["ft_lock", "gnome-session-quit"]

    def test_logs_out_even_with_failures(self, launched):
        report = RunReport(
            operation=Operation.SAVE,
            results=[FolderResult("Docs", Operation.SAVE).fail(FailureReason.PACK_FAILED, "disk full")],
        )
        LockAndLogoutHooks(settle_seconds=0).after_join(report)
        assert launched[-1][1][0] == "gnome-session-quit"

    def test_ignores_other_operations(self, launched):
        hooks = LockAndLogoutHooks(settle_seconds=0)
        hooks.before_fanout(Operation.INIT)
        hooks.after_join(RunReport(operation=Operation.INIT))
        assert launched == []
        assert hooks.processes == []

    def test_keeps_running_processes(self, launched):
        hooks = LockAndLogoutHooks(settle_seconds=0)
        hooks.before_fanout(Operation.SAVE)
        hooks.after_join(RunReport(operation=Operation.SAVE))
        assert [p.args[0] for p in hooks.processes] == ["ft_lock", "gnome-session-quit"]

    def test_reap_drops_finished_processes(self):
        hooks = LockAndLogoutHooks(settle_seconds=0)
        hooks.processes = [
            FakeProcess(["ft_lock"]),
            FakeProcess(["gnome-session-quit"], returncode=0),
            FakeProcess(["other"], returncode=1),
        ]
        assert hooks.reap() == 1
        assert [p.args[0] for p in hooks.processes] == ["ft_lock"]
