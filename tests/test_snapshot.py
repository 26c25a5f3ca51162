"""Tests for process table capture."""

import os
import threading
from contextlib import contextmanager
from types import SimpleNamespace

import psutil
import pytest

from pgtree.errors import SnapshotUnavailable
from pgtree.models import ProcessRecord, ProcessSnapshot, ThreadInfo
from pgtree.snapshot import capture


class FakeProcess:
    """Stand-in for psutil.Process driven by a table of fake process data."""

    table: dict[int, dict] = {}

    def __init__(self, pid: int) -> None:
        if pid not in self.table:
            raise psutil.NoSuchProcess(pid)
        self.pid = pid
        self._data = self.table[pid]

    @contextmanager
    def oneshot(self):
        yield

    def _get(self, key):
        value = self._data[key]
        if isinstance(value, Exception):
            raise value
        return value

    def ppid(self):
        return self._get("ppid")

    def name(self):
        return self._get("name")

    def cmdline(self):
        return self._get("cmdline")

    def threads(self):
        return [SimpleNamespace(id=tid, user_time=0.0, system_time=0.0) for tid in self._get("threads")]


@pytest.fixture
def fake_psutil(monkeypatch):
    """Replace psutil's process table with FakeProcess.table."""

    def install(table: dict[int, dict]) -> None:
        monkeypatch.setattr(FakeProcess, "table", table)
        monkeypatch.setattr(psutil, "pids", lambda: list(table) + [4242])
        monkeypatch.setattr(psutil, "Process", FakeProcess)
        monkeypatch.setattr(psutil, "LINUX", False)

    return install


def _entry(ppid, name, cmdline=(), threads=()):
    return {"ppid": ppid, "name": name, "cmdline": list(cmdline), "threads": list(threads)}


class TestCaptureWithFakeTable:
    """Tests for capture() against a controlled process table."""

    def test_builds_records(self, fake_psutil):
        """Test each readable process becomes a ProcessRecord."""
        fake_psutil(
            {
                1: _entry(0, "init", ["/sbin/init"], [1]),
                20: _entry(1, "worker", ["worker", "-v"], [20, 22, 21]),
            }
        )

        snapshot = capture()

        assert isinstance(snapshot, ProcessSnapshot)
        assert list(snapshot) == [1, 20]
        assert snapshot[1] == ProcessRecord(pid=1, ppid=None, name="init", cmdline=("/sbin/init",))
        worker = snapshot[20]
        assert worker.ppid == 1
        assert worker.cmdline == ("worker", "-v")

    def test_threads_exclude_main_thread_and_are_sorted(self, fake_psutil):
        """Test the main thread is omitted and other threads are ordered by tid."""
        fake_psutil({20: _entry(1, "worker", threads=[20, 22, 21])})

        threads = capture()[20].threads

        assert [t.tid for t in threads] == [21, 22]
        # Without /proc thread names fall back to the process name
        assert all(t.name == "worker" for t in threads)

    def test_vanished_process_is_dropped(self, fake_psutil):
        """Test a pid that exits between enumeration and read is skipped."""
        fake_psutil({1: _entry(0, "init")})

        snapshot = capture()

        assert 4242 not in snapshot
        assert list(snapshot) == [1]

    def test_access_denied_identity_omits_record(self, fake_psutil):
        """Test a process whose name cannot be read is omitted, not fatal."""
        fake_psutil(
            {
                1: _entry(0, "init"),
                30: _entry(1, psutil.AccessDenied(pid=30)),
            }
        )

        snapshot = capture()

        assert 30 not in snapshot
        assert 1 in snapshot

    def test_access_denied_cmdline_keeps_record(self, fake_psutil):
        """Test an unreadable command line degrades to an empty tuple."""
        table = {40: _entry(1, "secret")}
        table[40]["cmdline"] = psutil.AccessDenied(pid=40)
        fake_psutil(table)

        record = capture()[40]

        assert record.name == "secret"
        assert record.cmdline == ()

    def test_zombie_cmdline_keeps_record(self, fake_psutil):
        """Test a zombie's unreadable command line does not drop it."""
        table = {50: _entry(1, "defunct")}
        table[50]["cmdline"] = psutil.ZombieProcess(50)
        table[50]["threads"] = psutil.ZombieProcess(50)
        fake_psutil(table)

        record = capture()[50]

        assert record.cmdline == ()
        assert record.threads == ()

    def test_zombie_identity_keeps_record(self, fake_psutil):
        """Test a zombie whose name cannot be read stays in its parent's tree."""
        table = {1: _entry(0, "init"), 60: _entry(1, "defunct")}
        table[60]["name"] = psutil.ZombieProcess(60, name="defunct", ppid=1)
        fake_psutil(table)

        snapshot = capture()

        assert snapshot[60] == ProcessRecord(pid=60, ppid=1, name="defunct")
        assert snapshot.children_index() == {1: [60]}

    def test_zombie_parent_from_exception(self, fake_psutil):
        """Test a zombie whose parent id cannot be read uses the one psutil reports."""
        table = {70: _entry(1, "defunct")}
        table[70]["ppid"] = psutil.ZombieProcess(70, name="defunct", ppid=1)
        fake_psutil(table)

        record = capture()[70]

        assert record.ppid == 1
        assert record.name == "defunct"
        assert record.cmdline == ()

    def test_pid_zero_is_skipped(self, fake_psutil):
        """Test the kernel pseudo-process with pid 0 is never captured."""
        fake_psutil({0: _entry(0, "kernel_task"), 1: _entry(0, "init")})

        assert list(capture()) == [1]

    def test_enumeration_failure_is_fatal(self, monkeypatch):
        """Test an inaccessible process table raises SnapshotUnavailable."""

        def broken():
            raise FileNotFoundError("/proc")

        monkeypatch.setattr(psutil, "pids", broken)

        with pytest.raises(SnapshotUnavailable):
            capture()


class TestCaptureLive:
    """Tests for capture() against the real process table."""

    def test_contains_current_process(self):
        """Test the snapshot includes the test runner itself."""
        snapshot = capture()
        me = psutil.Process()

        record = snapshot[os.getpid()]
        assert record.name == me.name()
        assert record.cmdline == tuple(me.cmdline())
        assert record.ppid == os.getppid()

    def test_all_pids_positive(self):
        """Test every captured pid is positive."""
        snapshot = capture()

        assert len(snapshot) > 0
        assert all(pid > 0 for pid in snapshot)

    def test_main_thread_not_listed(self):
        """Test no record lists its own pid among its threads."""
        snapshot = capture()

        for pid, record in snapshot.items():
            assert all(thread.tid != pid for thread in record.threads)

    @pytest.mark.skipif(not psutil.LINUX, reason="thread names are read from /proc")
    def test_thread_name_reaches_record(self):
        """Test a named helper thread is listed under the process with its name."""
        with _thread_with_comm(b"pgtree-helper") as tid:
            threads = capture()[os.getpid()].threads

        assert ThreadInfo(tid=tid, name="pgtree-helper") in threads

    @pytest.mark.skipif(not psutil.LINUX, reason="thread names are read from /proc")
    def test_undecodable_thread_name(self):
        """Test a thread name that is not valid UTF-8 is replaced, not fatal."""
        with _thread_with_comm(b"bad\xff\xfename") as tid:
            threads = capture()[os.getpid()].threads

        assert ThreadInfo(tid=tid, name="bad\ufffd\ufffdname") in threads


@contextmanager
def _thread_with_comm(comm: bytes):
    """Run a helper thread that renames itself to comm, yielding its tid."""
    ready = threading.Event()
    done = threading.Event()
    info: dict[str, int] = {}

    def run():
        try:
            tid = threading.get_native_id()
            with open(f"/proc/{os.getpid()}/task/{tid}/comm", "wb") as f:
                f.write(comm)
            info["tid"] = tid
        finally:
            ready.set()
        done.wait(timeout=10.0)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    try:
        assert ready.wait(timeout=5.0)
        assert "tid" in info, "helper thread could not set its name"
        yield info["tid"]
    finally:
        done.set()
        thread.join(timeout=5.0)
