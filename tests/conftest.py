"""Shared test fixtures."""

import pytest

from pgtree.models import ProcessRecord, ProcessSnapshot, ThreadInfo


@pytest.fixture
def worker_snapshot() -> ProcessSnapshot:
    """init -> shell -> two workers, the second with one extra thread."""
    return ProcessSnapshot.from_records(
        [
            ProcessRecord(pid=1, ppid=0, name="init", cmdline=("/sbin/init",)),
            ProcessRecord(pid=2, ppid=1, name="shell", cmdline=("bash", "-c", "run")),
            ProcessRecord(pid=3, ppid=2, name="worker", cmdline=("worker", "--id", "3")),
            ProcessRecord(
                pid=4,
                ppid=2,
                name="worker",
                cmdline=("worker", "--id", "4"),
                threads=(ThreadInfo(tid=41, name="worker-io"),),
            ),
        ],
        captured_at=1000.0,
    )
