"""Process table capture for pgtree."""

import logging

import psutil

from pgtree.errors import PermissionDenied, SnapshotUnavailable
from pgtree.models import ProcessRecord, ProcessSnapshot, ThreadInfo

logger = logging.getLogger(__name__)


def capture() -> ProcessSnapshot:
    """
    Capture every process visible to the current user.

    Uses psutil.pids() for enumeration and Process.oneshot() for efficient
    per-process reads. Processes that exit mid-capture are dropped, and
    processes whose identity cannot be read are omitted without being
    reported individually.

    Raises:
        SnapshotUnavailable: The process table could not be enumerated.
    """
    try:
        pids = psutil.pids()
    except (OSError, psutil.Error) as exc:
        raise SnapshotUnavailable(f"cannot enumerate processes: {exc}") from exc

    records: list[ProcessRecord] = []
    denied = 0

    for pid in pids:
        # pid 0 is a kernel pseudo-process on some platforms and is its own parent
        if pid <= 0:
            continue
        try:
            records.append(_read_record(pid))
        except PermissionDenied:
            denied += 1
            logger.debug(f"Skipping process {pid}: permission denied")
        except psutil.NoSuchProcess:
            # Exited between enumeration and read
            continue

    logger.debug(f"Captured {len(records)} processes ({denied} unreadable)")
    return ProcessSnapshot.from_records(records)


def _read_record(pid: int) -> ProcessRecord:
    """
    Read a single process into a ProcessRecord.

    Parent id and name are required; an unreadable command line or thread
    list degrades to an empty tuple so the process still links its tree.
    A zombie keeps whatever identity psutil could report for it.
    """
    ppid = name = None
    try:
        proc = psutil.Process(pid)
        with proc.oneshot():
            ppid = proc.ppid()
            name = proc.name()
            cmdline = _read_cmdline(proc)
            threads = _read_threads(proc, name)
    except psutil.ZombieProcess as exc:
        logger.debug(f"Process {pid} is a zombie, keeping it without details")
        return ProcessRecord(
            pid=pid,
            ppid=(exc.ppid if ppid is None else ppid) or None,
            name=name or exc.name or "",
        )
    except psutil.AccessDenied as exc:
        raise PermissionDenied(pid) from exc

    return ProcessRecord(
        pid=pid,
        ppid=ppid or None,
        name=name or "",
        cmdline=cmdline,
        threads=threads,
    )


def _read_cmdline(proc: psutil.Process) -> tuple[str, ...]:
    try:
        return tuple(proc.cmdline())
    except (psutil.AccessDenied, psutil.ZombieProcess):
        return ()


def _read_threads(proc: psutil.Process, default_name: str) -> tuple[ThreadInfo, ...]:
    """List the process's threads other than its main thread, by tid."""
    try:
        tids = sorted(t.id for t in proc.threads())
    except (psutil.AccessDenied, psutil.ZombieProcess):
        return ()

    return tuple(
        ThreadInfo(tid=tid, name=_thread_name(proc.pid, tid, default_name))
        for tid in tids
        if tid != proc.pid
    )


def _thread_name(pid: int, tid: int, default: str) -> str:
    """Read a thread's name from /proc on Linux, else fall back to the process name."""
    if not psutil.LINUX:
        return default
    try:
        with open(f"/proc/{pid}/task/{tid}/comm", "rb") as f:
            # comm holds raw bytes set by the thread itself
            return f.read().decode("utf-8", errors="replace").strip() or default
    except OSError:
        return default
