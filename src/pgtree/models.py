"""Data models for pgtree."""

import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class ThreadInfo:
    """A thread belonging to a process."""

    tid: int
    name: str


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable record of one process at capture time."""

    pid: int
    ppid: int | None  # 0 or None for the root of the OS process tree
    name: str
    cmdline: tuple[str, ...] = ()
    threads: tuple[ThreadInfo, ...] = ()


class ProcessSnapshot(Mapping[int, ProcessRecord]):
    """
    Read-only mapping of pid to ProcessRecord.

    Iteration follows discovery order. Parent ids may point outside the
    snapshot; consumers treat such ids as the snapshot boundary.
    """

    __slots__ = ("_records", "_children", "captured_at")

    def __init__(self, records: Mapping[int, ProcessRecord], captured_at: float | None = None) -> None:
        self._records = dict(records)
        self._children: dict[int, list[int]] | None = None
        self.captured_at = time.time() if captured_at is None else captured_at

    @classmethod
    def from_records(cls, records: Iterable[ProcessRecord], captured_at: float | None = None) -> "ProcessSnapshot":
        """Build a snapshot from records; a repeated pid keeps its first record."""
        by_pid: dict[int, ProcessRecord] = {}
        for record in records:
            by_pid.setdefault(record.pid, record)
        return cls(by_pid, captured_at=captured_at)

    def __getitem__(self, pid: int) -> ProcessRecord:
        return self._records[pid]

    def __iter__(self) -> Iterator[int]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"ProcessSnapshot({len(self._records)} processes)"

    def children_index(self) -> dict[int, list[int]]:
        """
        Group pids by parent pid.

        Each child list is sorted ascending. The index is computed once and
        cached; callers must not modify it.
        """
        if self._children is None:
            children: dict[int, list[int]] = {}
            for record in self._records.values():
                if record.ppid is not None:
                    children.setdefault(record.ppid, []).append(record.pid)
            for pids in children.values():
                pids.sort()
            self._children = children
        return self._children


@dataclass(slots=True)
class TreeNode:
    """A process placed in a rendered tree."""

    record: ProcessRecord
    children: list["TreeNode"] = field(default_factory=list)
    cycle_truncated: bool = False  # descent stopped at an already placed pid

    @property
    def pid(self) -> int:
        return self.record.pid

    def depth_first(self, depth: int = 0) -> Iterator[tuple[int, "TreeNode"]]:
        """Yield (depth, node) pairs in pre-order."""
        yield depth, self
        for child in self.children:
            yield from child.depth_first(depth + 1)
