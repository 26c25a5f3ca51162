"""Error types for pgtree.

Only SnapshotUnavailable is fatal. PermissionDenied is raised and handled
inside snapshot capture, and NoMatches is left for the caller to map to an
exit status.
"""


class PgtreeError(Exception):
    """Base class for pgtree errors."""


class SnapshotUnavailable(PgtreeError):
    """The process table itself could not be enumerated."""


class PermissionDenied(PgtreeError):
    """A single process could not be read."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"permission denied reading process {pid}")
        self.pid = pid


class NoMatches(PgtreeError):
    """No running process matched the pattern."""

    def __init__(self, pattern: str) -> None:
        super().__init__(f"no process found matching {pattern!r}")
        self.pattern = pattern
