"""Name-based process matching for pgtree."""

from pgtree.errors import NoMatches
from pgtree.models import ProcessSnapshot


def match(snapshot: ProcessSnapshot, pattern: str, exact: bool = False) -> list[int]:
    """
    Find the pids whose executable name matches pattern.

    Matching is case-sensitive: a substring match by default, an exact
    name comparison when exact is set. Pids come back in snapshot
    discovery order, each once.

    Raises:
        ValueError: pattern is empty.
        NoMatches: No process matched.
    """
    if not pattern:
        raise ValueError("pattern must be a non-empty string")

    if exact:
        pids = [pid for pid, record in snapshot.items() if record.name == pattern]
    else:
        pids = [pid for pid, record in snapshot.items() if pattern in record.name]

    if not pids:
        raise NoMatches(pattern)
    return pids
