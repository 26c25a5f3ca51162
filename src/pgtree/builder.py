"""Process tree reconstruction for pgtree."""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from pgtree.models import ProcessSnapshot, TreeNode

logger = logging.getLogger(__name__)


def resolve_display_root(snapshot: ProcessSnapshot, pid: int) -> int:
    """
    Find the highest ancestor of pid still present in the snapshot.

    The upward walk stops when the next parent is missing from the snapshot,
    which is the normal case for the topmost live process. If the parent
    chain loops back on itself, the smallest pid on the loop is the root, so
    resolving a display root always returns that same root.

    Raises:
        KeyError: pid is not in the snapshot.
    """
    position = {pid: 0}
    path = [pid]
    current = pid

    while True:
        parent = snapshot[current].ppid
        if parent is None or parent not in snapshot:
            return current
        if parent in position:
            loop = path[position[parent]:]
            logger.debug(f"Parent chain of {pid} loops through {loop}")
            return min(loop)
        position[parent] = len(path)
        path.append(parent)
        current = parent


def build_tree(snapshot: ProcessSnapshot, root_pid: int) -> TreeNode:
    """
    Build the full descendant tree below root_pid.

    Children are ordered by pid. A pid is placed at most once; an edge that
    leads back to an already placed pid is not followed and its parent node
    is marked cycle_truncated instead.
    """
    children = snapshot.children_index()
    root = TreeNode(snapshot[root_pid])
    placed = {root_pid}
    pending = [root]

    while pending:
        node = pending.pop()
        for child_pid in children.get(node.pid, ()):
            if child_pid in placed:
                logger.debug(f"Cycle at {node.pid} -> {child_pid}, truncating")
                node.cycle_truncated = True
                continue
            placed.add(child_pid)
            child = TreeNode(snapshot[child_pid])
            node.children.append(child)
            pending.append(child)

    return root


def build(
    snapshot: ProcessSnapshot,
    seeds: Iterable[int],
    max_workers: int | None = None,
) -> list[TreeNode]:
    """
    Build one tree per seed, in seed order.

    Seeds that resolve to the same display root share a single TreeNode.
    Distinct trees are built on a thread pool sized by the number of
    distinct roots (capped by max_workers); the snapshot is never mutated,
    so no locking is needed. Seeds absent from the snapshot are skipped.
    """
    roots: list[int] = []
    for seed in seeds:
        if seed not in snapshot:
            logger.debug(f"Seed {seed} is not in the snapshot, skipping")
            continue
        roots.append(resolve_display_root(snapshot, seed))

    distinct = list(dict.fromkeys(roots))
    snapshot.children_index()  # populate the cache before any worker reads it
    if len(distinct) <= 1 or max_workers == 1:
        trees = [build_tree(snapshot, root) for root in distinct]
    else:
        workers = min(len(distinct), max_workers or len(distinct))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="TreeBuilder") as pool:
            trees = list(pool.map(lambda root: build_tree(snapshot, root), distinct))

    by_root = dict(zip(distinct, trees))
    return [by_root[root] for root in roots]
