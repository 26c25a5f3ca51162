"""pgtree command line entry point.

Exit codes:
    0 - At least one process matched and its tree was printed
    1 - No process matched the pattern
    2 - Usage error
    3 - The process table could not be read
"""

import argparse
import logging
import sys

from pgtree.builder import build
from pgtree.errors import NoMatches, SnapshotUnavailable
from pgtree.matcher import match
from pgtree.render import RenderOptions, render_trees
from pgtree.snapshot import capture

EXIT_OK = 0
EXIT_NO_MATCHES = 1
EXIT_SNAPSHOT_UNAVAILABLE = 3

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pgtree",
        description="Show the process tree around every process whose name matches PATTERN.",
    )
    parser.add_argument("pattern", help="process name, or part of one (case-sensitive)")
    parser.add_argument(
        "--arguments",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="show full command lines (default: on)",
    )
    parser.add_argument(
        "--long-names",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="show thread names under each process (default: on)",
    )
    parser.add_argument("-x", "--exact", action="store_true", help="match the whole process name")
    parser.add_argument("-A", "--ascii", action="store_true", help="draw the tree with ASCII characters")
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        metavar="N",
        help="build at most N trees in parallel (default: one per tree)",
    )
    parser.add_argument("--tui", action="store_true", help="browse the trees in an interactive viewer")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug details to stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run pgtree and return its exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.pattern:
        parser.error("pattern must not be empty")
    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        snapshot = capture()
    except SnapshotUnavailable as exc:
        print(f"pgtree: cannot read the process table: {exc}", file=sys.stderr)
        return EXIT_SNAPSHOT_UNAVAILABLE

    try:
        seeds = match(snapshot, args.pattern, exact=args.exact)
    except NoMatches as exc:
        print(f"pgtree: {exc}", file=sys.stderr)
        return EXIT_NO_MATCHES

    logger.debug(f"Matched {len(seeds)} processes: {seeds}")
    trees = build(snapshot, seeds, max_workers=args.jobs)
    options = RenderOptions(
        show_arguments=args.arguments,
        show_long_names=args.long_names,
        ascii=args.ascii,
    )

    if args.tui:
        from pgtree.app import PgtreeApp

        PgtreeApp(trees, options, pattern=args.pattern).run()
        return EXIT_OK

    for index, tree in enumerate(trees):
        block = render_trees([tree], options)
        if index:
            block = "\n" + block
        sys.stdout.write(block)
        sys.stdout.flush()

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
