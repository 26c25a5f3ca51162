"""Text rendering of process trees for pgtree."""

from collections.abc import Iterable
from dataclasses import dataclass

from pgtree.models import ThreadInfo, TreeNode

CYCLE_MARKER = "[...]"


@dataclass(slots=True, frozen=True)
class RenderOptions:
    """Verbosity and glyph settings for rendering."""

    show_arguments: bool = True
    show_long_names: bool = True
    ascii: bool = False


@dataclass(slots=True, frozen=True)
class Glyphs:
    """Connector strings for one tree-drawing style."""

    branch: str  # entry with more siblings below
    last: str  # last entry among its siblings
    pipe: str  # continuation under a branch
    space: str  # continuation under a last entry


UNICODE_GLYPHS = Glyphs(branch="├─ ", last="└─ ", pipe="│  ", space="   ")
ASCII_GLYPHS = Glyphs(branch="|- ", last="`- ", pipe="|  ", space="   ")


def format_label(node: TreeNode, options: RenderOptions) -> str:
    """Format a process node's label without any tree prefix."""
    record = node.record
    label = f"{record.pid} {record.name}"
    if options.show_arguments and record.cmdline:
        label = f"{label} {' '.join(record.cmdline)}"
    if node.cycle_truncated:
        label = f"{label} {CYCLE_MARKER}"
    return label


def format_thread(thread: ThreadInfo) -> str:
    """Format a thread entry as '<tid> {<name>}'."""
    return f"{thread.tid} {{{thread.name}}}"


def render(root: TreeNode, options: RenderOptions | None = None) -> list[str]:
    """
    Render a tree depth-first, pre-order, one line per entry.

    Thread entries, when shown, precede the owning process's child
    processes and share their connector logic.
    """
    options = options or RenderOptions()
    glyphs = ASCII_GLYPHS if options.ascii else UNICODE_GLYPHS
    lines = [format_label(root, options)]
    _render_below(root, "", options, glyphs, lines)
    return lines


def _render_below(
    node: TreeNode,
    prefix: str,
    options: RenderOptions,
    glyphs: Glyphs,
    lines: list[str],
) -> None:
    threads = node.record.threads if options.show_long_names else ()
    remaining = len(threads) + len(node.children)

    for thread in threads:
        remaining -= 1
        connector = glyphs.branch if remaining else glyphs.last
        lines.append(f"{prefix}{connector}{format_thread(thread)}")

    for child in node.children:
        remaining -= 1
        connector = glyphs.branch if remaining else glyphs.last
        lines.append(f"{prefix}{connector}{format_label(child, options)}")
        _render_below(child, prefix + (glyphs.pipe if remaining else glyphs.space), options, glyphs, lines)


def render_trees(trees: Iterable[TreeNode], options: RenderOptions | None = None) -> str:
    """Render several trees separated by a blank line, ending in a newline."""
    blocks = ["\n".join(render(tree, options)) for tree in trees]
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"
