"""pgtree - Textual viewer for captured process trees."""

from collections.abc import Iterable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Tree
from textual.widgets.tree import TreeNode as WidgetNode

from pgtree.models import TreeNode
from pgtree.render import RenderOptions, format_label, format_thread


class PgtreeApp(App):
    """
    Browse the trees of one snapshot interactively.

    The trees are shown as captured; the view is never refreshed.
    """

    TITLE = "pgtree"
    SUB_TITLE = "Process tree viewer"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("e", "expand_all", "Expand all"),
        ("c", "collapse_all", "Collapse all"),
    ]

    def __init__(
        self,
        trees: Iterable[TreeNode],
        options: RenderOptions | None = None,
        pattern: str = "",
    ) -> None:
        """
        Initialize the PgtreeApp.

        Args:
            trees: One tree per matched process, in match order.
            options: Label verbosity; the ascii setting is ignored.
            pattern: The pattern the trees were matched with.
        """
        super().__init__()
        self._trees = list(trees)
        self._options = options or RenderOptions()
        self._pattern = pattern

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        label = Text(f"{self._pattern} ({len(self._trees)} matches)")
        yield Tree(label, id="process-tree")
        yield Footer()

    def on_mount(self) -> None:
        """Populate the tree widget."""
        if self._pattern:
            self.sub_title = f"matching {self._pattern!r}"
        tree = self.query_one("#process-tree", Tree)
        tree.root.expand()
        for root in self._trees:
            self._add_node(tree.root, root)

    def _add_node(self, parent: WidgetNode, node: TreeNode) -> None:
        label = Text(format_label(node, self._options))
        threads = node.record.threads if self._options.show_long_names else ()
        if not threads and not node.children:
            parent.add_leaf(label, data=node.pid)
            return

        branch = parent.add(label, data=node.pid, expand=True)
        for thread in threads:
            branch.add_leaf(Text(format_thread(thread)), data=thread.tid)
        for child in node.children:
            self._add_node(branch, child)

    def action_expand_all(self) -> None:
        """Expand every branch."""
        self.query_one("#process-tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        """Collapse every branch below the top level."""
        root = self.query_one("#process-tree", Tree).root
        root.collapse_all()
        root.expand()
