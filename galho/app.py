import logging
from typing import Callable, Dict, Optional

from rich.markup import escape
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Footer, Header, Input, Label, Tree

from galho.__version__ import __version__
from galho.config import Settings
from galho.core.errors import LoaderError
from galho.core.model import DropPosition, LoadRequest, TreeNode
from galho.core.sample import create_initial_tree
from galho.core.state import TreeState
from galho.core.tree_ops import count_nodes, find_node_and_location
from galho.loaders import ChildLoader, build_loader


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no question. Escape counts as no."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
        background: rgba(0, 0, 0, 0.6);
    }
    #dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: heavy $error;
        background: $surface;
    }
    #question { width: 100%; margin-bottom: 1; }
    #buttons { height: auto; align: center middle; }
    #buttons Button { margin: 0 1; }
    """

    def __init__(self, question: str) -> None:
        super().__init__()
        self.question = question

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(self.question, id="question"),
            Horizontal(
                Button("Yes", variant="error", id="yes"),
                Button("No", variant="primary", id="no"),
                id="buttons",
            ),
            id="dialog",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def key_escape(self) -> None:
        self.dismiss(False)


class NameScreen(ModalScreen[Optional[str]]):
    """Asks for a node name. Escape returns None."""

    DEFAULT_CSS = """
    NameScreen {
        align: center middle;
        background: rgba(0, 0, 0, 0.6);
    }
    #dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: heavy $primary;
        background: $surface;
    }
    """

    def __init__(self, title: str, initial: str = "") -> None:
        super().__init__()
        self.title_text = title
        self.initial = initial

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(self.title_text),
            Input(value=self.initial, placeholder="Node name", id="name-input"),
            id="dialog",
        )

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def key_escape(self) -> None:
        self.dismiss(None)


class GalhoApp(App):
    TITLE = "Galho"
    SUB_TITLE = f"v{__version__}"

    DEFAULT_CSS = """
    Screen { layout: vertical; }

    #info-bar {
        height: 3;
        dock: top;
        background: $surface;
        border-bottom: solid $primary;
        align: left middle;
        padding: 0 1;
    }

    .info-label {
        width: auto;
        height: 1;
        padding: 0 2;
        color: $text;
    }

    #node-tree { height: 1fr; margin: 0 1; padding: 1; background: $surface; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("l", "expand_node", "Expand"),
        Binding("h", "collapse_node", "Collapse"),
        Binding("a", "add_child", "Add"),
        Binding("A", "add_root", "Add root"),
        Binding("r", "rename_node", "Rename"),
        Binding("d", "remove_node", "Delete"),
        Binding("m", "start_move", "Move"),
        Binding("u", "drop('above')", "Drop above", show=False),
        Binding("b", "drop('below')", "Drop below", show=False),
        Binding("c", "drop('child')", "Drop into", show=False),
        Binding("t", "drop_root", "Drop at root", show=False),
        Binding("escape", "cancel_move", "Cancel move", show=False),
    ]

    def __init__(
        self,
        settings: Optional[Settings] = None,
        state: Optional[TreeState] = None,
        loader: Optional[ChildLoader] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self.state = state or TreeState(create_initial_tree())
        self.loader = loader or build_loader(self.settings, self.state.id_generator)
        self._tree_nodes: Dict[str, object] = {}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Horizontal(id="info-bar"):
            yield Label(f"[b]Loader:[/b] [cyan]{self.loader.name}[/]", id="lbl-loader", classes="info-label")
            yield Label("", id="lbl-total", classes="info-label")
            yield Label("", id="lbl-move", classes="info-label")

        yield Tree("Root", id="node-tree")
        yield Footer()

    def on_mount(self) -> None:
        tree = self.query_one("#node-tree", Tree)
        tree.show_root = False
        self.render_tree()
        tree.focus()

    # --- HELPERS ---

    @property
    def cursor_id(self) -> Optional[str]:
        node = self.query_one("#node-tree", Tree).cursor_node
        return node.data if node else None

    def cursor_node(self) -> Optional[TreeNode]:
        return self.state.find(self.cursor_id)

    def ask_name(self, title: str, on_name: Callable[[str], None], initial: str = "") -> None:
        def handle(name: Optional[str]) -> None:
            if name and name.strip():
                on_name(name)

        self.push_screen(NameScreen(title, initial), handle)

    # --- EXPAND / LAZY LOAD ---

    def toggle(self, node_id: str) -> None:
        request = self.state.toggle_expand(node_id)
        self.render_tree()
        if request:
            self.load_children(request)

    @work(thread=False)
    async def load_children(self, request: LoadRequest) -> None:
        logging.info(f"Loading children of {request.node_id} with {self.loader.name} loader...")
        try:
            children = await self.loader.load(request.node_id, request.depth)
        except LoaderError as e:
            if self.state.fail_load(request, e):
                self.notify(f"Could not load children: {e}", severity="error")
        else:
            self.state.install_children(request, children)

        self.render_tree()

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        node = self.state.find(event.node.data)
        if node and not node.expanded:
            self.toggle(node.id)

    def on_tree_node_collapsed(self, event: Tree.NodeCollapsed) -> None:
        node = self.state.find(event.node.data)
        if node and node.expanded:
            self.toggle(node.id)

    def action_expand_node(self) -> None:
        node = self.cursor_node()
        if node and not node.expanded and (node.can_expand or node.is_unloaded):
            self.toggle(node.id)

    def action_collapse_node(self) -> None:
        node = self.cursor_node()
        if node is None:
            return
        if node.expanded:
            self.toggle(node.id)
        elif node.parent_id in self._tree_nodes:
            self.query_one("#node-tree", Tree).move_cursor(self._tree_nodes[node.parent_id])

    # --- EDIT ---

    def action_add_child(self) -> None:
        node = self.cursor_node()
        if node is None:
            self.action_add_root()
            return
        self.ask_name(f"New child of {node.name}", lambda name: self._add(node.id, name))

    def action_add_root(self) -> None:
        self.ask_name("New root node", lambda name: self._add(None, name))

    def _add(self, parent_id: Optional[str], name: str) -> None:
        added = self.state.add_node(parent_id, name)
        self.render_tree(cursor_id=added.id if added else None)

    def action_rename_node(self) -> None:
        node = self.cursor_node()
        if node is None:
            return

        def rename(name: str) -> None:
            if self.state.rename_node(node.id, name):
                self.render_tree()

        self.ask_name(f"Rename {node.name}", rename, initial=node.name)

    def action_remove_node(self) -> None:
        node = self.cursor_node()
        if node is None:
            return

        def remove(confirmed: bool) -> None:
            if confirmed and self.state.remove_node(node.id):
                self.render_tree()

        self.push_screen(
            ConfirmScreen(f"Delete '{escape(node.name)}' and all its children?"), remove
        )

    # --- MOVE ---

    def action_start_move(self) -> None:
        node = self.cursor_node()
        if node and self.state.start_drag(node.id):
            self.notify(f"Moving {node.name}: u/b/c drop above/below/into, t drops at root, esc cancels.")
            self.render_tree()

    def action_cancel_move(self) -> None:
        if self.state.is_dragging:
            self.state.cancel_drag()
            self.render_tree()

    def action_drop(self, position: str) -> None:
        target_id = self.cursor_id
        if target_id is None or find_node_and_location(self.state.tree, target_id, visible_only=True) is None:
            self.notify("Nothing to drop on here.", severity="warning")
            return
        self._drop(target_id, DropPosition(position))

    def action_drop_root(self) -> None:
        self._drop(None, DropPosition.CHILD)

    def _drop(self, target_id: Optional[str], position: DropPosition) -> None:
        if not self.state.is_dragging:
            self.notify("Press m on a node to start moving it.", severity="information")
            return

        dragged_id = self.state.dragged_id
        if not self.state.drop_on(target_id, position):
            self.notify("Cannot move a node there.", severity="warning")
        self.render_tree(cursor_id=dragged_id)

    # --- RENDER ---

    def _label(self, node: TreeNode) -> str:
        label = escape(node.name)

        if node.id == self.state.dragged_id:
            label = f"[reverse]{label}[/]"

        child_count = len(node.loaded_children)
        if child_count > 0:
            label += f" [dim]↳[/] {child_count}"

        if node.is_loading:
            label += " [yellow]loading...[/]"
        elif node.id in self.state.failed_loads:
            label += " [red](load failed, expand to retry)[/]"

        return label

    def update_info_bar(self) -> None:
        self.query_one("#lbl-total", Label).update(f"[b]Nodes:[/b] [blue]{count_nodes(self.state.tree)}[/]")

        dragged = self.state.find(self.state.dragged_id)
        moving = f"[magenta]{escape(dragged.name)}[/]" if dragged else "[dim]idle[/]"
        self.query_one("#lbl-move", Label).update(f"[b]Move:[/b] {moving}")

    def render_tree(self, cursor_id: Optional[str] = None) -> None:
        tree = self.query_one("#node-tree", Tree)
        cursor_id = cursor_id or self.cursor_id

        tree.clear()
        self._tree_nodes = {}

        def add_nodes(tree_node, nodes):
            for node in nodes:
                if node.can_expand or node.is_unloaded:
                    new_node = tree_node.add(self._label(node), data=node.id, expand=node.expanded)
                    add_nodes(new_node, node.loaded_children)
                else:
                    new_node = tree_node.add_leaf(self._label(node), data=node.id)
                self._tree_nodes[node.id] = new_node

        add_nodes(tree.root, self.state.tree)
        self.update_info_bar()

        if cursor_id in self._tree_nodes:
            self.call_after_refresh(tree.move_cursor, self._tree_nodes[cursor_id])
