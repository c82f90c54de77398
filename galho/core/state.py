import dataclasses
import logging
from typing import Dict, Iterable, Optional, Set

from galho.core import tree_ops
from galho.core.errors import LoaderError
from galho.core.ids import IdGenerator, generate_id
from galho.core.model import DragItem, DropPosition, LoadRequest, Tree, TreeNode


class TreeState:
    """
    Holds the current tree value and the active drag.

    Each action swaps `tree` for a new value computed by tree_ops; the old
    value is never touched, so anything still holding it keeps seeing the
    state it was rendered from.
    """

    def __init__(self, tree: Optional[Iterable[TreeNode]] = None, id_generator: Optional[IdGenerator] = None) -> None:
        self.tree: Tree = tuple(tree or ())
        self.id_generator = id_generator or generate_id
        self.dragging: Optional[DragItem] = None
        self.failed_loads: Set[str] = set()
        self._generations: Dict[str, int] = {}
        self._pending: Dict[str, int] = {}

    # --- READ ---

    def find(self, node_id: Optional[str]) -> Optional[TreeNode]:
        return tree_ops.find_node(self.tree, node_id)

    @property
    def is_dragging(self) -> bool:
        return self.dragging is not None

    @property
    def dragged_id(self) -> Optional[str]:
        return self.dragging.id if self.dragging else None

    def load_pending(self, node_id: str) -> bool:
        return node_id in self._pending

    # --- EXPAND / LAZY LOAD ---

    def toggle_expand(self, node_id: str) -> Optional[LoadRequest]:
        """
        Flips `expanded` on node_id.

        Returns a LoadRequest when the node was just expanded and its children
        still have to be fetched; the caller runs the loader and reports back
        through install_children or fail_load.
        """
        node = self.find(node_id)
        if node is None:
            return None

        generation = self._generations.get(node_id, 0) + 1
        self._generations[node_id] = generation

        expanding = not node.expanded
        self.tree = tree_ops.update_node_in_tree(
            self.tree, node_id, lambda n: dataclasses.replace(n, expanded=expanding)
        )

        if not (expanding and node.is_unloaded):
            self._pending.pop(node_id, None)
            return None

        self.failed_loads.discard(node_id)
        self._pending[node_id] = generation
        depth = tree_ops.node_depth(self.tree, node_id)
        logging.debug(f"Lazy load requested for {node_id} (depth {depth}, generation {generation})")
        return LoadRequest(node_id=node_id, depth=depth, generation=generation)

    def _is_current(self, request: LoadRequest) -> bool:
        if self._pending.get(request.node_id) != request.generation:
            return False
        node = self.find(request.node_id)
        return node is not None and node.is_unloaded

    def install_children(self, request: LoadRequest, children: Iterable[TreeNode]) -> bool:
        if not self._is_current(request):
            logging.debug(f"Discarding stale load for {request.node_id} (generation {request.generation})")
            return False

        del self._pending[request.node_id]
        loaded = tuple(dataclasses.replace(child, parent_id=request.node_id) for child in children)
        self.tree = tree_ops.update_node_in_tree(
            self.tree,
            request.node_id,
            lambda n: dataclasses.replace(n, children=loaded, has_children=len(loaded) > 0),
        )
        return True

    def fail_load(self, request: LoadRequest, error: Exception) -> bool:
        """Leaves the node unloaded and collapsed so expanding it again retries."""
        if not self._is_current(request):
            return False

        logging.error(f"Failed to load children of {request.node_id}: {error}")
        del self._pending[request.node_id]
        self.failed_loads.add(request.node_id)
        self.tree = tree_ops.update_node_in_tree(
            self.tree, request.node_id, lambda n: dataclasses.replace(n, expanded=False)
        )
        return True

    async def expand(self, node_id: str, loader) -> bool:
        """Runs both halves of the lazy-load protocol. Returns True if children were installed."""
        request = self.toggle_expand(node_id)
        if request is None:
            return False

        try:
            children = await loader.load(request.node_id, request.depth)
        except LoaderError as e:
            self.fail_load(request, e)
            return False

        return self.install_children(request, children)

    # --- EDIT ---

    def add_node(self, parent_id: Optional[str], name: Optional[str]) -> Optional[TreeNode]:
        name = (name or "").strip()
        if not name:
            return None
        if parent_id is not None and self.find(parent_id) is None:
            return None

        node = TreeNode(id=self.id_generator(), name=name, children=(), parent_id=parent_id)
        self.tree = tree_ops.add_node_to_tree(self.tree, parent_id, node)
        logging.info(f"Added {node.id} ({name}) under {parent_id or 'root'}")
        return self.find(node.id)

    def remove_node(self, node_id: str) -> bool:
        new_tree = tree_ops.remove_node_from_tree(self.tree, node_id)
        if new_tree is self.tree:
            return False

        self.tree = new_tree
        self._forget_missing()
        logging.info(f"Removed {node_id}")
        return True

    def rename_node(self, node_id: str, new_name: Optional[str]) -> bool:
        new_name = (new_name or "").strip()
        node = self.find(node_id)
        if not new_name or node is None or node.name == new_name:
            return False

        self.tree = tree_ops.update_node_in_tree(
            self.tree, node_id, lambda n: dataclasses.replace(n, name=new_name)
        )
        return True

    def _forget_missing(self) -> None:
        alive = {node.id for node in tree_ops.iter_nodes(self.tree)}
        self._pending = {k: v for k, v in self._pending.items() if k in alive}
        self._generations = {k: v for k, v in self._generations.items() if k in alive}
        self.failed_loads &= alive
        if self.dragging and self.dragging.id not in alive:
            self.dragging = None

    # --- DRAG AND DROP ---

    def start_drag(self, node_id: str) -> bool:
        if self.dragging is not None:
            logging.debug(f"Ignoring drag of {node_id}: {self.dragging.id} is already being dragged")
            return False

        node = self.find(node_id)
        if node is None:
            return False

        self.dragging = DragItem(id=node.id, parent_id=node.parent_id)
        return True

    def cancel_drag(self) -> None:
        self.dragging = None

    def drop_on(self, target_id: Optional[str], position: DropPosition) -> bool:
        dragging, self.dragging = self.dragging, None
        if dragging is None:
            return False

        result = tree_ops.move_node(self.tree, dragging.id, target_id, position)
        if not result.moved:
            logging.debug(f"Drop of {dragging.id} on {target_id} ignored: {result.reason}")
            return False

        self.tree = result.tree
        logging.info(f"Moved {dragging.id} {DropPosition(position).value} {target_id or 'root'}")
        return True
