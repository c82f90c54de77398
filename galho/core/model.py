from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class ChildrenState(Enum):
    # Children exist remotely but have not been fetched yet.
    UNLOADED = "unloaded"


UNLOADED = ChildrenState.UNLOADED


class DropPosition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    CHILD = "child"


@dataclass(frozen=True)
class TreeNode:
    id: str
    name: str
    # None = no children, UNLOADED = not fetched yet, tuple = loaded
    children: Union[None, ChildrenState, Tuple["TreeNode", ...]] = ()

    # UI
    expanded: bool = False
    has_children: bool = False

    parent_id: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        return isinstance(self.children, tuple)

    @property
    def is_unloaded(self) -> bool:
        return self.children is UNLOADED

    @property
    def is_loading(self) -> bool:
        return self.expanded and self.is_unloaded

    @property
    def loaded_children(self) -> Tuple["TreeNode", ...]:
        if isinstance(self.children, tuple):
            return self.children
        return ()

    @property
    def can_expand(self) -> bool:
        """Whether the UI should offer an expand affordance."""
        return self.has_children or bool(self.loaded_children)


Tree = Tuple[TreeNode, ...]


@dataclass(frozen=True)
class NodeLocation:
    node: TreeNode
    parent: Optional[TreeNode]
    index: int
    siblings: Tree


@dataclass(frozen=True)
class DragItem:
    id: str
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class LoadRequest:
    """Pending lazy load issued by an expand; stale once `generation` moves on."""

    node_id: str
    depth: int
    generation: int


@dataclass(frozen=True)
class MoveResult:
    tree: Tree
    moved: bool = False
    reason: str = ""
