"""
Tree Mutation Engine.

Pure functions over immutable tree values. Every operation returns a new tree
and only rebuilds the containers on the path from the roots to the node it
touches; every other subtree is handed back as the very same object, so a
renderer can skip branches by identity.
"""
import dataclasses
import logging
from typing import Callable, Iterator, Optional

from galho.core.errors import TreeIntegrityError
from galho.core.model import DropPosition, MoveResult, NodeLocation, Tree, TreeNode

Updater = Callable[[TreeNode], TreeNode]


# --- LOOKUP ---

def find_node_and_location(
    tree: Tree,
    node_id: Optional[str],
    visible_only: bool = False,
    parent: Optional[TreeNode] = None,
) -> Optional[NodeLocation]:
    """
    Locates a node with its parent, sibling index and sibling sequence.

    A None id is the root drop zone and never has a location. With
    visible_only=True the search skips collapsed subtrees, which gives the set
    of nodes a user can actually point at.
    """
    if node_id is None:
        return None

    for index, node in enumerate(tree):
        if node.id == node_id:
            return NodeLocation(node=node, parent=parent, index=index, siblings=tree)

        if visible_only and not node.expanded:
            continue

        if node.loaded_children:
            found = find_node_and_location(node.loaded_children, node_id, visible_only, node)
            if found:
                return found

    return None


def find_node(tree: Tree, node_id: Optional[str]) -> Optional[TreeNode]:
    location = find_node_and_location(tree, node_id)
    return location.node if location else None


def iter_nodes(tree: Tree) -> Iterator[TreeNode]:
    for node in tree:
        yield node
        yield from iter_nodes(node.loaded_children)


def count_nodes(tree: Tree) -> int:
    return sum(1 for _ in iter_nodes(tree))


def node_depth(tree: Tree, node_id: str) -> int:
    """Number of ancestors of node_id (0 for roots, -1 when absent)."""

    def walk(nodes: Tree, depth: int) -> int:
        for node in nodes:
            if node.id == node_id:
                return depth
            found = walk(node.loaded_children, depth + 1)
            if found >= 0:
                return found
        return -1

    return walk(tree, 0)


# --- UPDATE / INSERT / REMOVE ---

def update_node_in_tree(tree: Tree, node_id: str, updater: Updater) -> Tree:
    """
    Replaces the node with updater(node), regardless of expansion state.

    Returns the input tree object itself when node_id is absent.
    """
    for index, node in enumerate(tree):
        if node.id == node_id:
            return tree[:index] + (updater(node),) + tree[index + 1:]

        if node.loaded_children:
            new_children = update_node_in_tree(node.children, node_id, updater)
            if new_children is not node.children:
                new_node = dataclasses.replace(node, children=new_children)
                return tree[:index] + (new_node,) + tree[index + 1:]

    return tree


def add_node_to_tree(tree: Tree, parent_id: Optional[str], new_node: TreeNode) -> Tree:
    """
    Appends new_node to the roots (parent_id None) or to the children of parent_id.

    The parent is expanded so the new node is visible. A missing parent leaves
    the tree unchanged.
    """
    if parent_id is None:
        return tree + (dataclasses.replace(new_node, parent_id=None),)

    def adopt(parent: TreeNode) -> TreeNode:
        child = dataclasses.replace(new_node, parent_id=parent.id)
        return dataclasses.replace(
            parent,
            children=parent.loaded_children + (child,),
            has_children=True,
            expanded=True,
        )

    return update_node_in_tree(tree, parent_id, adopt)


def remove_node_from_tree(tree: Tree, node_id: str) -> Tree:
    """
    Drops node_id and its whole subtree.

    Every ancestor whose children shrank gets has_children recomputed from
    what is left. Returns the input tree object itself when node_id is absent.
    """
    for index, node in enumerate(tree):
        if node.id == node_id:
            return tree[:index] + tree[index + 1:]

        if node.loaded_children:
            new_children = remove_node_from_tree(node.children, node_id)
            if new_children is not node.children:
                new_node = dataclasses.replace(
                    node,
                    children=new_children,
                    has_children=len(new_children) > 0,
                )
                return tree[:index] + (new_node,) + tree[index + 1:]

    return tree


# --- ANCESTRY ---

def is_ancestor(ancestor_id: str, descendant_id: str, tree: Tree) -> bool:
    ancestor = find_node(tree, ancestor_id)
    if ancestor is None:
        return False

    return any(node.id == descendant_id for node in iter_nodes(ancestor.loaded_children))


# --- MOVE ---

def move_node(
    tree: Tree,
    dragged_id: Optional[str],
    target_id: Optional[str],
    position: DropPosition,
) -> MoveResult:
    """
    Moves dragged_id next to (above/below) or into (child) target_id.

    A None target is the root drop zone: the node goes to the end of the roots.
    Dropping a node onto itself or one of its descendants is rejected.
    """
    position = DropPosition(position)

    if dragged_id is None or dragged_id == target_id:
        return MoveResult(tree, reason="nothing to move")

    # Values are immutable, so the extracted node is already detached from `tree`.
    dragged = find_node(tree, dragged_id)
    if dragged is None:
        return MoveResult(tree, reason=f"dragged node {dragged_id} not found")

    if target_id is not None:
        if find_node(tree, target_id) is None:
            return MoveResult(tree, reason=f"target node {target_id} not found")

        if is_ancestor(dragged_id, target_id, tree):
            logging.warning(f"Cannot drop {dragged_id} into its own descendant {target_id}.")
            return MoveResult(tree, reason="target is a descendant of the dragged node")

    tree_after_removal = remove_node_from_tree(tree, dragged_id)

    if target_id is None:
        moved = dataclasses.replace(dragged, parent_id=None)
        return MoveResult(tree_after_removal + (moved,), moved=True)

    if position is DropPosition.CHILD:
        new_tree = add_node_to_tree(tree_after_removal, target_id, dragged)
        return MoveResult(new_tree, moved=True)

    target = find_node_and_location(tree_after_removal, target_id)
    insert_at = target.index if position is DropPosition.ABOVE else target.index + 1
    new_parent_id = target.parent.id if target.parent else None

    moved = dataclasses.replace(dragged, parent_id=new_parent_id)
    new_siblings = target.siblings[:insert_at] + (moved,) + target.siblings[insert_at:]

    if new_parent_id is None:
        return MoveResult(new_siblings, moved=True)

    new_tree = update_node_in_tree(
        tree_after_removal,
        new_parent_id,
        lambda parent: dataclasses.replace(parent, children=new_siblings, has_children=True),
    )
    return MoveResult(new_tree, moved=True)


# --- STRUCTURE ---

def set_parent_ids(tree: Tree, parent_id: Optional[str] = None) -> Tree:
    """Rewrites parent_id on every loaded node from its actual position."""
    fixed = []
    for node in tree:
        if node.is_loaded:
            node = dataclasses.replace(node, children=set_parent_ids(node.children, node.id))
        fixed.append(dataclasses.replace(node, parent_id=parent_id))
    return tuple(fixed)


def validate_tree(tree: Tree) -> None:
    """Raises TreeIntegrityError on the first duplicate id, bad parent_id or cycle."""
    seen = set()
    path = []

    def walk(nodes: Tree, parent_id: Optional[str]) -> None:
        for node in nodes:
            if node.id in path:
                raise TreeIntegrityError(f"Cycle: {node.id} is its own ancestor")
            if node.id in seen:
                raise TreeIntegrityError(f"Duplicate id: {node.id}")
            if node.parent_id != parent_id:
                raise TreeIntegrityError(
                    f"Node {node.id} has parent_id {node.parent_id!r}, expected {parent_id!r}"
                )
            seen.add(node.id)

            path.append(node.id)
            walk(node.loaded_children, node.id)
            path.pop()

    walk(tree, None)
