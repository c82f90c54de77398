from galho.core.ids import IdGenerator, generate_id
from galho.core.model import UNLOADED, Tree, TreeNode
from galho.core.tree_ops import set_parent_ids


def create_initial_tree(new_id: IdGenerator = generate_id) -> Tree:
    """Seed tree shown when the app starts: two lazy branches and a couple of leaves."""
    raw = (
        TreeNode(new_id(), "Root A (Lazy Children)", children=UNLOADED, has_children=True),
        TreeNode(
            new_id(),
            "Root B",
            children=(
                TreeNode(new_id(), "Child B1 (Lazy Children)", children=UNLOADED, has_children=True),
                TreeNode(new_id(), "Child B2"),
            ),
            has_children=True,
        ),
        TreeNode(new_id(), "Root C (No Children)"),
    )
    return set_parent_ids(raw)
