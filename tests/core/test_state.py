import unittest
from unittest.mock import AsyncMock, Mock

from galho.core.errors import LoaderError
from galho.core.ids import IdGenerator
from galho.core.model import UNLOADED, DropPosition, TreeNode
from galho.core.state import TreeState
from galho.core.tree_ops import find_node, set_parent_ids, validate_tree


def make_state():
    """
    A[B, C] expanded, L lazy (unloaded), E leaf.
    """
    roots = set_parent_ids((
        TreeNode("A", "A", children=(TreeNode("B", "B"), TreeNode("C", "C")), expanded=True, has_children=True),
        TreeNode("L", "Lazy", children=UNLOADED, has_children=True),
        TreeNode("E", "E"),
    ))
    return TreeState(roots, IdGenerator(start=1))


class TestToggleExpand(unittest.TestCase):

    def setUp(self):
        self.state = make_state()

    def test_loaded_node_just_flips(self):
        self.assertIsNone(self.state.toggle_expand("A"))
        self.assertFalse(self.state.find("A").expanded)

        self.assertIsNone(self.state.toggle_expand("A"))
        self.assertTrue(self.state.find("A").expanded)

    def test_missing_node(self):
        before = self.state.tree
        self.assertIsNone(self.state.toggle_expand("nope"))
        self.assertIs(self.state.tree, before)

    def test_lazy_load_two_steps(self):
        request = self.state.toggle_expand("L")

        self.assertEqual(request.node_id, "L")
        self.assertEqual(request.depth, 0)
        lazy = self.state.find("L")
        self.assertTrue(lazy.expanded)
        self.assertIs(lazy.children, UNLOADED)
        self.assertTrue(lazy.is_loading)
        self.assertTrue(self.state.load_pending("L"))

        self.assertTrue(self.state.install_children(request, [TreeNode("Y", "Y")]))

        lazy = self.state.find("L")
        self.assertEqual([n.id for n in lazy.children], ["Y"])
        self.assertTrue(lazy.has_children)
        self.assertFalse(lazy.is_loading)
        self.assertFalse(self.state.load_pending("L"))
        validate_tree(self.state.tree)

    def test_empty_load_clears_hint(self):
        request = self.state.toggle_expand("L")
        self.state.install_children(request, [])

        lazy = self.state.find("L")
        self.assertEqual(lazy.children, ())
        self.assertFalse(lazy.has_children)

    def test_load_finishing_after_collapse_is_discarded(self):
        request = self.state.toggle_expand("L")
        self.state.toggle_expand("L")

        self.assertFalse(self.state.install_children(request, [TreeNode("Y", "Y")]))
        lazy = self.state.find("L")
        self.assertIs(lazy.children, UNLOADED)
        self.assertFalse(lazy.expanded)

    def test_only_latest_expand_installs(self):
        first = self.state.toggle_expand("L")
        self.state.toggle_expand("L")
        second = self.state.toggle_expand("L")

        self.assertFalse(self.state.install_children(first, [TreeNode("X", "X")]))
        self.assertTrue(self.state.install_children(second, [TreeNode("Y", "Y")]))
        self.assertEqual([n.id for n in self.state.find("L").children], ["Y"])

    def test_load_for_removed_node_is_discarded(self):
        request = self.state.toggle_expand("L")
        self.state.remove_node("L")

        self.assertFalse(self.state.install_children(request, [TreeNode("Y", "Y")]))
        self.assertIsNone(self.state.find("Y"))

    def test_failed_load_can_be_retried(self):
        request = self.state.toggle_expand("L")

        with self.assertLogs(level="ERROR"):
            self.assertTrue(self.state.fail_load(request, LoaderError("L", "boom")))

        lazy = self.state.find("L")
        self.assertIs(lazy.children, UNLOADED)
        self.assertFalse(lazy.expanded)
        self.assertIn("L", self.state.failed_loads)

        retry = self.state.toggle_expand("L")
        self.assertIsNotNone(retry)
        self.assertNotIn("L", self.state.failed_loads)

    def test_stale_failure_is_ignored(self):
        request = self.state.toggle_expand("L")
        self.state.toggle_expand("L")

        self.assertFalse(self.state.fail_load(request, LoaderError("L", "boom")))
        self.assertNotIn("L", self.state.failed_loads)


class TestExpandWithLoader(unittest.IsolatedAsyncioTestCase):

    async def test_expand_installs_loaded_children(self):
        state = make_state()
        loader = Mock()
        loader.load = AsyncMock(return_value=[TreeNode("Y", "Y", parent_id="L")])

        self.assertTrue(await state.expand("L", loader))

        loader.load.assert_awaited_once_with("L", 0)
        self.assertEqual(find_node(state.tree, "Y").parent_id, "L")

    async def test_expand_routes_loader_errors(self):
        state = make_state()
        loader = Mock()
        loader.load = AsyncMock(side_effect=LoaderError("L", "offline"))

        with self.assertLogs(level="ERROR"):
            self.assertFalse(await state.expand("L", loader))

        self.assertIn("L", state.failed_loads)
        self.assertFalse(state.find("L").is_loading)

    async def test_expand_loaded_node_does_not_call_loader(self):
        state = make_state()
        loader = Mock()
        loader.load = AsyncMock()

        self.assertFalse(await state.expand("E", loader))
        loader.load.assert_not_awaited()


class TestEdits(unittest.TestCase):

    def setUp(self):
        self.state = make_state()

    def test_add_root(self):
        added = self.state.add_node(None, "X")

        self.assertEqual(added.id, "node-1")
        self.assertEqual([n.id for n in self.state.tree], ["A", "L", "E", "node-1"])
        self.assertIsNone(added.parent_id)
        self.assertEqual(added.children, ())
        self.assertFalse(added.has_children)

    def test_add_child_gets_fresh_ids(self):
        first = self.state.add_node("E", "X")
        second = self.state.add_node("E", "Y")

        self.assertNotEqual(first.id, second.id)
        parent = self.state.find("E")
        self.assertTrue(parent.expanded)
        self.assertEqual([n.name for n in parent.children], ["X", "Y"])
        validate_tree(self.state.tree)

    def test_blank_name_aborts(self):
        before = self.state.tree
        self.assertIsNone(self.state.add_node(None, "   "))
        self.assertIsNone(self.state.add_node(None, None))
        self.assertIs(self.state.tree, before)

    def test_add_to_missing_parent(self):
        before = self.state.tree
        self.assertIsNone(self.state.add_node("nope", "X"))
        self.assertIs(self.state.tree, before)

    def test_remove(self):
        self.assertTrue(self.state.remove_node("B"))

        a = self.state.find("A")
        self.assertEqual([n.id for n in a.children], ["C"])
        self.assertTrue(a.has_children)
        self.assertFalse(self.state.remove_node("B"))

    def test_rename(self):
        self.assertTrue(self.state.rename_node("C", "  Sea  "))
        self.assertEqual(self.state.find("C").name, "Sea")

    def test_rename_rejects_blank_and_unchanged(self):
        before = self.state.tree
        self.assertFalse(self.state.rename_node("C", ""))
        self.assertFalse(self.state.rename_node("C", "C"))
        self.assertFalse(self.state.rename_node("nope", "X"))
        self.assertIs(self.state.tree, before)


class TestDragAndDrop(unittest.TestCase):

    def setUp(self):
        self.state = make_state()

    def test_drag_then_drop(self):
        self.assertTrue(self.state.start_drag("B"))
        self.assertEqual(self.state.dragged_id, "B")

        self.assertTrue(self.state.drop_on("C", DropPosition.BELOW))

        self.assertFalse(self.state.is_dragging)
        self.assertEqual([n.id for n in self.state.find("A").children], ["C", "B"])
        validate_tree(self.state.tree)

    def test_only_one_drag_at_a_time(self):
        self.state.start_drag("B")
        self.assertFalse(self.state.start_drag("C"))
        self.assertEqual(self.state.dragged_id, "B")

    def test_drag_of_missing_node(self):
        self.assertFalse(self.state.start_drag("nope"))
        self.assertFalse(self.state.is_dragging)

    def test_drop_without_drag(self):
        before = self.state.tree
        self.assertFalse(self.state.drop_on("C", DropPosition.CHILD))
        self.assertIs(self.state.tree, before)

    def test_drop_on_itself_clears_drag(self):
        before = self.state.tree
        self.state.start_drag("B")

        self.assertFalse(self.state.drop_on("B", DropPosition.CHILD))
        self.assertIs(self.state.tree, before)
        self.assertFalse(self.state.is_dragging)

    def test_drop_into_descendant_is_rejected(self):
        before = self.state.tree
        self.state.start_drag("A")

        with self.assertLogs(level="WARNING") as logs:
            self.assertFalse(self.state.drop_on("B", DropPosition.CHILD))

        self.assertIs(self.state.tree, before)
        self.assertFalse(self.state.is_dragging)
        self.assertTrue(any("descendant" in line for line in logs.output))

    def test_drop_on_root_zone(self):
        self.state.start_drag("B")
        self.assertTrue(self.state.drop_on(None, DropPosition.CHILD))

        self.assertEqual([n.id for n in self.state.tree], ["A", "L", "E", "B"])
        self.assertIsNone(self.state.find("B").parent_id)

    def test_cancel(self):
        before = self.state.tree
        self.state.start_drag("B")
        self.state.cancel_drag()

        self.assertFalse(self.state.is_dragging)
        self.assertIs(self.state.tree, before)

    def test_removing_dragged_node_ends_drag(self):
        self.state.start_drag("C")
        self.state.remove_node("A")
        self.assertFalse(self.state.is_dragging)
