from __future__ import annotations

from datetime import datetime, timezone
import unittest

from tasknest.errors import EmptyTitle, InvalidParent, NotFound
from tasknest.model import Entity, EntityKind, TaskStatus
from tasknest.tree import Forest, clean_title


NOW = datetime(2026, 3, 1, 9, 30, 15, 123456, tzinfo=timezone.utc)


def _sample() -> tuple[Forest, dict[str, Entity]]:
    forest = Forest()
    home = forest.create(None, EntityKind.WORKSPACE, "Home", now=NOW)
    garden = forest.create(home.id, EntityKind.WORKSPACE, "Garden", now=NOW)
    chores = forest.create(home.id, EntityKind.TASK, "Chores", now=NOW)
    dishes = forest.create(chores.id, EntityKind.TASK, "Dishes", now=NOW)
    work = forest.create(None, EntityKind.WORKSPACE, "Work", now=NOW)
    return forest, {"home": home, "garden": garden, "chores": chores, "dishes": dishes, "work": work}


class TestForestCreate(unittest.TestCase):
    def test_ids_are_sequential_and_never_reused(self) -> None:
        forest, nodes = _sample()
        self.assertEqual([1, 2, 3, 4, 5], [node.id for node in forest.entities()])
        forest.delete(nodes["work"].id)
        again = forest.create(None, EntityKind.WORKSPACE, "Work again", now=NOW)
        self.assertEqual(6, again.id)

    def test_new_task_defaults(self) -> None:
        forest, nodes = _sample()
        chores = nodes["chores"]
        self.assertEqual(TaskStatus.TODO, chores.status)
        self.assertIsNone(chores.due_date)
        self.assertFalse(chores.archived)
        self.assertTrue(chores.expanded)
        self.assertEqual("2026-03-01T09:30:15+00:00", chores.created_at)

    def test_title_is_collapsed(self) -> None:
        forest = Forest()
        node = forest.create(None, EntityKind.WORKSPACE, "  Big \t  project \n", now=NOW)
        self.assertEqual("Big project", node.title)
        self.assertEqual("a b", clean_title(" a   b "))

    def test_task_at_root_is_invalid_parent(self) -> None:
        forest = Forest()
        with self.assertRaises(InvalidParent):
            forest.create(None, EntityKind.TASK, "Loose", now=NOW)
        self.assertEqual(0, len(forest))
        self.assertEqual(1, forest.next_id)

    def test_workspace_under_task_is_invalid_parent(self) -> None:
        forest, nodes = _sample()
        with self.assertRaises(InvalidParent):
            forest.create(nodes["chores"].id, EntityKind.WORKSPACE, "Nope", now=NOW)

    def test_missing_parent_is_invalid_parent(self) -> None:
        forest, _nodes = _sample()
        with self.assertRaises(InvalidParent):
            forest.create(999, EntityKind.TASK, "Orphan", now=NOW)

    def test_blank_title_rejected_without_consuming_an_id(self) -> None:
        forest, nodes = _sample()
        before = forest.next_id
        with self.assertRaises(EmptyTitle):
            forest.create(nodes["home"].id, EntityKind.TASK, "   ", now=NOW)
        self.assertEqual(before, forest.next_id)
        self.assertEqual(5, len(forest))


class TestForestLookups(unittest.TestCase):
    def test_parent_and_ancestors(self) -> None:
        forest, nodes = _sample()
        dishes = nodes["dishes"]
        self.assertIs(nodes["chores"], forest.parent_of(dishes.id))
        self.assertEqual(["Home", "Chores"], [node.title for node in forest.ancestors(dishes.id)])
        self.assertIsNone(forest.parent_of(nodes["home"].id))

    def test_effectively_archived_follows_ancestors(self) -> None:
        forest, nodes = _sample()
        nodes["home"].archived = True
        self.assertTrue(forest.is_effectively_archived(nodes["garden"].id))
        self.assertFalse(forest.is_effectively_archived(nodes["work"].id))

    def test_find_unknown_raises_not_found(self) -> None:
        forest, _nodes = _sample()
        with self.assertRaises(NotFound):
            forest.find(42)
        self.assertIsNone(forest.get(42))
        self.assertIsNone(forest.get(None))

    def test_workspace_tasks_only_lists_direct_tasks(self) -> None:
        forest, nodes = _sample()
        self.assertEqual(["Chores"], [node.title for node in forest.workspace_tasks(nodes["home"].id)])


class TestForestStructure(unittest.TestCase):
    def test_rename_rejects_blank_and_keeps_title(self) -> None:
        forest, nodes = _sample()
        with self.assertRaises(EmptyTitle):
            forest.rename(nodes["work"].id, "  ")
        self.assertEqual("Work", nodes["work"].title)
        forest.rename(nodes["work"].id, " Office ")
        self.assertEqual("Office", nodes["work"].title)

    def test_delete_removes_whole_subtree_from_index(self) -> None:
        forest, nodes = _sample()
        removed = forest.delete(nodes["home"].id)
        self.assertEqual(4, removed.subtree_size())
        self.assertEqual(1, len(forest))
        for key in ("home", "garden", "chores", "dishes"):
            self.assertNotIn(nodes[key].id, forest)
        self.assertEqual(["Work"], [node.title for node in forest.roots])

    def test_duplicate_ids_rejected_on_index_rebuild(self) -> None:
        roots = [
            Entity(id=1, kind=EntityKind.WORKSPACE, title="A", created_at="x"),
            Entity(id=1, kind=EntityKind.WORKSPACE, title="B", created_at="x"),
        ]
        with self.assertRaises(ValueError):
            Forest(roots)

    def test_next_id_moves_past_existing_ids(self) -> None:
        roots = [Entity(id=7, kind=EntityKind.WORKSPACE, title="A", created_at="x")]
        self.assertEqual(8, Forest(roots, next_id=2).next_id)
        self.assertEqual(20, Forest(roots, next_id=20).next_id)


class TestForestWalk(unittest.TestCase):
    def test_walk_is_depth_first_with_depth_and_parents(self) -> None:
        forest, _nodes = _sample()
        rows = list(forest.walk())
        self.assertEqual(
            [("Home", 0), ("Garden", 1), ("Chores", 1), ("Dishes", 2), ("Work", 0)],
            [(row.entity.title, row.depth) for row in rows],
        )
        self.assertEqual("Home / Chores / Dishes", rows[3].breadcrumb)

    def test_walk_kind_filter(self) -> None:
        forest, _nodes = _sample()
        titles = [row.entity.title for row in forest.walk(kind=EntityKind.WORKSPACE)]
        self.assertEqual(["Home", "Garden", "Work"], titles)

    def test_walk_prune_and_collapse(self) -> None:
        forest, nodes = _sample()
        pruned = [row.entity.title for row in forest.walk(prune=lambda node: node.id == nodes["chores"].id)]
        self.assertEqual(["Home", "Garden", "Work"], pruned)

        nodes["home"].expanded = False
        collapsed = [row.entity.title for row in forest.walk(collapsed=True)]
        self.assertEqual(["Home", "Work"], collapsed)
        self.assertEqual(5, len(list(forest.walk())))

    def test_walk_is_lazy(self) -> None:
        forest, _nodes = _sample()
        rows = forest.walk()
        self.assertEqual("Home", next(rows).entity.title)


if __name__ == "__main__":
    unittest.main()
