"""Tests for HierarchyService."""

import json
import logging
from decimal import Decimal

import pytest

from orgbill.database.memory import InMemoryHierarchyRepository
from orgbill.domain.entities import NodeType
from orgbill.domain.errors import HierarchyError, NotFoundError, StorageError, ValidationError
from orgbill.domain.hierarchy import HierarchyService, split_name
from orgbill.domain.node import HierarchyNode


class FailingRepository(InMemoryHierarchyRepository):
    """In-memory repository whose save can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail = False

    def save(self, tree):
        if self.fail:
            raise StorageError("disk full")
        return super().save(tree)


@pytest.fixture
def failing_service():
    return HierarchyService(FailingRepository())


def _build(service):
    """Create a tree with root -> manager -> (a, b) and return (tree, ids)."""
    tree = service.create_tree("Acme")
    root = service.add_node(tree.id, {"name": "Acme"})
    manager = service.add_node(
        tree.id, {"name": "Alice Smith", "type": "person", "bank_provision": "50"}, root.id
    )
    a = service.add_node(tree.id, {"name": "Bob Jones", "bank_provision": 30}, manager.id)
    b = service.add_node(tree.id, {"name": "Carol White"}, manager.id)
    return tree, {"root": root.id, "manager": manager.id, "a": a.id, "b": b.id}


class TestTrees:
    """Tests for tree-level operations."""

    def test_create_tree(self, hierarchy_service):
        """Test creating the organisation tree."""
        assert hierarchy_service.get_default_tree() is None
        tree = hierarchy_service.create_tree("Acme", "Main org")
        assert tree.name == "Acme"
        assert tree.description == "Main org"
        assert hierarchy_service.tree_exists(tree.id)
        assert hierarchy_service.get_tree(tree.id) is tree
        assert hierarchy_service.get_default_tree() is tree

    def test_single_tree_policy(self, hierarchy_service, caplog):
        """Test that a second create returns the existing tree."""
        first = hierarchy_service.create_tree("Acme")
        with caplog.at_level(logging.WARNING, logger="orgbill.domain.hierarchy"):
            second = hierarchy_service.create_tree("Other")
        assert second is first
        assert len(hierarchy_service.get_all_trees()) == 1
        assert "already exists" in caplog.text

    def test_max_depth_is_applied(self, memory_repository):
        """Test that new trees use the service's depth bound."""
        service = HierarchyService(memory_repository, max_depth=3)
        assert service.create_tree("Acme").max_depth == 3

    def test_delete_tree(self, hierarchy_service):
        """Test deleting a tree."""
        tree = hierarchy_service.create_tree("Acme")
        hierarchy_service.delete_tree(tree.id)
        assert not hierarchy_service.tree_exists(tree.id)
        with pytest.raises(NotFoundError):
            hierarchy_service.get_tree(tree.id)


class TestNodes:
    """Tests for node mutations through the service."""

    def test_add_nodes(self, hierarchy_service):
        """Test building a small hierarchy."""
        tree, ids = _build(hierarchy_service)
        stored = hierarchy_service.get_tree(tree.id)
        assert stored.node_count == 4
        assert stored.root.type is NodeType.ROOT
        assert stored.get_node(ids["manager"]).bank_provision == Decimal("50")
        assert [n.id for n in stored.get_children(ids["manager"])] == [ids["a"], ids["b"]]

    def test_add_node_unknown_field(self, hierarchy_service):
        """Test that unexpected node data is rejected."""
        tree = hierarchy_service.create_tree("Acme")
        with pytest.raises(ValidationError) as exc_info:
            hierarchy_service.add_node(tree.id, {"name": "X", "salary": 1})
        assert exc_info.value.field == "salary"

    def test_add_second_root(self, hierarchy_service):
        """Test that a second parentless node is rejected."""
        tree, _ = _build(hierarchy_service)
        with pytest.raises(HierarchyError):
            hierarchy_service.add_node(tree.id, {"name": "Rival"})

    def test_add_to_unknown_tree(self, hierarchy_service):
        """Test that the tree must exist."""
        with pytest.raises(NotFoundError):
            hierarchy_service.add_node("missing", {"name": "X"})

    def test_update_node(self, hierarchy_service):
        """Test a partial update."""
        tree, ids = _build(hierarchy_service)
        node = hierarchy_service.update_node(tree.id, ids["a"], {"name": "Robert Jones"})
        assert node.name == "Robert Jones"
        assert node.bank_provision == Decimal("30")

    def test_remove_node_promotes_children(self, hierarchy_service):
        """Test that removing the manager moves the team up."""
        tree, ids = _build(hierarchy_service)
        removed = hierarchy_service.remove_node(tree.id, ids["manager"])
        assert removed.name == "Alice Smith"
        stored = hierarchy_service.get_tree(tree.id)
        assert [n.id for n in stored.get_children(ids["root"])] == [ids["a"], ids["b"]]

    def test_move_node(self, hierarchy_service):
        """Test moving a node."""
        tree, ids = _build(hierarchy_service)
        node = hierarchy_service.move_node(tree.id, ids["b"], ids["a"])
        assert node.parent_id == ids["a"]

    def test_move_into_own_subtree(self, hierarchy_service):
        """Test that cycles are rejected."""
        tree, ids = _build(hierarchy_service)
        with pytest.raises(HierarchyError):
            hierarchy_service.move_node(tree.id, ids["manager"], ids["a"])

    def test_reorder_children(self, hierarchy_service):
        """Test reordering returns the children in their new order."""
        tree, ids = _build(hierarchy_service)
        children = hierarchy_service.reorder_children(tree.id, ids["manager"], [ids["b"], ids["a"]])
        assert [c.id for c in children] == [ids["b"], ids["a"]]


class TestRollback:
    """Tests for reverting in-memory changes when saving fails."""

    def test_add_node(self, failing_service):
        """Test that a failed save removes the added node again."""
        tree, ids = _build(failing_service)
        before = tree.to_dict()
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.add_node(tree.id, {"name": "Dave"}, ids["manager"])
        assert tree.node_count == 4
        assert tree.get_node(ids["manager"]).child_ids == [ids["a"], ids["b"]]
        assert tree.to_dict() == before

    def test_update_node(self, failing_service):
        """Test that a failed save restores the previous values and timestamps."""
        tree, ids = _build(failing_service)
        before = tree.to_dict()
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.update_node(tree.id, ids["a"], {"name": "Robert", "bank_provision": 90})
        node = tree.get_node(ids["a"])
        assert node.name == "Bob Jones"
        assert node.bank_provision == Decimal("30")
        assert tree.to_dict() == before

    def test_remove_node(self, failing_service):
        """Test that a failed save brings the removed node back."""
        tree, ids = _build(failing_service)
        before = tree.to_dict()
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.remove_node(tree.id, ids["manager"])
        assert tree.has_node(ids["manager"])
        assert tree.get_parent(ids["a"]).id == ids["manager"]
        assert tree.to_dict() == before

    def test_move_node(self, failing_service):
        """Test that a failed save moves the node back."""
        tree, ids = _build(failing_service)
        before = tree.to_dict()
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.move_node(tree.id, ids["b"], ids["a"])
        assert tree.get_parent(ids["b"]).id == ids["manager"]
        assert tree.get_node(ids["a"]).child_ids == []
        assert tree.to_dict() == before

    def test_move_first_child_keeps_sibling_order(self, failing_service):
        """Test that a moved-back first child returns to its original slot."""
        tree, ids = _build(failing_service)
        before = tree.to_dict()
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.move_node(tree.id, ids["a"], ids["b"])
        assert tree.get_node(ids["manager"]).child_ids == [ids["a"], ids["b"]]
        assert [c.id for c in tree.get_children(ids["manager"])] == [ids["a"], ids["b"]]
        assert tree.get_node(ids["b"]).child_ids == []
        assert tree.to_dict() == before

    def test_reorder_children(self, failing_service):
        """Test that a failed save restores the previous order."""
        tree, ids = _build(failing_service)
        before = tree.to_dict()
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.reorder_children(tree.id, ids["manager"], [ids["b"], ids["a"]])
        assert [c.id for c in tree.get_children(ids["manager"])] == [ids["a"], ids["b"]]
        assert tree.to_dict() == before

    def test_mutation_after_rollback(self, failing_service):
        """Test that the rolled-back tree accepts further changes."""
        tree, ids = _build(failing_service)
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.move_node(tree.id, ids["a"], ids["b"])
        failing_service.repository.fail = False
        moved = failing_service.move_node(tree.id, ids["b"], ids["a"])
        assert moved.parent_id == ids["a"]
        assert tree.get_node(ids["manager"]).child_ids == [ids["a"]]

    def test_failure_is_logged(self, failing_service, caplog):
        """Test that the failed save is logged as an error."""
        tree, ids = _build(failing_service)
        failing_service.repository.fail = True
        with pytest.raises(StorageError):
            failing_service.update_node(tree.id, ids["a"], {"name": "Robert"})
        assert any(r.levelno == logging.ERROR for r in caplog.records)


class TestImportExport:
    """Tests for JSON export and import."""

    def test_round_trip(self, hierarchy_service):
        """Test exporting a tree and importing it into another store."""
        tree, ids = _build(hierarchy_service)
        document = hierarchy_service.export_tree(tree)
        data = json.loads(document)
        assert data["version"] == "1.0"
        assert "exported_at" in data

        other = HierarchyService(InMemoryHierarchyRepository())
        imported = other.import_tree(document)
        assert imported.id == tree.id
        assert imported.node_count == 4
        assert imported.get_node(ids["a"]).bank_provision == Decimal("30")
        assert other.get_default_tree() is imported

    def test_import_rejects_second_parentless_node(self, hierarchy_service):
        """Test that an export with two parentless nodes is not stored."""
        root = HierarchyNode.create_root("Acme")
        branch = HierarchyNode(name="Branch")
        leaf = HierarchyNode(name="Leaf", parent_id=branch.id)
        branch.add_child(leaf.id)
        document = json.dumps(
            {
                "version": "1.0",
                "tree": {
                    "name": "Acme",
                    "root_id": root.id,
                    "nodes": [root.to_dict(), branch.to_dict(), leaf.to_dict()],
                },
            }
        )
        with pytest.raises(ValidationError):
            hierarchy_service.import_tree(document)
        assert hierarchy_service.get_all_trees() == []

    @pytest.mark.parametrize("document", ["{not json", "[]", '{"version": "1.0"}'])
    def test_invalid_documents(self, hierarchy_service, document):
        """Test that malformed exports are rejected."""
        with pytest.raises(ValidationError):
            hierarchy_service.import_tree(document)


class TestEmployees:
    """Tests for the employee listing."""

    def test_get_all_employees(self, hierarchy_service):
        """Test listing every node below the root in tree order."""
        tree, ids = _build(hierarchy_service)
        employees = hierarchy_service.get_all_employees(tree.id)
        assert [e["id"] for e in employees] == [ids["manager"], ids["a"], ids["b"]]
        assert employees[0]["first_name"] == "Alice"
        assert employees[0]["last_name"] == "Smith"
        assert employees[0]["bank_provision"] == Decimal("50")

    def test_default_tree_and_empty(self, hierarchy_service):
        """Test the listing without tree id and without tree."""
        assert hierarchy_service.get_all_employees() == []
        _build(hierarchy_service)
        assert len(hierarchy_service.get_all_employees()) == 3

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Alice Smith", ("Alice", "Smith")),
            ("Mary Ann Lee", ("Mary Ann", "Lee")),
            ("Smith, Alice", ("Alice", "Smith")),
            ("Cher", ("", "Cher")),
            ("  ", ("", "")),
        ],
    )
    def test_split_name(self, name, expected):
        """Test splitting display names."""
        assert split_name(name) == expected
