"""Hierarchy management domain service."""

import json
import logging
from datetime import datetime, UTC
from typing import TYPE_CHECKING, Any, Optional

from orgbill.domain.constants import DEFAULT_MAX_DEPTH
from orgbill.domain.entities import NodeType
from orgbill.domain.errors import StorageError, ValidationError
from orgbill.domain.node import HierarchyNode
from orgbill.domain.tree import HierarchyTree

if TYPE_CHECKING:
    from orgbill.database.base import HierarchyRepository

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

# Keys of ``node_data`` passed on to HierarchyNode in add_node.
NODE_DATA_FIELDS = (
    "name",
    "description",
    "type",
    "email",
    "phone",
    "bank_provision",
    "insurance_provision",
    "real_estate_provision",
)


def split_name(name: str) -> tuple[str, str]:
    """Split a display name into (first name, last name).

    Handles "Last, First" and "First Middle Last"; a single word is taken
    as the last name.
    """
    if not name or not name.strip():
        return "", ""
    if "," in name:
        last, _, first = name.partition(",")
        return first.strip(), last.strip()
    parts = name.split()
    if len(parts) >= 2:
        return " ".join(parts[:-1]), parts[-1]
    return "", name.strip()


class HierarchyService:
    """Service for loading, changing and persisting hierarchy trees.

    Every mutation loads the tree, applies the change in memory and saves the
    whole tree. If saving fails the in-memory change is reverted before the
    StorageError propagates, so the caller's tree never runs ahead of storage.
    Mutations of one tree must be serialized by the caller.
    """

    def __init__(self, repository: "HierarchyRepository", max_depth: int = DEFAULT_MAX_DEPTH):
        """Initialize hierarchy service.

        Args:
            repository: Tree repository
            max_depth: Depth bound for newly created trees
        """
        self.repository = repository
        self.max_depth = max_depth

    def _save_or_rollback(self, tree: HierarchyTree, action: str, snapshot: dict[str, Any]) -> None:
        """Persist ``tree``; if that fails, reset it to ``snapshot`` and re-raise."""
        try:
            self.repository.save(tree)
        except StorageError as e:
            logger.error("Failed to save tree %s after %s, rolling back: %s", tree.id, action, e)
            try:
                tree.restore(snapshot)
            except ValueError as rollback_error:
                logger.warning("Rollback of %s failed: %s", action, rollback_error)
            raise

    # Trees

    def create_tree(self, name: str, description: str = "") -> HierarchyTree:
        """Create the organisation tree.

        Only one tree is kept; if one already exists it is returned unchanged.
        """
        existing = self.repository.find_all()
        if existing:
            logger.warning("Organisation tree already exists, returning %s", existing[0].id)
            return existing[0]

        tree = HierarchyTree.create(name, description, max_depth=self.max_depth)
        self.repository.save(tree)
        logger.info("Created organisation tree %s", tree.id)
        return tree

    def get_tree(self, tree_id: str) -> HierarchyTree:
        return self.repository.find_by_id(tree_id)

    def get_all_trees(self) -> list[HierarchyTree]:
        return self.repository.find_all()

    def get_default_tree(self) -> Optional[HierarchyTree]:
        """Return the organisation tree, or None before one was created."""
        trees = self.repository.find_all()
        return trees[0] if trees else None

    def tree_exists(self, tree_id: str) -> bool:
        return self.repository.exists(tree_id)

    def delete_tree(self, tree_id: str) -> None:
        self.repository.delete(tree_id)
        logger.info("Deleted tree %s", tree_id)

    # Nodes

    def add_node(
        self, tree_id: str, node_data: dict[str, Any], parent_id: Optional[str] = None
    ) -> HierarchyNode:
        """Create a node from plain data and attach it under ``parent_id``.

        Without a parent the node becomes the root and defaults to the root type.
        """
        unknown = set(node_data) - set(NODE_DATA_FIELDS)
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Unknown node field: {field}", field)

        tree = self.repository.find_by_id(tree_id)
        data = dict(node_data)
        if parent_id is None and not data.get("type"):
            data["type"] = NodeType.ROOT
        node = HierarchyNode(**{key: value for key, value in data.items() if value is not None})
        snapshot = tree.snapshot()
        tree.add_node(node, parent_id)

        self._save_or_rollback(tree, "adding a node", snapshot)
        logger.info("Added node %s (%s) to tree %s", node.name, node.id, tree_id)
        return node

    def update_node(self, tree_id: str, node_id: str, updates: dict[str, Any]) -> HierarchyNode:
        tree = self.repository.find_by_id(tree_id)
        snapshot = tree.snapshot()
        tree.update_node(node_id, updates)

        self._save_or_rollback(tree, "updating a node", snapshot)
        node = tree.get_node(node_id)
        logger.info("Updated node %s: %s", node_id, ", ".join(sorted(updates)))
        return node

    def remove_node(self, tree_id: str, node_id: str) -> HierarchyNode:
        tree = self.repository.find_by_id(tree_id)
        snapshot = tree.snapshot()
        node = tree.remove_node(node_id)

        self._save_or_rollback(tree, "removing a node", snapshot)
        logger.info("Removed node %s (%s) from tree %s", node.name, node_id, tree_id)
        return node

    def move_node(self, tree_id: str, node_id: str, new_parent_id: str) -> HierarchyNode:
        tree = self.repository.find_by_id(tree_id)
        snapshot = tree.snapshot()
        old_parent_id = tree.move_node(node_id, new_parent_id)

        self._save_or_rollback(tree, "moving a node", snapshot)
        logger.info("Moved node %s from %s to %s", node_id, old_parent_id, new_parent_id)
        return tree.get_node(node_id)

    def reorder_children(self, tree_id: str, parent_id: str, child_ids: list[str]) -> list[HierarchyNode]:
        tree = self.repository.find_by_id(tree_id)
        snapshot = tree.snapshot()
        tree.reorder_children(parent_id, child_ids)

        self._save_or_rollback(tree, "reordering children", snapshot)
        logger.info("Reordered %d children of %s", len(child_ids), parent_id)
        return tree.get_children(parent_id)

    # Import / export

    def export_tree(self, tree: HierarchyTree) -> str:
        """Serialize a tree into a versioned JSON document."""
        return json.dumps(
            {
                "version": EXPORT_VERSION,
                "exported_at": datetime.now(UTC).isoformat(),
                "tree": tree.to_dict(),
            },
            indent=2,
        )

    def import_tree(self, document: str) -> HierarchyTree:
        """Load a tree from an export document and store it.

        Raises:
            ValidationError: If the document is not a valid export
        """
        try:
            data = json.loads(document)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid export document: {e}", "document")
        if not isinstance(data, dict) or not isinstance(data.get("tree"), dict):
            raise ValidationError("Export document has no tree", "tree")

        tree = HierarchyTree.from_dict(data["tree"], max_depth=self.max_depth)
        self.repository.save(tree)
        logger.info("Imported tree %s with %d nodes", tree.id, tree.node_count)
        return tree

    # Employees

    def get_all_employees(self, tree_id: Optional[str] = None) -> list[dict[str, Any]]:
        """List every node below the root as an employee record, in tree order."""
        tree = self.repository.find_by_id(tree_id) if tree_id else self.get_default_tree()
        if tree is None or tree.root_id is None:
            return []

        employees = []
        for node in tree.get_descendants(tree.root_id):
            first_name, last_name = split_name(node.name)
            employees.append(
                {
                    "id": node.id,
                    "name": node.name,
                    "first_name": first_name,
                    "last_name": last_name,
                    "email": node.email,
                    "bank_provision": node.bank_provision,
                    "insurance_provision": node.insurance_provision,
                    "real_estate_provision": node.real_estate_provision,
                }
            )
        return employees
