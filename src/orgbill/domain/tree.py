"""Hierarchy tree aggregate."""

from typing import Any, Callable, Iterable, Optional

from orgbill.domain.constants import DEFAULT_MAX_DEPTH
from orgbill.domain.entities import NodeMetadata
from orgbill.domain.errors import (
    HierarchyError,
    ValidationError,
    max_depth_exceeded,
    node_not_found,
)
from orgbill.domain.node import HierarchyNode, generate_id
from orgbill.domain.validation import require_text


class HierarchyTree:
    """Aggregate root owning every node of one org chart.

    Nodes are kept in an id-keyed dict; parent and child links are ids. Every
    mutating method validates completely before it changes anything, so a
    raised error always leaves the tree as it was.
    """

    def __init__(
        self,
        name: str,
        id: Optional[str] = None,
        description: str = "",
        nodes: Optional[Iterable[HierarchyNode]] = None,
        root_id: Optional[str] = None,
        metadata: Optional[NodeMetadata] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 1:
            raise ValidationError("max_depth must be a positive integer", "max_depth")
        self._id = id or generate_id()
        self._name = require_text(name, "name")
        self._description = description or ""
        self._nodes: dict[str, HierarchyNode] = {}
        for node in nodes or ():
            if node.id in self._nodes:
                raise ValidationError(f"Duplicate node id '{node.id}'", "nodes")
            self._nodes[node.id] = node
        if root_id is not None and root_id not in self._nodes:
            raise ValidationError(f"Root node '{root_id}' is not part of the tree", "root_id")
        self._root_id = root_id
        self._check_structure()
        self._metadata = metadata or NodeMetadata()
        self._max_depth = max_depth

    def _check_structure(self) -> None:
        """Reject node sets that break the single-root, linkage or acyclicity rules.

        Raises:
            ValidationError: Naming the first offending node
        """
        if not self._nodes:
            return
        if self._root_id is None:
            raise ValidationError("A tree with nodes must have a root", "root_id")
        if self._nodes[self._root_id].parent_id is not None:
            raise ValidationError(f"Root node '{self._root_id}' must not have a parent", "root_id")

        for node in self._nodes.values():
            if node.id != self._root_id:
                parent = self._nodes.get(node.parent_id) if node.parent_id else None
                if parent is None:
                    raise ValidationError(
                        f"Node '{node.id}' has no parent in the tree", "parent_id"
                    )
                if node.id not in parent.child_ids:
                    raise ValidationError(
                        f"Node '{node.id}' is not listed as a child of '{parent.id}'", "child_ids"
                    )
            for child_id in node.child_ids:
                child = self._nodes.get(child_id)
                if child is None or child.parent_id != node.id:
                    raise ValidationError(
                        f"Child '{child_id}' of node '{node.id}' does not point back to it",
                        "child_ids",
                    )

        # With consistent links, anything unreachable from the root sits on a cycle
        reached = {self._root_id}
        stack = [self._root_id]
        while stack:
            for child_id in self._nodes[stack.pop()].child_ids:
                if child_id not in reached:
                    reached.add(child_id)
                    stack.append(child_id)
        unreachable = [node_id for node_id in self._nodes if node_id not in reached]
        if unreachable:
            raise ValidationError(
                f"Node '{unreachable[0]}' is not connected to the root", "parent_id"
            )

    def __repr__(self) -> str:
        return f"HierarchyTree(id={self._id!r}, name={self._name!r}, nodes={len(self._nodes)})"

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def root_id(self) -> Optional[str]:
        return self._root_id

    @property
    def metadata(self) -> NodeMetadata:
        return self._metadata

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> Optional[HierarchyNode]:
        return self._nodes.get(self._root_id) if self._root_id else None

    def _touch(self) -> None:
        self._metadata = self._metadata.with_updated_timestamp()

    # Queries

    def get_node(self, node_id: str) -> HierarchyNode:
        """Return a node by id.

        Raises:
            NotFoundError: If the node does not exist
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise node_not_found(node_id)
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_all_nodes(self) -> list[HierarchyNode]:
        return list(self._nodes.values())

    def _sorted(self, node_ids: list[str]) -> list[HierarchyNode]:
        # sorted() is stable, so equal order values keep insertion order
        nodes = [self._nodes[i] for i in node_ids if i in self._nodes]
        return sorted(nodes, key=lambda n: n.order)

    def get_children(self, node_id: str) -> list[HierarchyNode]:
        """Return direct children ordered by their order index."""
        return self._sorted(self.get_node(node_id).child_ids)

    def get_parent(self, node_id: str) -> Optional[HierarchyNode]:
        node = self.get_node(node_id)
        return self._nodes.get(node.parent_id) if node.parent_id else None

    def get_ancestors(self, node_id: str) -> list[HierarchyNode]:
        """Return the chain from the parent up to the root, excluding the node itself."""
        ancestors = []
        current = self.get_node(node_id)
        while current.parent_id:
            parent = self._nodes.get(current.parent_id)
            if parent is None:
                break
            ancestors.append(parent)
            current = parent
        return ancestors

    def get_descendants(self, node_id: str) -> list[HierarchyNode]:
        """Return every node below ``node_id`` in pre-order."""
        descendants = []
        stack = list(reversed(self.get_children(node_id)))
        while stack:
            node = stack.pop()
            descendants.append(node)
            stack.extend(reversed(self._sorted(node.child_ids)))
        return descendants

    def get_siblings(self, node_id: str) -> list[HierarchyNode]:
        node = self.get_node(node_id)
        if not node.parent_id or node.parent_id not in self._nodes:
            return []
        parent = self._nodes[node.parent_id]
        return self._sorted([i for i in parent.child_ids if i != node_id])

    def get_depth(self, node_id: str) -> int:
        """Return the number of hops from the root (root is 0)."""
        return len(self.get_ancestors(node_id))

    def get_max_depth(self) -> int:
        return max((self.get_depth(node_id) for node_id in self._nodes), default=0)

    def _subtree_height(self, node_id: str) -> int:
        base = self.get_depth(node_id)
        return max(
            (self.get_depth(d.id) - base for d in self.get_descendants(node_id)),
            default=0,
        )

    def _check_depth(self, parent_id: str, node_id: str, subtree_height: int = 0) -> None:
        depth = 0
        current_id: Optional[str] = parent_id
        while current_id is not None:
            depth += 1
            if depth + subtree_height > self._max_depth:
                raise HierarchyError(max_depth_exceeded(self._max_depth), node_id)
            parent = self._nodes.get(current_id)
            if parent is None:
                break
            current_id = parent.parent_id

    def traverse(
        self,
        callback: Callable[[HierarchyNode, int], Optional[bool]],
        start_id: Optional[str] = None,
    ) -> None:
        """Depth-first walk in sibling order.

        ``callback(node, depth)`` may return False to stop the walk.
        """
        start_id = start_id or self._root_id
        if not start_id:
            return
        stack = [(self.get_node(start_id), 0)]
        while stack:
            node, depth = stack.pop()
            if callback(node, depth) is False:
                break
            for child in reversed(self._sorted(node.child_ids)):
                stack.append((child, depth + 1))

    def filter(self, predicate: Callable[[HierarchyNode], bool]) -> list[HierarchyNode]:
        return [node for node in self._nodes.values() if predicate(node)]

    def find(self, predicate: Callable[[HierarchyNode], bool]) -> Optional[HierarchyNode]:
        return next((node for node in self._nodes.values() if predicate(node)), None)

    # Mutations

    def add_node(self, node: HierarchyNode, parent_id: Optional[str] = None) -> HierarchyNode:
        """Register a node under ``parent_id``, or as root when ``parent_id`` is None.

        Raises:
            ValidationError: If ``node`` is not a fresh HierarchyNode
            HierarchyError: Duplicate id, second root, or depth overflow
            NotFoundError: If the parent does not exist
        """
        if not isinstance(node, HierarchyNode):
            raise ValidationError("Node must be a HierarchyNode instance", "node")
        if node.id in self._nodes:
            raise HierarchyError(f"Node with id '{node.id}' already exists in the tree", node.id)
        if node.has_children:
            raise ValidationError("A node must be added without children", "child_ids")

        if parent_id is None:
            if self._root_id is not None:
                raise HierarchyError("Cannot add root node: tree already has a root", node.id)
            node.set_parent(None)
            self._root_id = node.id
        else:
            parent = self.get_node(parent_id)
            self._check_depth(parent_id, node.id)
            node.set_parent(parent_id)
            parent.add_child(node.id)

        self._nodes[node.id] = node
        self._touch()
        return node

    def remove_node(self, node_id: str) -> HierarchyNode:
        """Remove a node, handing its children to its former parent.

        A populated root cannot be removed; removing a childless root leaves
        the tree empty of a root.

        Returns:
            The removed node
        """
        node = self.get_node(node_id)
        if node.is_root and node.has_children:
            raise HierarchyError("Cannot remove root node with children", node_id)

        children = self.get_children(node_id)
        parent = self._nodes.get(node.parent_id) if node.parent_id else None
        if parent is not None:
            slot = parent.child_ids.index(node_id)
            parent.remove_child(node_id)
            for offset, child in enumerate(node.child_ids):
                parent.add_child(child, slot + offset)
            for child in children:
                child.set_parent(parent.id)
        for child in children:
            node.remove_child(child.id)

        if self._root_id == node_id:
            self._root_id = None
        del self._nodes[node_id]
        self._touch()
        return node

    def move_node(self, node_id: str, new_parent_id: str) -> Optional[str]:
        """Attach a node (and its subtree) under a new parent.

        Returns:
            The previous parent id

        Raises:
            HierarchyError: Self-move, moving the root, cycle, or depth overflow
            NotFoundError: If either node does not exist
        """
        if node_id == new_parent_id:
            raise HierarchyError("Cannot move node to itself", node_id)
        node = self.get_node(node_id)
        if node.is_root:
            raise HierarchyError("Cannot move root node", node_id)
        new_parent = self.get_node(new_parent_id)
        if any(d.id == new_parent_id for d in self.get_descendants(node_id)):
            raise HierarchyError("Cannot move node: would create a cycle", node_id)
        self._check_depth(new_parent_id, node_id, self._subtree_height(node_id))

        old_parent_id = node.parent_id
        old_parent = self._nodes.get(old_parent_id) if old_parent_id else None
        if old_parent is not None:
            old_parent.remove_child(node_id)
        node.set_parent(new_parent_id)
        new_parent.add_child(node_id)
        self._touch()
        return old_parent_id

    def update_node(self, node_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial field update to a node.

        Returns:
            The previous values of the updated fields
        """
        node = self.get_node(node_id)
        previous = node.apply_updates(updates)
        self._touch()
        return previous

    def reorder_children(self, parent_id: str, ordered_child_ids: list[str]) -> dict[str, int]:
        """Assign order indices to a parent's children following ``ordered_child_ids``.

        Returns:
            The previous order index of every child

        Raises:
            ValidationError: If the ids are not a permutation of the current children
        """
        parent = self.get_node(parent_id)
        current = parent.child_ids
        if len(ordered_child_ids) != len(current):
            raise ValidationError("Child IDs count mismatch", "child_ids")
        if sorted(current) != sorted(ordered_child_ids):
            raise ValidationError("Child IDs do not match existing children", "child_ids")

        previous = {child_id: self._nodes[child_id].order for child_id in current}
        for index, child_id in enumerate(ordered_child_ids):
            self._nodes[child_id].set_order(index)
        self._touch()
        return previous

    # Structural copy

    def snapshot(self) -> dict[str, Any]:
        """Return a plain-data copy of the whole tree."""
        return self.to_dict()

    def restore(self, snapshot: dict[str, Any]) -> None:
        """Reset nodes, root and metadata to a snapshot of this tree."""
        if snapshot.get("id") != self._id:
            raise ValidationError("Snapshot belongs to a different tree", "id")
        restored = HierarchyTree.from_dict(snapshot, max_depth=self._max_depth)
        self._name = restored._name
        self._description = restored._description
        self._nodes = restored._nodes
        self._root_id = restored._root_id
        self._metadata = restored._metadata

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self._id,
            "name": self._name,
            "description": self._description,
            "root_id": self._root_id,
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "metadata": self._metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], max_depth: int = DEFAULT_MAX_DEPTH) -> "HierarchyTree":
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            description=data.get("description") or "",
            nodes=[HierarchyNode.from_dict(n) for n in data.get("nodes") or []],
            root_id=data.get("root_id"),
            metadata=NodeMetadata.from_dict(data.get("metadata")),
            max_depth=max_depth,
        )

    @classmethod
    def create(cls, name: str, description: str = "", max_depth: int = DEFAULT_MAX_DEPTH) -> "HierarchyTree":
        return cls(name=name, description=description, max_depth=max_depth)
