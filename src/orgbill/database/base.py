"""Abstract hierarchy repository interface."""

from abc import ABC, abstractmethod

# Import the tree module directly to avoid a circular import through domain/__init__.py
from orgbill.domain.tree import HierarchyTree


class HierarchyRepository(ABC):
    """Persistence contract for hierarchy trees.

    Trees are stored and replaced as a whole; no finer-grained atomicity is
    assumed.
    """

    @abstractmethod
    def save(self, tree: HierarchyTree) -> HierarchyTree:
        """Insert or replace a tree. Raises StorageError on failure."""
        pass

    @abstractmethod
    def find_by_id(self, tree_id: str) -> HierarchyTree:
        """Get tree by ID. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    def find_all(self) -> list[HierarchyTree]:
        """List all trees, oldest first."""
        pass

    @abstractmethod
    def delete(self, tree_id: str) -> None:
        """Delete a tree. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    def exists(self, tree_id: str) -> bool:
        """Check whether a tree is stored."""
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass
