"""In-memory hierarchy repository."""

from orgbill.database.base import HierarchyRepository
from orgbill.domain.errors import tree_not_found
from orgbill.domain.tree import HierarchyTree


class InMemoryHierarchyRepository(HierarchyRepository):
    """Keeps tree instances in a dict.

    ``find_by_id`` hands out the stored instance itself, so in-memory changes
    are visible to every holder until they are reverted.
    """

    def __init__(self):
        self._trees: dict[str, HierarchyTree] = {}

    def save(self, tree: HierarchyTree) -> HierarchyTree:
        self._trees[tree.id] = tree
        return tree

    def find_by_id(self, tree_id: str) -> HierarchyTree:
        if tree_id not in self._trees:
            raise tree_not_found(tree_id)
        return self._trees[tree_id]

    def find_all(self) -> list[HierarchyTree]:
        return sorted(self._trees.values(), key=lambda t: t.metadata.created_at)

    def delete(self, tree_id: str) -> None:
        if tree_id not in self._trees:
            raise tree_not_found(tree_id)
        del self._trees[tree_id]

    def exists(self, tree_id: str) -> bool:
        return tree_id in self._trees
