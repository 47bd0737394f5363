"""Mapper functions to convert between domain trees and SQLAlchemy rows.

The full tree structure lives in the JSON payload; the other columns are
copies kept for listing and ordering without decoding the payload.
"""

import json
from datetime import datetime, UTC
from typing import Optional

from orgbill.database.models import Tree as ORMTree
from orgbill.domain.constants import DEFAULT_MAX_DEPTH
from orgbill.domain.tree import HierarchyTree


def tree_to_domain(orm_tree: ORMTree, max_depth: int = DEFAULT_MAX_DEPTH) -> HierarchyTree:
    """Convert a SQLAlchemy Tree row to a domain HierarchyTree."""
    return HierarchyTree.from_dict(json.loads(orm_tree.payload), max_depth=max_depth)


def tree_to_orm(tree: HierarchyTree, orm_tree: Optional[ORMTree] = None) -> ORMTree:
    """Copy a domain HierarchyTree onto a (new or existing) SQLAlchemy row."""
    if orm_tree is None:
        orm_tree = ORMTree(id=tree.id, created_at=tree.metadata.created_at)
    orm_tree.name = tree.name
    orm_tree.description = tree.description
    orm_tree.node_count = tree.node_count
    orm_tree.payload = json.dumps(tree.to_dict())
    orm_tree.updated_at = datetime.now(UTC)
    return orm_tree
