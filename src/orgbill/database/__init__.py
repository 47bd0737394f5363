"""Persistence layer for orgbill."""

from orgbill.database.base import HierarchyRepository
from orgbill.database.factories import create_sqlite_repository
from orgbill.database.memory import InMemoryHierarchyRepository

__all__ = ["HierarchyRepository", "InMemoryHierarchyRepository", "create_sqlite_repository"]
