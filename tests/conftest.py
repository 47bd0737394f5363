"""Shared pytest fixtures for orgbill tests."""

import os
import tempfile
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from orgbill.database.factories import create_sqlite_repository
from orgbill.database.memory import InMemoryHierarchyRepository
from orgbill.domain.entities import NodeType
from orgbill.domain.hierarchy import HierarchyService
from orgbill.domain.node import HierarchyNode
from orgbill.domain.revenue import RevenueEntry
from orgbill.domain.tree import HierarchyTree


@pytest.fixture
def temp_db_path():
    """Path of a temporary SQLite database file, removed after the test."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    yield db_path

    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def sql_repository(temp_db_path):
    """Create a SQLite-backed repository on a temporary database."""
    repository = create_sqlite_repository(database_path=temp_db_path)
    yield repository
    repository.close()


@pytest.fixture
def memory_repository():
    """Create an empty in-memory repository."""
    return InMemoryHierarchyRepository()


@pytest.fixture
def hierarchy_service(memory_repository):
    """Create a HierarchyService over the in-memory repository."""
    return HierarchyService(memory_repository)


@pytest.fixture
def org():
    """Build a small organisation; nodes are attributes of the returned namespace.

    Acme (root, 100/100/100)
      Alice (manager, bank 50, insurance 40, real estate 30)
        Bob (bank 30, insurance 20, real estate 10)
        Carol (bank 0)
    """
    tree = HierarchyTree.create("Acme")
    root = tree.add_node(HierarchyNode.create_root("Acme"))
    alice = tree.add_node(
        HierarchyNode(
            name="Alice Smith",
            type=NodeType.PERSON,
            bank_provision=50,
            insurance_provision=40,
            real_estate_provision=30,
        ),
        root.id,
    )
    bob = tree.add_node(
        HierarchyNode(
            name="Bob Jones",
            type=NodeType.PERSON,
            bank_provision=30,
            insurance_provision=20,
            real_estate_provision=10,
        ),
        alice.id,
    )
    carol = tree.add_node(HierarchyNode(name="Carol White", type=NodeType.PERSON), alice.id)
    return SimpleNamespace(tree=tree, root=root, alice=alice, bob=bob, carol=carol)


@pytest.fixture
def make_entry():
    """Factory for revenue entries with sensible defaults."""

    def _make_entry(employee_id, entry_id="e-1", **overrides):
        data = {
            "id": entry_id,
            "employee_id": employee_id,
            "entry_date": datetime(2024, 1, 15, 10, 30),
            "provision_amount": Decimal("200.00"),
            "category_type": "bank",
            "customer_name": "Max Mustermann",
            "product_name": "Baufinanzierung",
        }
        data.update(overrides)
        return RevenueEntry(**data)

    return _make_entry


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
