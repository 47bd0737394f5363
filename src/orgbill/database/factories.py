"""Repository factory functions."""

import os
from pathlib import Path
from typing import Optional

from orgbill.database.sqlalchemy_db import SQLAlchemyHierarchyRepository
from orgbill.domain.constants import DEFAULT_MAX_DEPTH


def create_sqlite_repository(
    database_path: Optional[str] = None, max_depth: int = DEFAULT_MAX_DEPTH
) -> SQLAlchemyHierarchyRepository:
    """Create a SQLite-backed hierarchy repository.

    Args:
        database_path: Path to SQLite database file. If None, checks ORGBILL_DB_PATH
            environment variable, then defaults to ~/.orgbill/orgbill.db
        max_depth: Depth bound for loaded trees

    Returns:
        SQLAlchemyHierarchyRepository configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("ORGBILL_DB_PATH")

    if database_path is None:
        db_dir = Path.home() / ".orgbill"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "orgbill.db")

    return SQLAlchemyHierarchyRepository(f"sqlite:///{database_path}", max_depth=max_depth)
