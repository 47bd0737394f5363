"""SQLAlchemy models for the orgbill database."""

from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class Tree(Base):
    """Hierarchy tree stored as a single JSON document."""

    __tablename__ = "trees"

    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    node_count = Column(Integer, default=0, nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
