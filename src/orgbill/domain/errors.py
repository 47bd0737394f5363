"""Shared domain error messages and error types."""

from typing import Any, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """

    code = "DOMAIN_ERROR"

    def to_dict(self) -> dict[str, Any]:
        """Return a plain-data view of the error."""
        return {"name": type(self).__name__, "code": self.code, "message": str(self)}


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} with id '{entity_id}' not found")
        self.entity_type = entity_type
        self.entity_id = entity_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["entity_type"] = self.entity_type
        data["entity_id"] = self.entity_id
        return data


class HierarchyError(DomainError):
    """Structural violation of the hierarchy tree."""

    code = "HIERARCHY_ERROR"

    def __init__(self, message: str, node_id: Optional[str] = None):
        super().__init__(message)
        self.node_id = node_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["node_id"] = self.node_id
        return data


class StorageError(DomainError):
    """Persisting or loading data failed."""

    code = "STORAGE_ERROR"


def node_not_found(node_id: str) -> NotFoundError:
    """Return error for a missing hierarchy node."""
    return NotFoundError("HierarchyNode", node_id)


def tree_not_found(tree_id: str) -> NotFoundError:
    """Return error for a missing hierarchy tree."""
    return NotFoundError("HierarchyTree", tree_id)


def max_depth_exceeded(max_depth: int) -> str:
    """Return message for a depth overflow."""
    return f"Maximum hierarchy depth of {max_depth} exceeded"
