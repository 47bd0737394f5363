"""Hierarchy node entity."""

import uuid
from decimal import Decimal
from typing import Any, Optional

from orgbill.domain.entities import NodeMetadata, NodePosition, NodeType
from orgbill.domain.errors import HierarchyError, ValidationError
from orgbill.domain.validation import clamp_percentage, require_text

NAME_MAX_LENGTH = 200

# Fields accepted by HierarchyNode.apply_updates / HierarchyTree.update_node.
UPDATABLE_FIELDS = (
    "name",
    "description",
    "type",
    "position",
    "email",
    "phone",
    "bank_provision",
    "insurance_provision",
    "real_estate_provision",
)

PROVISION_FIELDS = ("bank_provision", "insurance_provision", "real_estate_provision")


def generate_id() -> str:
    """Return a fresh node/tree identifier."""
    return str(uuid.uuid4())


def validate_id(value: Any, field: str = "id") -> str:
    """Require a canonical UUID string."""
    try:
        parsed = uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError(f"Invalid {field} format: {value!r}", field)
    if str(parsed) != str(value).lower():
        raise ValidationError(f"Invalid {field} format: {value!r}", field)
    return str(value)


class HierarchyNode:
    """A single organizational unit in a hierarchy tree.

    Structural links (parent id, child ids) are changed only by the owning
    HierarchyTree; everything else is updated through the ``update_*`` methods,
    each of which validates its own input.
    """

    def __init__(
        self,
        name: str,
        id: Optional[str] = None,
        description: str = "",
        type: Any = NodeType.CUSTOM,
        position: Optional[NodePosition] = None,
        metadata: Optional[NodeMetadata] = None,
        parent_id: Optional[str] = None,
        child_ids: Optional[list[str]] = None,
        is_expanded: bool = True,
        is_visible: bool = True,
        order: int = 0,
        email: str = "",
        phone: str = "",
        bank_provision: Any = 0,
        insurance_provision: Any = 0,
        real_estate_provision: Any = 0,
    ):
        self._id = validate_id(id) if id is not None else generate_id()
        self._name = require_text(name, "name", NAME_MAX_LENGTH)
        self._description = description or ""
        self._type = NodeType.coerce(type)
        if position is not None and not isinstance(position, NodePosition):
            raise ValidationError("Position must be a NodePosition", "position")
        self._position = position or NodePosition.origin()
        self._metadata = metadata or NodeMetadata()
        if parent_id == self._id:
            raise HierarchyError("A node cannot be its own parent", self._id)
        self._parent_id = parent_id
        self._child_ids: list[str] = []
        for child_id in child_ids or []:
            if child_id == self._id:
                raise HierarchyError("A node cannot be its own child", self._id)
            if child_id not in self._child_ids:
                self._child_ids.append(child_id)
        self._is_expanded = bool(is_expanded)
        self._is_visible = bool(is_visible)
        self._order = self._validate_order(order)
        self._email = email or ""
        self._phone = phone or ""
        self._bank_provision = clamp_percentage(bank_provision, "bank_provision")
        self._insurance_provision = clamp_percentage(insurance_provision, "insurance_provision")
        self._real_estate_provision = clamp_percentage(
            real_estate_provision, "real_estate_provision"
        )

    def __repr__(self) -> str:
        return f"HierarchyNode(id={self._id!r}, name={self._name!r}, type={self._type.value!r})"

    @staticmethod
    def _validate_order(order: Any) -> int:
        if isinstance(order, bool) or not isinstance(order, int) or order < 0:
            raise ValidationError("Order must be a non-negative integer", "order")
        return order

    # Read access

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
    def type(self) -> NodeType:
        return self._type

    @property
    def position(self) -> NodePosition:
        return self._position

    @property
    def metadata(self) -> NodeMetadata:
        return self._metadata

    @property
    def parent_id(self) -> Optional[str]:
        return self._parent_id

    @property
    def child_ids(self) -> list[str]:
        """Copy of the child id list."""
        return list(self._child_ids)

    @property
    def is_expanded(self) -> bool:
        return self._is_expanded

    @property
    def is_visible(self) -> bool:
        return self._is_visible

    @property
    def order(self) -> int:
        return self._order

    @property
    def email(self) -> str:
        return self._email

    @property
    def phone(self) -> str:
        return self._phone

    @property
    def bank_provision(self) -> Decimal:
        return self._bank_provision

    @property
    def insurance_provision(self) -> Decimal:
        return self._insurance_provision

    @property
    def real_estate_provision(self) -> Decimal:
        return self._real_estate_provision

    @property
    def total_provision(self) -> Decimal:
        return self._bank_provision + self._insurance_provision + self._real_estate_provision

    @property
    def is_root(self) -> bool:
        return self._parent_id is None

    @property
    def has_children(self) -> bool:
        return len(self._child_ids) > 0

    @property
    def child_count(self) -> int:
        return len(self._child_ids)

    def provision_rate(self, bucket: str) -> Decimal:
        """Return the configured rate for a commission bucket (0 for unknown buckets)."""
        rates = {
            "bank": self._bank_provision,
            "insurance": self._insurance_provision,
            "real_estate": self._real_estate_provision,
        }
        return rates.get(bucket, Decimal("0"))

    # Field updates

    def _touch(self) -> None:
        self._metadata = self._metadata.with_updated_timestamp()

    def update_name(self, name: str) -> "HierarchyNode":
        self._name = require_text(name, "name", NAME_MAX_LENGTH)
        self._touch()
        return self

    def update_description(self, description: Optional[str]) -> "HierarchyNode":
        self._description = description or ""
        self._touch()
        return self

    def update_type(self, type: Any) -> "HierarchyNode":
        self._type = NodeType.coerce(type)
        self._touch()
        return self

    def update_position(self, position: NodePosition) -> "HierarchyNode":
        if not isinstance(position, NodePosition):
            raise ValidationError("Position must be a NodePosition", "position")
        self._position = position
        return self

    def update_email(self, email: Optional[str]) -> "HierarchyNode":
        self._email = email or ""
        self._touch()
        return self

    def update_phone(self, phone: Optional[str]) -> "HierarchyNode":
        self._phone = phone or ""
        self._touch()
        return self

    def update_bank_provision(self, value: Any) -> "HierarchyNode":
        self._bank_provision = clamp_percentage(value, "bank_provision")
        self._touch()
        return self

    def update_insurance_provision(self, value: Any) -> "HierarchyNode":
        self._insurance_provision = clamp_percentage(value, "insurance_provision")
        self._touch()
        return self

    def update_real_estate_provision(self, value: Any) -> "HierarchyNode":
        self._real_estate_provision = clamp_percentage(value, "real_estate_provision")
        self._touch()
        return self

    def current_values(self, fields: Optional[list[str]] = None) -> dict[str, Any]:
        """Return the current values of updatable fields (all by default)."""
        return {name: getattr(self, name) for name in (fields or UPDATABLE_FIELDS)}

    def validate_updates(self, updates: dict[str, Any]) -> dict[str, Any]:
        """Validate a partial update without applying it.

        Returns:
            The normalized values, keyed like ``updates``

        Raises:
            ValidationError: On an unknown field or an invalid value
        """
        normalized: dict[str, Any] = {}
        for key, value in updates.items():
            if key not in UPDATABLE_FIELDS:
                raise ValidationError(f"Unknown node field: {key}", key)
            if key == "name":
                normalized[key] = require_text(value, "name", NAME_MAX_LENGTH)
            elif key == "type":
                normalized[key] = NodeType.coerce(value)
            elif key == "position":
                if isinstance(value, dict):
                    value = NodePosition.from_dict(value)
                if not isinstance(value, NodePosition):
                    raise ValidationError("Position must be a NodePosition", "position")
                normalized[key] = value
            elif key in PROVISION_FIELDS:
                normalized[key] = clamp_percentage(value, key)
            else:
                normalized[key] = value or ""
        return normalized

    def apply_updates(self, updates: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update atomically.

        Every value is validated before any field changes.

        Returns:
            The previous values of the updated fields, suitable for reverting
        """
        normalized = self.validate_updates(updates)
        previous = self.current_values(list(normalized))
        for key, value in normalized.items():
            getattr(self, f"update_{key}")(value)
        return previous

    # Structural links (owned by the tree)

    def set_parent(self, parent_id: Optional[str]) -> "HierarchyNode":
        if parent_id == self._id:
            raise HierarchyError("A node cannot be its own parent", self._id)
        self._parent_id = parent_id
        self._touch()
        return self

    def add_child(self, child_id: str, index: Optional[int] = None) -> "HierarchyNode":
        if child_id == self._id:
            raise HierarchyError("A node cannot be its own child", self._id)
        if child_id not in self._child_ids:
            if index is None:
                self._child_ids.append(child_id)
            else:
                self._child_ids.insert(index, child_id)
            self._touch()
        return self

    def remove_child(self, child_id: str) -> "HierarchyNode":
        if child_id in self._child_ids:
            self._child_ids.remove(child_id)
            self._touch()
        return self

    def set_order(self, order: int) -> "HierarchyNode":
        self._order = self._validate_order(order)
        return self

    # Display flags

    def expand(self) -> "HierarchyNode":
        self._is_expanded = True
        return self

    def collapse(self) -> "HierarchyNode":
        self._is_expanded = False
        return self

    def toggle_expand(self) -> "HierarchyNode":
        self._is_expanded = not self._is_expanded
        return self

    def show(self) -> "HierarchyNode":
        self._is_visible = True
        return self

    def hide(self) -> "HierarchyNode":
        self._is_visible = False
        return self

    def clone(self, new_id: Optional[str] = None) -> "HierarchyNode":
        """Return a detached copy (no children, fresh metadata) named '<name> (Copy)'."""
        return HierarchyNode(
            id=new_id,
            name=f"{self._name} (Copy)"[:NAME_MAX_LENGTH],
            description=self._description,
            type=self._type,
            position=self._position,
            parent_id=self._parent_id,
            is_expanded=self._is_expanded,
            is_visible=self._is_visible,
            order=self._order,
            email=self._email,
            phone=self._phone,
            bank_provision=self._bank_provision,
            insurance_provision=self._insurance_provision,
            real_estate_provision=self._real_estate_provision,
        )

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self._id,
            "name": self._name,
            "description": self._description,
            "type": self._type.value,
            "position": self._position.to_dict(),
            "metadata": self._metadata.to_dict(),
            "parent_id": self._parent_id,
            "child_ids": list(self._child_ids),
            "is_expanded": self._is_expanded,
            "is_visible": self._is_visible,
            "order": self._order,
            "email": self._email,
            "phone": self._phone,
            "bank_provision": str(self._bank_provision),
            "insurance_provision": str(self._insurance_provision),
            "real_estate_provision": str(self._real_estate_provision),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HierarchyNode":
        position = data.get("position")
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            description=data.get("description") or "",
            type=data.get("type") or NodeType.CUSTOM,
            position=NodePosition.from_dict(position) if position else None,
            metadata=NodeMetadata.from_dict(data.get("metadata")),
            parent_id=data.get("parent_id"),
            child_ids=data.get("child_ids") or [],
            is_expanded=data.get("is_expanded", True),
            is_visible=data.get("is_visible", True),
            order=data.get("order", 0),
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            bank_provision=data.get("bank_provision", 0),
            insurance_provision=data.get("insurance_provision", 0),
            real_estate_provision=data.get("real_estate_provision", 0),
        )

    @classmethod
    def create_root(cls, name: str, description: str = "") -> "HierarchyNode":
        """Create a root node; the organisation itself earns the full rate in every bucket."""
        return cls(
            name=name,
            description=description,
            type=NodeType.ROOT,
            bank_provision=100,
            insurance_provision=100,
            real_estate_provision=100,
        )
