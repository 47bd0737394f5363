"""Value objects attached to hierarchy nodes.

These are immutable data classes: every "change" returns a new instance, so a
node can hand them out without callers being able to alter its state.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Optional

from orgbill.domain.errors import ValidationError
from orgbill.utils.date_parser import to_datetime


class NodeType(str, Enum):
    """Kind of organizational unit a node represents."""

    ROOT = "root"
    DEPARTMENT = "department"
    TEAM = "team"
    ROLE = "role"
    PERSON = "person"
    PROCESS = "process"
    TASK = "task"
    MILESTONE = "milestone"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        return _NODE_TYPE_LABELS[self]

    @classmethod
    def coerce(cls, value: Any) -> "NodeType":
        """Accept a NodeType, its string value, or a serialized {"value": ...} dict."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            value = value.get("value")
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValidationError(
                f"Invalid node type: {value}. Must be one of: {valid}", "type"
            )


_NODE_TYPE_LABELS = {
    NodeType.ROOT: "Organisation",
    NodeType.DEPARTMENT: "Department",
    NodeType.TEAM: "Team",
    NodeType.ROLE: "Role",
    NodeType.PERSON: "Person",
    NodeType.PROCESS: "Process",
    NodeType.TASK: "Task",
    NodeType.MILESTONE: "Milestone",
    NodeType.CUSTOM: "Custom",
}


@dataclass(frozen=True)
class NodePosition:
    """Position of a node on the chart canvas."""

    x: float = 0.0
    y: float = 0.0

    def __post_init__(self):
        for name in ("x", "y"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError("Position coordinates must be numbers", "position")
            if not math.isfinite(value):
                raise ValidationError(
                    "Position coordinates must be finite numbers", "position"
                )

    def translate(self, delta_x: float, delta_y: float) -> "NodePosition":
        return NodePosition(self.x + delta_x, self.y + delta_y)

    def distance_to(self, other: "NodePosition") -> float:
        if not isinstance(other, NodePosition):
            raise ValidationError("Comparison must be with another NodePosition", "position")
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodePosition":
        return cls(data.get("x", 0.0), data.get("y", 0.0))

    @classmethod
    def origin(cls) -> "NodePosition":
        return cls(0.0, 0.0)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class NodeMetadata:
    """Creation/update timestamps plus a tag and custom-field bag."""

    created_at: datetime = field(default_factory=_now)
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    tags: tuple[str, ...] = ()
    custom_fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.updated_at is None:
            object.__setattr__(self, "updated_at", self.created_at)
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "custom_fields", dict(self.custom_fields))

    def get_custom_fields(self) -> dict[str, Any]:
        """Return a copy of the custom fields."""
        return dict(self.custom_fields)

    def with_updated_timestamp(self) -> "NodeMetadata":
        return NodeMetadata(
            created_at=self.created_at,
            updated_at=_now(),
            created_by=self.created_by,
            tags=self.tags,
            custom_fields=self.custom_fields,
        )

    def with_tags(self, tags: list[str]) -> "NodeMetadata":
        if not isinstance(tags, (list, tuple)):
            raise ValidationError("Tags must be a list", "tags")
        return NodeMetadata(
            created_at=self.created_at,
            updated_at=_now(),
            created_by=self.created_by,
            tags=tuple(tags),
            custom_fields=self.custom_fields,
        )

    def with_custom_field(self, key: str, value: Any) -> "NodeMetadata":
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("Custom field key must be a non-empty string", "custom_fields")
        return NodeMetadata(
            created_at=self.created_at,
            updated_at=_now(),
            created_by=self.created_by,
            tags=self.tags,
            custom_fields={**self.custom_fields, key: value},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "created_by": self.created_by,
            "tags": list(self.tags),
            "custom_fields": dict(self.custom_fields),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "NodeMetadata":
        if not data:
            return cls()
        try:
            created_at = (
                _aware(to_datetime(data["created_at"])) if data.get("created_at") else _now()
            )
            updated_at = (
                _aware(to_datetime(data["updated_at"])) if data.get("updated_at") else None
            )
        except ValueError as e:
            raise ValidationError(f"Invalid metadata timestamp: {e}", "metadata")
        return cls(
            created_at=created_at,
            updated_at=updated_at,
            created_by=data.get("created_by"),
            tags=tuple(data.get("tags") or ()),
            custom_fields=dict(data.get("custom_fields") or {}),
        )


def _aware(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC)
