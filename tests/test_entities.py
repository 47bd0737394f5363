"""Tests for node value objects."""

from datetime import datetime, UTC

import pytest

from orgbill.domain.entities import NodeMetadata, NodePosition, NodeType
from orgbill.domain.errors import ValidationError


class TestNodeType:
    """Tests for NodeType."""

    def test_coerce_from_string(self):
        """Test coercing a string value."""
        assert NodeType.coerce("person") is NodeType.PERSON

    def test_coerce_from_serialized_dict(self):
        """Test coercing a {"value": ...} dict."""
        assert NodeType.coerce({"value": "team"}) is NodeType.TEAM

    def test_coerce_invalid(self):
        """Test that an unknown type raises ValidationError on the type field."""
        with pytest.raises(ValidationError) as exc_info:
            NodeType.coerce("galaxy")
        assert exc_info.value.field == "type"
        assert "Must be one of" in str(exc_info.value)

    def test_labels(self):
        """Test that every type has a display label."""
        assert NodeType.ROOT.label == "Organisation"
        assert all(t.label for t in NodeType)


class TestNodePosition:
    """Tests for NodePosition."""

    def test_translate_returns_new_instance(self):
        """Test that translate leaves the original untouched."""
        position = NodePosition(1.0, 2.0)
        moved = position.translate(3.0, -1.0)
        assert moved == NodePosition(4.0, 1.0)
        assert position == NodePosition(1.0, 2.0)

    def test_distance(self):
        """Test Euclidean distance."""
        assert NodePosition(0, 0).distance_to(NodePosition(3, 4)) == 5.0

    def test_distance_requires_position(self):
        """Test that distance to a non-position is rejected."""
        with pytest.raises(ValidationError):
            NodePosition().distance_to((3, 4))

    @pytest.mark.parametrize("x", [float("nan"), float("inf"), "1", None, True])
    def test_invalid_coordinates(self, x):
        """Test that non-finite or non-numeric coordinates are rejected."""
        with pytest.raises(ValidationError):
            NodePosition(x, 0)

    def test_immutability(self):
        """Test that positions are frozen."""
        position = NodePosition()
        with pytest.raises(Exception):  # dataclass frozen raises FrozenInstanceError
            position.x = 5.0


class TestNodeMetadata:
    """Tests for NodeMetadata."""

    def test_updated_at_defaults_to_created_at(self):
        """Test that a fresh metadata object has equal timestamps."""
        metadata = NodeMetadata()
        assert metadata.updated_at == metadata.created_at

    def test_with_updated_timestamp(self):
        """Test that touching keeps created_at and moves updated_at."""
        created = datetime(2020, 1, 1, tzinfo=UTC)
        metadata = NodeMetadata(created_at=created)
        touched = metadata.with_updated_timestamp()
        assert touched.created_at == created
        assert touched.updated_at > created
        assert metadata.updated_at == created

    def test_custom_fields_are_copied(self):
        """Test that callers cannot mutate the stored custom fields."""
        metadata = NodeMetadata().with_custom_field("region", "north")
        fields = metadata.get_custom_fields()
        fields["region"] = "south"
        assert metadata.custom_fields["region"] == "north"

    def test_with_custom_field_requires_key(self):
        """Test that a blank key is rejected."""
        with pytest.raises(ValidationError):
            NodeMetadata().with_custom_field("  ", 1)

    def test_with_tags(self):
        """Test replacing tags."""
        metadata = NodeMetadata().with_tags(["sales", "north"])
        assert metadata.tags == ("sales", "north")
        with pytest.raises(ValidationError):
            NodeMetadata().with_tags("sales")

    def test_dict_round_trip(self):
        """Test serializing and restoring metadata."""
        metadata = NodeMetadata(created_by="admin", tags=("a",), custom_fields={"k": 1})
        restored = NodeMetadata.from_dict(metadata.to_dict())
        assert restored.created_at == metadata.created_at
        assert restored.created_by == "admin"
        assert restored.tags == ("a",)
        assert restored.custom_fields == {"k": 1}

    def test_from_dict_invalid_timestamp(self):
        """Test that a malformed timestamp raises ValidationError."""
        with pytest.raises(ValidationError):
            NodeMetadata.from_dict({"created_at": "yesterday-ish"})
