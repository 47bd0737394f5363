"""Tests for runtime settings."""

from decimal import Decimal

import pytest

from orgbill.config import Settings
from orgbill.domain.errors import DomainError, ValidationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ORGBILL_MAX_DEPTH", "ORGBILL_DEFAULT_VAT_RATE", "ORGBILL_DB_PATH"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    """Test settings without environment variables."""
    settings = Settings.from_env()
    assert settings.max_depth == 10
    assert settings.default_vat_rate == Decimal("19")
    assert settings.database_path is None


def test_values_from_env(monkeypatch):
    """Test reading every variable."""
    monkeypatch.setenv("ORGBILL_MAX_DEPTH", "4")
    monkeypatch.setenv("ORGBILL_DEFAULT_VAT_RATE", "7")
    monkeypatch.setenv("ORGBILL_DB_PATH", "/tmp/org.db")
    settings = Settings.from_env()
    assert settings.max_depth == 4
    assert settings.default_vat_rate == Decimal("7")
    assert settings.database_path == "/tmp/org.db"


@pytest.mark.parametrize("value", ["deep", "0", "-3"])
def test_invalid_max_depth(monkeypatch, value):
    """Test that the depth must be a positive integer."""
    monkeypatch.setenv("ORGBILL_MAX_DEPTH", value)
    with pytest.raises(ValidationError) as exc_info:
        Settings.from_env()
    assert exc_info.value.field == "ORGBILL_MAX_DEPTH"


def test_invalid_vat_rate(monkeypatch):
    """Test that the VAT rate must be numeric."""
    monkeypatch.setenv("ORGBILL_DEFAULT_VAT_RATE", "nineteen")
    with pytest.raises(ValidationError):
        Settings.from_env()


def test_errors_are_value_errors():
    """Test that domain errors stay compatible with ValueError handling."""
    error = ValidationError("bad", "field")
    assert isinstance(error, DomainError)
    assert isinstance(error, ValueError)
    assert error.to_dict() == {
        "name": "ValidationError",
        "code": "VALIDATION_ERROR",
        "message": "bad",
        "field": "field",
    }
