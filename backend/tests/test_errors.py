"""Unit tests for the violation helpers in app.api.errors."""

from __future__ import annotations

from app.api import errors


def test_violation_str() -> None:
    violation = errors.Violation("latitude", "Latitude must be <= 90")
    assert str(violation) == "latitude: Latitude must be <= 90"


def test_request_validation_failed_message() -> None:
    exc = errors.RequestValidationFailed(
        [
            errors.Violation("name", "Name is required"),
            errors.Violation("geom", "Geometry is required"),
        ]
    )
    assert len(exc.violations) == 2
    assert str(exc) == "name: Name is required, geom: Geometry is required"
