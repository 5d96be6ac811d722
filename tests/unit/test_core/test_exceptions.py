"""Tests for core exceptions."""

from notification_service.core import exceptions as exc


def test_app_exception_defaults_title() -> None:
    error = exc.AppException(status_code=400, detail="bad")
    assert error.title == "Bad Request"
    assert error.extra == {}
    assert str(error) == "bad"


def test_unknown_status_title() -> None:
    assert exc.AppException(status_code=418, detail="teapot").title == "Error"


def test_not_found_exception_fields() -> None:
    error = exc.NotFoundException(detail="missing", type="notification-not-found")
    assert error.status_code == 404
    assert error.type == "notification-not-found"
    assert error.title == "Not Found"


def test_validation_exception_is_422() -> None:
    error = exc.ValidationException(detail="no channels", extra={"field": "channels"})
    assert error.status_code == 422
    assert error.type == "validation-error"
    assert error.extra["field"] == "channels"


def test_persistence_exception_is_service_unavailable() -> None:
    error = exc.PersistenceException(detail="Failed to persist notification", extra={"user_id": "u1"})
    assert isinstance(error, exc.ServiceUnavailableException)
    assert error.status_code == 503
    assert error.type == "persistence-failure"
    assert error.title == "Service Unavailable"
