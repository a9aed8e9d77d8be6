from lanmon.core.exceptions import (
    BackendUnavailableError,
    ConflictError,
    LanMonitorError,
    NotFoundError,
    StorageError,
    ValidationError,
)


def test_lanmon_error_to_dict():
    err = LanMonitorError(code="test_error", message="Something broke", status=500)
    d = err.to_dict()
    assert d["error"]["code"] == "test_error"
    assert d["error"]["message"] == "Something broke"
    assert d["error"]["status"] == 500
    assert "details" not in d["error"]


def test_lanmon_error_with_details():
    err = LanMonitorError(code="x", message="y", status=400, details={"hint": "try again"})
    d = err.to_dict()
    assert d["error"]["details"]["hint"] == "try again"


def test_validation_error_carries_reasons():
    err = ValidationError(["Title is required", "Lane must be one of: backlog"])
    assert err.status == 400
    assert err.errors == ["Title is required", "Lane must be one of: backlog"]
    assert err.to_dict()["error"]["details"]["errors"] == err.errors


def test_not_found_error_defaults():
    assert NotFoundError().status == 404


def test_conflict_error_defaults():
    err = ConflictError()
    assert err.status == 409
    assert err.code == "conflict"


def test_backend_unavailable_error_defaults():
    assert BackendUnavailableError().status == 503


def test_storage_error_defaults():
    err = StorageError()
    assert err.status == 500
    assert err.code == "storage_error"
