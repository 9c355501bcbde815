"""
Unit tests for the service error hierarchy and its HTTP translation.
"""

from uuid import uuid4

from app.core.errors import (
    AuthorizationError,
    DependencyError,
    NotFoundError,
    PartialBatchError,
    PermitServiceError,
    StateConflictError,
    ValidationError,
    http_error,
)


class TestErrorCodes:
    def test_status_codes(self):
        assert ValidationError("bad").status_code == 422
        assert StateConflictError("nope").status_code == 409
        assert NotFoundError("Application").status_code == 404
        assert AuthorizationError().status_code == 403
        assert DependencyError("missing", missing="x").status_code == 424

    def test_all_derive_from_base(self):
        for error in (
            ValidationError("bad"),
            StateConflictError("nope"),
            NotFoundError("Consent"),
            AuthorizationError(),
            DependencyError("missing", missing="x"),
        ):
            assert isinstance(error, PermitServiceError)

    def test_not_found_code_from_entity(self):
        error = NotFoundError("Acceptance requirement", uuid4())
        assert error.error_code == "ACCEPTANCE_REQUIREMENT_NOT_FOUND"

    def test_partial_batch_error_message(self):
        record_id = uuid4()
        error = PartialBatchError("application", record_id, RuntimeError("boom"))
        assert str(error) == f"application {record_id}: boom"


class TestHttpError:
    def test_validation_details_included(self):
        exc = http_error(
            ValidationError("Invalid", details=[{"field": "file", "message": "File is empty"}])
        )
        assert exc.status_code == 422
        assert exc.detail == {
            "error": "VALIDATION_ERROR",
            "message": "Invalid",
            "details": [{"field": "file", "message": "File is empty"}],
        }

    def test_current_status_included(self):
        exc = http_error(StateConflictError("Conflict", current_status="voided"))
        assert exc.detail["current_status"] == "voided"
        assert exc.detail["error"] == "STATE_CONFLICT"

    def test_none_extras_dropped(self):
        exc = http_error(StateConflictError("Conflict"))
        assert "current_status" not in exc.detail

    def test_dependency_names_missing_prerequisite(self):
        exc = http_error(DependencyError("No polygon", missing="affected_coordinate_history"))
        assert exc.status_code == 424
        assert exc.detail["missing"] == "affected_coordinate_history"
