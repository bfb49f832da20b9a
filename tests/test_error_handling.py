"""Tests for the error taxonomy and its HTTP mapping."""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from admissions_backend.auth.dependencies import get_identity_provider, get_lifecycle_service
from admissions_backend.auth.identity import JWTIdentityProvider
from admissions_backend.core.error_handling import (
    GENERIC_FAILURE_NOTICE,
    STORAGE_FAILURE_NOTICE,
    AdmissionsError,
    AuthenticationError,
    AuthorizationError,
    ErrorCategory,
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
    http_status_for,
    register_exception_handlers,
)
from admissions_backend.main import create_app
from admissions_backend.services.lifecycle_service import ApplicationLifecycleService


class TestErrorTaxonomy:
    """Error classes and classification."""

    def test_validation_error(self):
        error = ValidationError("Comment is required", field="comment", value="")

        assert error.category == ErrorCategory.VALIDATION
        assert error.severity == ErrorSeverity.LOW
        assert error.to_dict()["field"] == "comment"
        assert http_status_for(error) == 422

    def test_invalid_state_error(self):
        error = InvalidStateError("No decision to release", current_status="under_review")

        assert error.to_dict()["current_status"] == "under_review"
        assert http_status_for(error) == 409

    def test_status_codes(self):
        assert http_status_for(NotFoundError(user_id="u1")) == 404
        assert http_status_for(StorageError("down")) == 503
        assert http_status_for(AuthorizationError()) == 403

    def test_sqlalchemy_errors_become_storage_errors(self):
        original = OperationalError("SELECT 1", {}, Exception("connection refused"))

        error = ErrorHandler().handle_error(original, ErrorContext(operation="get", component="test"))

        assert isinstance(error, StorageError)
        assert error.original_error is original
        assert error.to_dict()["context"]["operation"] == "get"

    def test_unknown_errors_are_critical_system_errors(self):
        error = ErrorHandler().handle_error(RuntimeError("boom"))

        assert type(error) is AdmissionsError
        assert error.category == ErrorCategory.SYSTEM
        assert error.severity == ErrorSeverity.CRITICAL

    def test_admissions_errors_pass_through(self):
        original = NotFoundError(user_id="u1")
        assert ErrorHandler().handle_error(original) is original


class TestExceptionHandlers:
    """Errors raised in routes turn into JSON responses."""

    def build_client(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/conflict")
        async def conflict():
            raise InvalidStateError("Cannot submit while application is submitted", current_status="submitted")

        @app.get("/storage")
        async def storage():
            raise OperationalError("UPDATE applications", {}, Exception("disk full"))

        return TestClient(app)

    def test_admissions_error_response(self):
        response = self.build_client().get("/conflict")

        assert response.status_code == 409
        body = response.json()["error"]
        assert body["category"] == "business_logic"
        assert body["current_status"] == "submitted"

    def test_database_error_response_is_generic(self):
        response = self.build_client().get("/storage")

        assert response.status_code == 503
        assert "disk full" not in response.text

    def test_unexpected_error_response_is_generic(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        response = TestClient(app, raise_server_exceptions=False).get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["message"] == GENERIC_FAILURE_NOTICE
        assert "secret internals" not in response.text


class TestErrorResponses:
    """Client-facing error bodies never carry driver details."""

    def test_storage_error_body(self):
        original = OperationalError("UPDATE applications SET form_data=?", {}, Exception("disk full"))
        error = StorageError("Failed to update application u1", original_error=original)

        assert error.to_response() == {"message": STORAGE_FAILURE_NOTICE, "category": "database"}
        assert "disk full" in error.to_dict()["original_error"]

    def test_low_severity_body_drops_original_error(self):
        error = AuthenticationError("Could not validate credentials", original_error=ValueError("bad padding"))

        body = error.to_response()

        assert body["message"] == "Could not validate credentials"
        assert "original_error" not in body
        assert "original_error_type" not in body

    def test_failed_commit_through_sql_repository(self, sql_repository, db_session, complete_form, monkeypatch):
        provider = JWTIdentityProvider(secret_key="storage-test-secret")
        service = ApplicationLifecycleService(sql_repository, enforce_required_fields=True)
        service.get_or_create("cand-1")

        app = create_app()
        app.dependency_overrides[get_lifecycle_service] = lambda: service
        app.dependency_overrides[get_identity_provider] = lambda: provider
        headers = {"Authorization": f"Bearer {provider.issue_token('cand-1')}"}

        def failing_commit():
            raise OperationalError(
                "UPDATE applications SET form_data=?", {}, Exception("disk full at /var/lib/pg")
            )

        monkeypatch.setattr(db_session, "commit", failing_commit)

        response = TestClient(app).put("/applications/me/form", json={"form_data": complete_form}, headers=headers)

        assert response.status_code == 503
        assert response.json() == {"error": {"message": STORAGE_FAILURE_NOTICE, "category": "database"}}
        assert "disk full" not in response.text
        assert "UPDATE applications" not in response.text
