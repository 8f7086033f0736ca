"""
Tests for the HTTP API

Routes are exercised through TestClient with repositories and the blob
store replaced via dependency_overrides, so no database is touched.

Tests cover:
- Health, feature flags and error rendering
- Importing the app module has no side effects
- Authentication and role guards on job role management
- Job role validation messages (including malformed JSON) and CRUD responses
- CV submission through /apply
- Login and registration
- Application access rules and admin status updates
"""

import importlib
import logging
import sys
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from jobboard.auth import TokenService
from jobboard.dependencies import (
    get_application_repository,
    get_coordinator,
    get_job_role_repository,
    get_password_hasher,
    get_user_repository,
)
from jobboard.errors import BadRequestError
from jobboard.main import create_app, cv_download_prefix
from jobboard.models import UserRole
from jobboard.services.applications import ApplicationSubmissionCoordinator
from jobboard.services.eligibility import JobRoleSnapshot
from jobboard.services.locks import KeyedLock

from conftest import TEST_SECRET

CV_URL = "http://testserver/uploads/cvs/2/abc.pdf"
FAR_FUTURE = datetime(2099, 1, 1)


def job_role_row(job_role_id=1, **overrides):
    values = dict(
        job_role_id=job_role_id,
        role_name="Software Engineer",
        job_location="Belfast",
        capability=SimpleNamespace(capability_name="Engineering"),
        band=SimpleNamespace(band_name="Associate"),
        status=SimpleNamespace(status_name="Open"),
        closing_date=datetime(2026, 4, 1, 17, 0),
        description="Build things",
        responsibilities="Ship things",
        sharepoint_url="https://sharepoint.example.com/se",
        number_of_open_positions=2,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def application_row(application_id=1, user_id=2, job_role_id=1, status="SUBMITTED"):
    return SimpleNamespace(
        application_id=application_id,
        user_id=user_id,
        job_role_id=job_role_id,
        cv_url=CV_URL,
        application_status=status,
        applied_at=datetime(2026, 3, 1, 12, 0),
        updated_at=datetime(2026, 3, 1, 12, 0),
        user=None,
        job_role=None,
    )


def valid_job_role_body(**overrides):
    body = {
        "roleName": "Data Engineer",
        "jobLocation": "London",
        "capabilityId": 1,
        "bandId": 1,
        "statusId": 1,
        "closingDate": "2026-05-01",
        "description": "Pipelines",
        "responsibilities": "Data",
        "sharepointUrl": "https://sharepoint.example.com/de",
        "numberOfOpenPositions": 1,
    }
    body.update(overrides)
    return body


@pytest.fixture
def app(settings):
    application = create_app(settings)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers(app):
    token = app.state.token_service.issue(1, "admin@example.com", UserRole.ADMIN)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def applicant_headers(app):
    token = app.state.token_service.issue(2, "applicant@example.com", UserRole.APPLICANT)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def job_roles(app):
    repo = MagicMock()
    repo.list_all = AsyncMock(return_value=[job_role_row(1), job_role_row(2, status=None)])
    repo.get = AsyncMock(return_value=job_role_row(1))
    repo.create = AsyncMock(return_value=job_role_row(3, role_name="Data Engineer"))
    repo.update = AsyncMock(return_value=job_role_row(1, number_of_open_positions=0))
    repo.delete = AsyncMock(return_value=True)
    repo.get_snapshot = AsyncMock(
        return_value=JobRoleSnapshot(
            job_role_id=1, number_of_open_positions=2, status_name="Open", closing_date=FAR_FUTURE
        )
    )
    app.dependency_overrides[get_job_role_repository] = lambda: repo
    return repo


@pytest.fixture
def applications(app):
    repo = MagicMock()
    repo.find_existing = AsyncMock(return_value=None)
    repo.create = AsyncMock(return_value=application_row())
    repo.get = AsyncMock(return_value=application_row())
    repo.list_for_user = AsyncMock(return_value=[application_row()])
    repo.list_for_job_role = AsyncMock(return_value=[application_row()])
    repo.update_status = AsyncMock(return_value=application_row(status="REVIEWING"))
    app.dependency_overrides[get_application_repository] = lambda: repo
    return repo


@pytest.fixture
def blob_store():
    store = MagicMock()
    store.upload = AsyncMock(return_value=CV_URL)
    store.delete = AsyncMock(return_value=None)
    return store


@pytest.fixture
def coordinator(app, applications, job_roles, blob_store):
    coordinator = ApplicationSubmissionCoordinator(
        applications=applications,
        job_roles=job_roles,
        blob_store=blob_store,
        locks=KeyedLock(),
    )
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    return coordinator


class TestPlumbing:
    """Test endpoints and behaviour shared by every route."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_feature_flags(self, settings):
        settings.feature_flag_job_apply = True
        client = TestClient(create_app(settings))

        response = client.get("/feature-flags")

        assert response.json() == {"JOB_DETAIL_VIEW": False, "JOB_APPLY": True}

    def test_unknown_route(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"message": "Not Found"}

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client):
        assert client.get("/health").headers["X-Request-ID"]

    def test_metrics(self, client):
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "jobboard_http_requests_total" in response.text

    def test_cv_download_prefix(self, settings):
        assert cv_download_prefix(settings) == "/uploads"

        settings.cv_public_base_url = "https://cdn.example.com"
        assert cv_download_prefix(settings) is None

        settings.cv_public_base_url = "http://testserver/uploads"
        settings.cv_storage_backend = "s3"
        assert cv_download_prefix(settings) is None

    def test_import_leaves_logging_alone(self, monkeypatch):
        monkeypatch.delitem(sys.modules, "jobboard.main", raising=False)
        root = logging.getLogger()
        handlers = list(root.handlers)

        module = importlib.import_module("jobboard.main")

        assert list(root.handlers) == handlers
        assert not hasattr(module, "app")


class TestJobRoleRoutes:
    """Test public reads and admin-only writes."""

    def test_list_is_public(self, client, job_roles):
        response = client.get("/job-roles")

        assert response.status_code == 200
        body = response.json()
        assert body[0] == {
            "jobRoleId": 1,
            "roleName": "Software Engineer",
            "location": "Belfast",
            "capability": "Engineering",
            "band": "Associate",
            "closingDate": "2026-04-01",
            "description": "Build things",
            "responsibilities": "Ship things",
            "sharepointUrl": "https://sharepoint.example.com/se",
            "status": "Open",
            "numberOfOpenPositions": 2,
        }
        assert body[1]["status"] == "Unknown"

    def test_list_failure(self, client, job_roles):
        job_roles.list_all.side_effect = RuntimeError("db down")

        response = client.get("/job-roles")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to get job roles"}

    def test_get_one(self, client, job_roles):
        response = client.get("/job-roles/1")

        assert response.status_code == 200
        assert response.json()["jobRoleId"] == 1
        job_roles.get.assert_awaited_once_with(1)

    def test_get_missing(self, client, job_roles):
        job_roles.get.return_value = None

        response = client.get("/job-roles/42")

        assert response.status_code == 404
        assert response.json() == {"message": "Job role not found"}

    def test_get_bad_id(self, client, job_roles):
        response = client.get("/job-roles/abc")

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid job role ID"}

    def test_create_requires_token(self, client, job_roles):
        response = client.post("/job-roles", json=valid_job_role_body())

        assert response.status_code == 401
        assert response.json() == {"message": "Authorization header is missing"}
        job_roles.create.assert_not_awaited()

    def test_create_forbidden_for_applicant(self, client, job_roles, applicant_headers):
        response = client.post("/job-roles", json=valid_job_role_body(), headers=applicant_headers)

        assert response.status_code == 403
        assert response.json() == {"message": "Insufficient permissions"}
        job_roles.create.assert_not_awaited()

    def test_create_as_admin(self, client, job_roles, admin_headers):
        response = client.post("/job-roles", json=valid_job_role_body(), headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["roleName"] == "Data Engineer"
        data = job_roles.create.await_args.args[0]
        assert data.role_name == "Data Engineer"
        assert data.closing_date == datetime(2026, 5, 1)

    def test_create_invalid_body(self, client, job_roles, admin_headers):
        body = valid_job_role_body(roleName="", sharepointUrl="nope", numberOfOpenPositions=-1)
        del body["closingDate"]

        response = client.post("/job-roles", json=body, headers=admin_headers)

        assert response.status_code == 400
        payload = response.json()
        assert payload["message"] == "Invalid request body"
        assert set(payload["errors"]) == {
            "Role name is required and must be a non-empty string",
            "SharePoint URL must be a valid URL",
            "numberOfOpenPositions must be a non-negative integer",
            "Closing Date is required",
        }
        job_roles.create.assert_not_awaited()

    def test_create_failure(self, client, job_roles, admin_headers):
        job_roles.create.side_effect = RuntimeError("constraint failed")

        response = client.post("/job-roles", json=valid_job_role_body(), headers=admin_headers)

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to create job role"}

    def test_create_malformed_json(self, client, job_roles, admin_headers):
        response = client.post(
            "/job-roles",
            content=b'{"roleName": "Data',
            headers={**admin_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {
            "message": "Invalid request body",
            "errors": ["Request body must be valid JSON"],
        }
        job_roles.create.assert_not_awaited()

    def test_create_malformed_json_as_applicant(self, client, job_roles, applicant_headers):
        response = client.post(
            "/job-roles",
            content=b"{not json",
            headers={**applicant_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 403
        assert response.json() == {"message": "Insufficient permissions"}
        job_roles.create.assert_not_awaited()

    def test_create_without_body(self, client, job_roles, admin_headers):
        response = client.post("/job-roles", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["errors"] == ["Request body is required"]

    def test_create_unknown_references(self, client, job_roles, admin_headers):
        job_roles.create.side_effect = BadRequestError(
            "Invalid job role references", errors=["capabilityId 99 does not exist"]
        )

        response = client.post(
            "/job-roles", json=valid_job_role_body(capabilityId=99), headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json() == {
            "message": "Invalid job role references",
            "errors": ["capabilityId 99 does not exist"],
        }

    def test_update(self, client, job_roles, admin_headers):
        response = client.put(
            "/job-roles/1", json={"numberOfOpenPositions": 0}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["numberOfOpenPositions"] == 0
        role_id, data = job_roles.update.await_args.args
        assert role_id == 1
        assert data.model_dump(exclude_unset=True) == {"number_of_open_positions": 0}

    def test_update_empty_body(self, client, job_roles, admin_headers):
        response = client.put("/job-roles/1", json={}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["errors"] == ["At least one field must be provided for update"]

    def test_update_bad_id(self, client, job_roles, admin_headers):
        response = client.put("/job-roles/x", json={"roleName": "y"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid job role ID"}

    def test_update_missing(self, client, job_roles, admin_headers):
        job_roles.update.return_value = None

        response = client.put("/job-roles/9", json={"roleName": "y"}, headers=admin_headers)

        assert response.status_code == 404

    def test_delete(self, client, job_roles, admin_headers):
        response = client.delete("/job-roles/1", headers=admin_headers)

        assert response.status_code == 204
        assert response.content == b""

    def test_delete_missing(self, client, job_roles, admin_headers):
        job_roles.delete.return_value = False

        response = client.delete("/job-roles/1", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"message": "Job role not found"}

    def test_delete_bad_id(self, client, job_roles, admin_headers):
        response = client.delete("/job-roles/0", headers=admin_headers)

        assert response.status_code == 400
        job_roles.delete.assert_not_awaited()


class TestApplyRoute:
    """Test POST /apply."""

    def cv_file(self):
        return {"cv": ("cv.pdf", b"%PDF-1.4 cv", "application/pdf")}

    def test_requires_token(self, client, coordinator, blob_store):
        response = client.post("/apply", data={"jobRoleId": "1"}, files=self.cv_file())

        assert response.status_code == 401
        blob_store.upload.assert_not_awaited()

    def test_expired_token(self, client, coordinator, blob_store):
        past = TokenService(
            secret=TEST_SECRET, clock=lambda: datetime.now(timezone.utc) - timedelta(hours=2)
        )
        token = past.issue(2, "applicant@example.com", UserRole.APPLICANT)

        response = client.post(
            "/apply",
            data={"jobRoleId": "1"},
            files=self.cv_file(),
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid or expired token"}

    def test_missing_cv(self, client, coordinator, applications, blob_store, applicant_headers):
        response = client.post("/apply", data={"jobRoleId": "1"}, headers=applicant_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "CV file is required"}
        applications.find_existing.assert_not_awaited()
        blob_store.upload.assert_not_awaited()

    def test_missing_job_role_id(self, client, coordinator, applicant_headers):
        response = client.post("/apply", files=self.cv_file(), headers=applicant_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Job role ID is required"}

    def test_success(self, client, coordinator, applications, blob_store, applicant_headers):
        response = client.post(
            "/apply", data={"jobRoleId": "1"}, files=self.cv_file(), headers=applicant_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Application submitted successfully"
        assert body["application"]["applicationId"] == 1
        assert body["application"]["cvUrl"] == CV_URL
        assert body["application"]["applicationStatus"] == "SUBMITTED"
        applications.create.assert_awaited_once_with(2, 1, CV_URL)
        content, key, content_type, metadata = blob_store.upload.await_args.args
        assert content == b"%PDF-1.4 cv"
        assert key.startswith("cvs/2/")
        assert content_type == "application/pdf"
        assert metadata["originalName"] == "cv.pdf"

    def test_ineligible(self, client, coordinator, job_roles, blob_store, applicant_headers):
        job_roles.get_snapshot.return_value = None

        response = client.post(
            "/apply", data={"jobRoleId": "77"}, files=self.cv_file(), headers=applicant_headers
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Job role not found"}
        blob_store.upload.assert_not_awaited()

    def test_upload_failure(self, client, coordinator, blob_store, applicant_headers):
        blob_store.upload.side_effect = OSError("disk full")

        response = client.post(
            "/apply", data={"jobRoleId": "1"}, files=self.cv_file(), headers=applicant_headers
        )

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to upload CV"}


class TestApplicationRoutes:
    """Test reading applications and the admin review endpoints."""

    def test_can_apply(self, client, coordinator, applicant_headers):
        response = client.get("/applications/can-apply/1", headers=applicant_headers)

        assert response.status_code == 200
        assert response.json() == {"canApply": True}

    def test_cannot_apply(self, client, coordinator, applications, applicant_headers):
        applications.find_existing.return_value = object()

        response = client.get("/applications/can-apply/1", headers=applicant_headers)

        assert response.json() == {
            "canApply": False,
            "reason": "You have already applied for this job role",
        }

    def test_list_mine(self, client, applications, applicant_headers):
        response = client.get("/applications/mine", headers=applicant_headers)

        assert response.status_code == 200
        assert len(response.json()["applications"]) == 1
        applications.list_for_user.assert_awaited_once_with(2)

    def test_owner_can_read(self, client, applications, applicant_headers):
        response = client.get("/applications/1", headers=applicant_headers)

        assert response.status_code == 200
        assert response.json()["application"]["userId"] == 2

    def test_other_applicant_denied(self, client, applications, applicant_headers):
        applications.get.return_value = application_row(user_id=99)

        response = client.get("/applications/1", headers=applicant_headers)

        assert response.status_code == 403
        assert response.json() == {"message": "Access denied"}

    def test_admin_can_read_any(self, client, applications, admin_headers):
        applications.get.return_value = application_row(user_id=99)

        assert client.get("/applications/1", headers=admin_headers).status_code == 200

    def test_missing_application(self, client, applications, applicant_headers):
        applications.get.return_value = None

        response = client.get("/applications/5", headers=applicant_headers)

        assert response.status_code == 404
        assert response.json() == {"message": "Application not found"}

    def test_admin_lists_for_job_role(self, client, applications, admin_headers):
        response = client.get("/admin/job-roles/1/applications", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["jobRoleId"] == 1
        applications.list_for_job_role.assert_awaited_once_with(1)

    def test_admin_routes_forbidden_for_applicant(self, client, applications, applicant_headers):
        response = client.get("/admin/job-roles/1/applications", headers=applicant_headers)

        assert response.status_code == 403
        applications.list_for_job_role.assert_not_awaited()

    def test_update_status(self, client, applications, admin_headers):
        response = client.patch(
            "/admin/applications/1/status", json={"status": "REVIEWING"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Application status updated successfully"
        assert response.json()["application"]["applicationStatus"] == "REVIEWING"

    def test_update_status_invalid(self, client, applications, admin_headers):
        response = client.patch(
            "/admin/applications/1/status", json={"status": "SUBMITTED"}, headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["errors"] == [
            "Valid status is required (IN_PROGRESS, REVIEWING, ACCEPTED, REJECTED)"
        ]
        applications.update_status.assert_not_awaited()

    def test_update_status_malformed_json_as_applicant(self, client, applications, applicant_headers):
        response = client.patch(
            "/admin/applications/1/status",
            content=b"{'status': 'ACCEPTED'}",
            headers={**applicant_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 403
        applications.update_status.assert_not_awaited()


class TestAuthRoutes:
    """Test login and registration."""

    @pytest.fixture
    def users(self, app):
        repo = MagicMock()
        repo.get_by_email = AsyncMock(
            return_value=SimpleNamespace(
                user_id=2,
                user_email="applicant@example.com",
                user_password="hashed",
                role=UserRole.APPLICANT,
            )
        )
        repo.create = AsyncMock(
            return_value=SimpleNamespace(
                user_id=3,
                user_email="new@example.com",
                user_role="APPLICANT",
                created_at=None,
            )
        )
        app.dependency_overrides[get_user_repository] = lambda: repo
        return repo

    @pytest.fixture
    def hasher(self, app):
        hasher = MagicMock()
        hasher.verify = AsyncMock(return_value=True)
        hasher.hash = AsyncMock(return_value="hashed")
        app.dependency_overrides[get_password_hasher] = lambda: hasher
        return hasher

    def test_login(self, client, app, users, hasher):
        response = client.post(
            "/login", json={"email": "applicant@example.com", "password": "secret1"}
        )

        assert response.status_code == 200
        claims = app.state.token_service.verify(response.json()["token"])
        assert claims.subject_id == 2
        assert claims.subject_role == UserRole.APPLICANT
        hasher.verify.assert_awaited_once_with("secret1", "hashed")

    def test_login_wrong_password(self, client, users, hasher):
        hasher.verify.return_value = False

        response = client.post("/login", json={"email": "applicant@example.com", "password": "x"})

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid email or password"}

    def test_login_unknown_email(self, client, users, hasher):
        users.get_by_email.return_value = None

        response = client.post("/login", json={"email": "who@example.com", "password": "x"})

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid email or password"}
        hasher.verify.assert_not_awaited()

    def test_login_missing_fields(self, client, users, hasher):
        response = client.post("/login", json={"email": "applicant@example.com"})

        assert response.status_code == 400
        assert response.json() == {"message": "Email and password are required"}

    def test_register(self, client, users, hasher):
        users.get_by_email.return_value = None

        response = client.post("/register", json={"email": "new@example.com", "password": "secret1"})

        assert response.status_code == 201
        assert response.json() == {
            "message": "User registered successfully",
            "user": {
                "userId": 3,
                "userEmail": "new@example.com",
                "userRole": "APPLICANT",
                "createdAt": None,
            },
        }
        users.create.assert_awaited_once_with("new@example.com", "hashed")

    def test_register_short_password(self, client, users, hasher):
        users.get_by_email.return_value = None

        response = client.post("/register", json={"email": "new@example.com", "password": "abc"})

        assert response.status_code == 400
        assert response.json() == {"message": "Password must be at least 6 characters long"}
        hasher.hash.assert_not_awaited()

    def test_register_taken_email(self, client, users, hasher):
        response = client.post(
            "/register", json={"email": "applicant@example.com", "password": "secret1"}
        )

        assert response.status_code == 409
        assert response.json() == {"message": "Email is already registered"}
        users.create.assert_not_awaited()
