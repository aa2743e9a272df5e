# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for authentication and request context middleware.

Tests the middleware components in isolation from database.
"""

import time
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from jose import jwt
from pydantic import SecretStr

from src.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from src.api.middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware
from src.domains.auth.jwt import JWTManager, TokenPayload


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


def _make_user(**kwargs) -> CurrentUser:
    claims = {
        "sub": str(uuid4()),
        "type": "access",
        "exp": 0,
        "iat": 0,
        "jti": "test-jti",
    }
    claims.update(kwargs)
    return CurrentUser(TokenPayload(**claims))


def _user_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(AuthMiddleware)

    @app.get("/api/v1/test")
    async def test_endpoint(request: Request) -> dict:
        user = get_current_user(request)
        return {"user_id": user.id if user else None}

    return app


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_public_path_bypasses_auth(self) -> None:
        """Test that public paths don't require authentication."""
        app = FastAPI()
        app.add_middleware(AuthMiddleware)

        @app.get("/health")
        async def health() -> dict:
            return {"status": "ok"}

        client = TestClient(app)
        response = client.get("/health")

        assert response.status_code == 200

    @patch("src.api.middleware.auth.get_settings")
    def test_valid_token_sets_user(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
        jwt_manager: JWTManager,
    ) -> None:
        """Test that valid token sets request.state.user."""
        mock_settings.return_value.jwt = jwt_settings

        user_id = str(uuid4())
        token = jwt_manager.create_access_token(
            user_id=user_id,
            institution_id=str(uuid4()),
            user_type="department_admin",
            department_ids=[str(uuid4())],
        )

        client = TestClient(_user_app())
        response = client.get(
            "/api/v1/test",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200
        assert response.json()["user_id"] == user_id

    @patch("src.api.middleware.auth.get_settings")
    def test_no_token_sets_user_none(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that missing token sets request.state.user to None."""
        mock_settings.return_value.jwt = jwt_settings

        client = TestClient(_user_app())
        response = client.get("/api/v1/test")

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    @patch("src.api.middleware.auth.get_settings")
    def test_invalid_token_sets_user_none(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that invalid token sets request.state.user to None."""
        mock_settings.return_value.jwt = jwt_settings

        client = TestClient(_user_app())
        response = client.get(
            "/api/v1/test",
            headers={"Authorization": "Bearer invalid.token.here"},
        )

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    @patch("src.api.middleware.auth.get_settings")
    def test_refresh_token_is_not_accepted(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that a refresh token does not authenticate requests."""
        mock_settings.return_value.jwt = jwt_settings
        token = jwt.encode(
            {"sub": "user-1", "type": "refresh", "exp": int(time.time()) + 60, "iat": 0, "jti": "j"},
            "test-secret-key-for-jwt-testing",
            algorithm="HS256",
        )

        client = TestClient(_user_app())
        response = client.get(
            "/api/v1/test",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.json()["user_id"] is None

    @patch("src.api.middleware.auth.get_settings")
    def test_non_bearer_scheme_is_ignored(
        self,
        mock_settings: MagicMock,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that only Bearer authorization is used."""
        mock_settings.return_value.jwt = jwt_settings

        client = TestClient(_user_app())
        response = client.get(
            "/api/v1/test",
            headers={"Authorization": "Basic dXNlcjpwYXNz"},
        )

        assert response.json()["user_id"] is None


class TestCurrentUser:
    """Tests for CurrentUser class."""

    def test_has_role(self) -> None:
        """Test has_role method."""
        user = _make_user(roles=["department_admin", "teacher"])

        assert user.has_role("teacher") is True
        assert user.has_role("institution_admin") is False

    def test_user_type_properties(self) -> None:
        """Test administrative level properties."""
        system = _make_user(user_type="system_admin")
        institution = _make_user(user_type="institution_admin")
        department = _make_user(user_type="department_admin")

        assert system.is_system_admin is True
        assert institution.is_institution_admin is True
        assert department.is_department_admin is True
        assert department.is_institution_admin is False

    def test_system_admin_can_manage_everything(self) -> None:
        """Test that system admins are not scoped to an institution."""
        user = _make_user(user_type="system_admin")

        assert user.can_access_institution("inst-1") is True
        assert user.can_manage_institution("inst-1") is True
        assert user.can_manage_department("inst-1", "dept-1") is True

    def test_institution_admin_scoped_to_own_institution(self) -> None:
        """Test institution admin access."""
        user = _make_user(user_type="institution_admin", institution_id="inst-1")

        assert user.can_manage_institution("inst-1") is True
        assert user.can_manage_department("inst-1", "any-dept") is True
        assert user.can_manage_institution("inst-2") is False
        assert user.can_manage_department("inst-2", "dept-1") is False

    def test_department_admin_scoped_to_listed_departments(self) -> None:
        """Test department admin access."""
        user = _make_user(
            user_type="department_admin",
            institution_id="inst-1",
            department_ids=["dept-1"],
        )

        assert user.can_access_institution("inst-1") is True
        assert user.can_manage_institution("inst-1") is False
        assert user.can_manage_department("inst-1", "dept-1") is True
        assert user.can_manage_department("inst-1", "dept-2") is False
        assert user.can_manage_department("inst-2", "dept-1") is False

    def test_teacher_cannot_manage_departments(self) -> None:
        """Test that non-admin users only read their institution."""
        user = _make_user(user_type="teacher", institution_id="inst-1", department_ids=["dept-1"])

        assert user.can_access_institution("inst-1") is True
        assert user.can_access_institution("inst-2") is False
        assert user.can_manage_department("inst-1", "dept-1") is False


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    def _app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.get("/ping")
        async def ping(request: Request) -> dict:
            return {"request_id": request.state.request_id}

        return app

    def test_request_id_is_generated(self) -> None:
        """Test that a request id is generated and echoed."""
        client = TestClient(self._app())
        response = client.get("/ping")

        request_id = response.headers[REQUEST_ID_HEADER]
        assert request_id
        assert response.json()["request_id"] == request_id

    def test_request_id_is_propagated(self) -> None:
        """Test that an incoming request id is kept."""
        client = TestClient(self._app())
        response = client.get("/ping", headers={REQUEST_ID_HEADER: "req-123"})

        assert response.headers[REQUEST_ID_HEADER] == "req-123"
        assert response.json()["request_id"] == "req-123"
