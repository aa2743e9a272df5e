# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access token handling.

Access tokens are signed by the platform's identity provider with a shared
secret. Their claims carry the administrative scope of the caller: the
institution they belong to, their user type and the departments they
administer. This module verifies those tokens and can mint them for
internal tooling and tests.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> claims = jwt_manager.decode_token(token, expected_type="access")
    >>> claims.department_ids
    ['550e8400-e29b-41d4-a716-446655440001']
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Literal
from uuid import UUID

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, Field, ValidationError

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)

TokenType = Literal["access", "refresh"]


class TokenPayload(BaseModel):
    """Claims of an access token.

    Attributes:
        sub: User id.
        type: Token type; only access tokens authenticate requests.
        institution_id: Institution the user belongs to.
        user_type: system_admin, institution_admin, department_admin, ...
        roles: Role codes.
        department_ids: Departments the user administers.
        exp: Expiration timestamp.
        iat: Issued-at timestamp.
        jti: Token id.
    """

    sub: str
    type: TokenType
    institution_id: str | None = None
    user_type: str | None = None
    roles: list[str] = Field(default_factory=list)
    department_ids: list[str] = Field(default_factory=list)
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """Base exception for token handling."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token cannot be trusted."""

    pass


class JWTManager:
    """Verifies and mints access tokens.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    @property
    def _secret(self) -> str:
        return self._settings.secret_key.get_secret_value()

    def create_access_token(
        self,
        user_id: str | UUID,
        institution_id: str | UUID | None = None,
        user_type: str | None = None,
        roles: list[str] | None = None,
        department_ids: list[str | UUID] | None = None,
    ) -> str:
        """Mint an access token for a user.

        Args:
            user_id: User identifier.
            institution_id: Institution the user belongs to.
            user_type: Administrative level.
            roles: Role codes.
            department_ids: Departments the user administers.

        Returns:
            Signed token string.
        """
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(minutes=self._settings.access_token_expire_minutes)
        claims: dict[str, Any] = {
            "sub": str(user_id),
            "type": "access",
            "institution_id": str(institution_id) if institution_id else None,
            "user_type": user_type,
            "roles": list(roles or []),
            "department_ids": [str(d) for d in department_ids or []],
            "exp": int(expires_at.timestamp()),
            "iat": int(issued_at.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(claims, self._secret, algorithm=self._settings.algorithm)

    def decode_token(self, token: str, expected_type: TokenType | None = None) -> TokenPayload:
        """Verify a token's signature and expiry and parse its claims.

        Args:
            token: Encoded token.
            expected_type: Reject tokens of any other type.

        Returns:
            Parsed claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the signature, type or claims are wrong.
        """
        try:
            raw = jwt.decode(token, self._secret, algorithms=[self._settings.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JoseJWTError as e:
            logger.warning("Token decode failed: %s", e)
            raise InvalidTokenError(f"Invalid token: {e}") from e

        if expected_type is not None and raw.get("type") != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token, got {raw.get('type')}")

        try:
            return TokenPayload.model_validate(raw)
        except ValidationError as e:
            logger.warning("Token claims invalid: %s", e)
            raise InvalidTokenError("Invalid token: malformed claims") from e

    def verify_token(self, token: str, expected_type: TokenType | None = None) -> bool:
        """Check whether a token is valid without raising."""
        try:
            self.decode_token(token, expected_type)
        except JWTError:
            return False
        return True
