# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

Users are authenticated by the platform's identity provider. This package
validates the access tokens it issues.

Exports:
    JWTManager: Access token verification.
    TokenPayload: Decoded access token claims.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "JWTManager",
    "JWTError",
    "InvalidTokenError",
    "TokenExpiredError",
    "TokenPayload",
]
