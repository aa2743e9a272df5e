# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    departments: Department configuration endpoints.
    institutions: Institution settings endpoints.
"""

from fastapi import APIRouter

from src.api.v1 import departments, institutions

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(departments.router, prefix="/departments", tags=["Department Configuration"])
router.include_router(institutions.router, prefix="/institutions", tags=["Institutions"])

__all__ = ["router"]
