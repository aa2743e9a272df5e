# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across unit and integration tests:
- Sample identifiers
- Institution and department settings
- An in-memory SettingsStore
"""

import copy
from typing import Any

import pytest

from src.domains.department_config.store import ConfigChange, DepartmentRecord
from src.models.department_config import DepartmentSettings, InstitutionSettings


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DB_HOST": "localhost",
        "DB_PORT": "5432",
        "JWT_SECRET_KEY": "test-secret-key-for-testing-only",
        "JWT_ALGORITHM": "HS256",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
    }


# =============================================================================
# In-memory settings store
# =============================================================================


class InMemorySettingsStore:
    """SettingsStore keeping institutions and departments in dictionaries.

    Documents are stored in their JSON form, the same way the SQL store
    persists them, so every read returns a fresh object.
    """

    def __init__(self) -> None:
        self.institutions: dict[str, dict[str, Any]] = {}
        self.departments: dict[str, DepartmentRecord] = {}
        self.department_settings: dict[str, dict[str, Any]] = {}
        self.changes: list[ConfigChange] = []
        self.save_count = 0

    def add_institution(self, institution_id: str, settings: InstitutionSettings) -> None:
        self.institutions[institution_id] = settings.model_dump(mode="json", exclude_none=True)

    def add_department(
        self,
        department_id: str,
        institution_id: str,
        settings: DepartmentSettings | None = None,
        name: str = "Mathematics",
    ) -> None:
        self.departments[department_id] = DepartmentRecord(
            id=department_id,
            institution_id=institution_id,
            name=name,
        )
        self.department_settings[department_id] = (
            settings.to_sparse_dict() if settings else {}
        )

    async def get_department(self, department_id: str) -> DepartmentRecord | None:
        return self.departments.get(department_id)

    async def get_institution_settings(self, institution_id: str) -> InstitutionSettings | None:
        raw = self.institutions.get(institution_id)
        if raw is None:
            return None
        return InstitutionSettings.model_validate(copy.deepcopy(raw))

    async def get_department_settings(self, department_id: str) -> DepartmentSettings:
        raw = self.department_settings.get(department_id) or {}
        return DepartmentSettings.model_validate(copy.deepcopy(raw))

    async def save_department_settings(
        self, department_id: str, settings: DepartmentSettings
    ) -> None:
        self.save_count += 1
        self.department_settings[department_id] = settings.to_sparse_dict()

    async def save_institution_settings(
        self, institution_id: str, settings: InstitutionSettings
    ) -> None:
        self.save_count += 1
        self.institutions[institution_id] = settings.model_dump(mode="json", exclude_none=True)

    async def record_config_change(self, change: ConfigChange) -> None:
        self.changes.append(change)


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_institution_id() -> str:
    """Provide a sample institution ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_department_id() -> str:
    """Provide a sample department ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_user_id() -> str:
    """Provide a sample user ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440002"


@pytest.fixture
def institution_settings() -> InstitutionSettings:
    """Institution settings with the default restriction policy."""
    return InstitutionSettings(
        default_class_settings={
            "default_capacity": 30,
            "allow_self_enrollment": False,
        },
        collaboration_rules={"allow_external_collaboration": False},
        assignment_defaults={"allow_late_submissions": False},
    )


@pytest.fixture
def settings_store(
    institution_settings: InstitutionSettings,
    sample_institution_id: str,
    sample_department_id: str,
) -> InMemorySettingsStore:
    """In-memory store holding one institution and one empty department."""
    store = InMemorySettingsStore()
    store.add_institution(sample_institution_id, institution_settings)
    store.add_department(sample_department_id, sample_institution_id)
    return store
