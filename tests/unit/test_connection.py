# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database connection management."""

import pytest

from src.core.config.settings import Settings
from src.infrastructure.database.connection import (
    DatabaseError,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)


class TestDatabaseError:
    """Tests for DatabaseError."""

    def test_str_includes_original_error(self) -> None:
        """Test that the wrapped error is part of the message."""
        error = DatabaseError("Query failed", ValueError("boom"))

        assert str(error) == "Query failed: boom"
        assert isinstance(error.original_error, ValueError)

    def test_str_without_original_error(self) -> None:
        """Test the plain message."""
        assert str(DatabaseError("Not ready")) == "Not ready"


class TestConnectionLifecycle:
    """Tests for pool initialization and shutdown."""

    def test_engine_requires_initialization(self) -> None:
        """Test that accessing the engine before init fails."""
        with pytest.raises(DatabaseError, match="not initialized"):
            get_engine()

        with pytest.raises(DatabaseError, match="not initialized"):
            get_sessionmaker()

    @pytest.mark.asyncio
    async def test_session_requires_initialization(self) -> None:
        """Test that sessions cannot be opened before init."""
        with pytest.raises(DatabaseError):
            async with get_session():
                pass

    @pytest.mark.asyncio
    async def test_init_and_close(self) -> None:
        """Test that init creates the pool lazily and close disposes it."""
        settings = Settings()

        await init_database(settings)
        try:
            engine = get_engine()
            assert engine.url.database == settings.db.database
            assert get_sessionmaker() is not None
        finally:
            await close_database()

        with pytest.raises(DatabaseError):
            get_engine()
