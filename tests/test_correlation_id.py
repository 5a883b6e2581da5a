# tests/test_correlation_id.py
"""
Tests for correlation ID context management.
"""

import asyncio

import pytest

from lotledger.utils.context import (
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationIdContext:
    """Tests for correlation ID context functions."""

    def test_get_returns_none_when_not_set(self):
        """Should return None when correlation ID is not set."""
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        """Should set and retrieve correlation ID."""
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"
        clear_correlation_id()

    def test_clear_correlation_id(self):
        """Should clear correlation ID."""
        set_correlation_id("test-correlation-456")
        clear_correlation_id()
        assert get_correlation_id() is None


class TestCorrelationScope:
    """Tests for correlation_scope()."""

    def test_generates_id_when_not_provided(self):
        clear_correlation_id()

        with correlation_scope() as correlation_id:
            assert correlation_id
            assert get_correlation_id() == correlation_id

        assert get_correlation_id() is None

    def test_uses_provided_id(self):
        with correlation_scope("replay-42") as correlation_id:
            assert correlation_id == "replay-42"
            assert get_correlation_id() == "replay-42"

    def test_nested_scope_keeps_outer_id(self):
        with correlation_scope("outer"):
            with correlation_scope() as inner:
                assert inner == "outer"
            assert get_correlation_id() == "outer"

    def test_restores_after_exception(self):
        clear_correlation_id()

        with pytest.raises(RuntimeError):
            with correlation_scope("failing"):
                raise RuntimeError("boom")

        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_concurrent_tasks_are_isolated(self):
        """Each task sees only its own correlation ID."""

        async def worker(name: str) -> str | None:
            with correlation_scope(name):
                await asyncio.sleep(0.01)
                return get_correlation_id()

        results = await asyncio.gather(worker("a"), worker("b"))

        assert results == ["a", "b"]

    def test_different_scopes_get_different_ids(self):
        clear_correlation_id()

        with correlation_scope() as first:
            pass
        with correlation_scope() as second:
            pass

        assert first != second
