"""Tests for the SQLAlchemy repositories on SQLite."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cv_screener_infra.db.repositories.cv_text_repo import CVTextRepository, CVTextStore
from cv_screener_infra.db.repositories.result_repo import (
    ResultRepository,
    to_candidate_result,
    to_result_model,
)
from tests.mocks.mock_factories import make_result


@pytest.mark.unit
class TestResultRepository:
    """Test stored analysis results."""

    async def test_add_and_list_best_first(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        results = [
            make_result(name="Low", overall=2.0, cv_text_hash="h1", file_name="low.pdf"),
            make_result(name="High", overall=9.0, cv_text_hash="h2"),
        ]
        async with session_factory() as session, session.begin():
            added = await ResultRepository(session).add_many(
                [to_result_model(r, "u1", "a1", "Backend") for r in results]
            )
        assert added == 2

        async with session_factory() as session:
            repo = ResultRepository(session)
            rows = await repo.list_for_analysis("u1", "a1")
            other_user = await repo.list_for_analysis("u2", "a1")

        assert [r.name for r in rows] == ["High", "Low"]
        assert rows[0].title == "Backend"
        assert other_user == []

        restored = to_candidate_result(rows[1])
        assert restored.name == "Low"
        assert restored.scores == results[0].scores
        assert restored.file_name == "low.pdf"
        assert restored.cv_text_hash == "h1"

    async def test_list_for_analyses(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session, session.begin():
            await ResultRepository(session).add_many(
                [
                    to_result_model(make_result(name="A"), "u1", "a1", None),
                    to_result_model(make_result(name="B"), "u1", "a2", None),
                    to_result_model(make_result(name="C"), "u1", "a3", None),
                ]
            )
        async with session_factory() as session:
            rows = await ResultRepository(session).list_for_analyses("u1", ["a1", "a3"])
        assert sorted(r.name for r in rows) == ["A", "C"]

    async def test_has_cv_text_hash(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session, session.begin():
            await ResultRepository(session).add_many(
                [to_result_model(make_result(cv_text_hash="h1"), "u1", "a1", None)]
            )
        async with session_factory() as session:
            repo = ResultRepository(session)
            assert await repo.has_cv_text_hash("u1", "h1") is True
            assert await repo.has_cv_text_hash("u2", "h1") is False
            assert await repo.has_cv_text_hash("u1", "h2") is False


@pytest.mark.unit
class TestCVTextStore:
    """Test stored CV excerpts."""

    async def test_save_and_load(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        store = CVTextStore(session_factory, ttl_days=30)
        await store.save("h1", "excerpt", "Jane")
        assert await store.load("h1") == ("excerpt", "Jane")
        assert await store.load("missing") is None

    async def test_save_refreshes_existing(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        store = CVTextStore(session_factory, ttl_days=30)
        await store.save("h1", "first", "Jane")
        await store.save("h1", "second", "Jane Doe")
        assert await store.load("h1") == ("second", "Jane Doe")

    async def test_expired_excerpt_hidden_and_deleted(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session, session.begin():
            await CVTextRepository(session).upsert("h1", "text", "Jane", ttl_days=-1)

        assert await CVTextStore(session_factory, ttl_days=30).load("h1") is None

        async with session_factory() as session, session.begin():
            assert await CVTextRepository(session).delete_expired() == 1
