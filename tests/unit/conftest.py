"""Shared pytest fixtures for unit tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cv_screener_agents.observability import disable_tracing
from cv_screener_core.state import AnalysisState
from cv_screener_infra.db.session import create_session_factory, init_db
from tests.mocks.fakes import FakeCache
from tests.mocks.mock_factories import make_state
from tests.mocks.mock_settings import make_settings


@pytest.fixture(autouse=True)
def _no_tracing() -> None:
    """Keep the module-level tracer off between tests."""
    disable_tracing()


@pytest.fixture
def mock_settings(tmp_path: Path) -> MagicMock:
    """Return a MagicMock Settings writing reports under tmp_path."""
    return make_settings(output_dir=tmp_path / "output")


@pytest.fixture
def analysis_state() -> AnalysisState:
    """Return a fresh AnalysisState with one uploaded CV."""
    return make_state()


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def patched_llm() -> Generator[None, None, None]:
    """Replace the Anthropic client and instructor so agents build offline."""
    with (
        patch("cv_screener_agents.agents.base.AsyncAnthropic"),
        patch("cv_screener_agents.agents.base.instructor"),
    ):
        yield


@pytest.fixture
async def session_factory(
    tmp_path: Path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory on a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()
