from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from humanizer.config import get_settings
from humanizer.db import Base, get_engine
from humanizer.main import app

_PROVIDER_ENV_VARS = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "DEEPSEEK_API_KEY",
    "PERPLEXITY_API_KEY",
    "GPTZERO_API_KEY",
    "GOOGLE_API_KEY",
    "GOOGLE_SEARCH_ENGINE_ID",
)


@pytest.fixture(autouse=True)
def reset_api_caches(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CHUNK_DELAY_SECONDS", "0")
    get_settings.cache_clear()
    get_engine.cache_clear()
    yield
    get_settings.cache_clear()
    get_engine.cache_clear()
    app.dependency_overrides.clear()


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[TestClient]:
    sqlite_db_path = tmp_path / "humanizer-tests.db"
    monkeypatch.setenv("HUMANIZER_DATABASE_URL", f"sqlite+pysqlite:///{sqlite_db_path}")
    monkeypatch.setenv("HUMANIZER_DB_ECHO", "false")

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    engine.dispose()
