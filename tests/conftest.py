import logging
import os

import pytest

from shared.clients.db.DBClientSql import DBClientSql
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from server.persona.PersonaTemplates import PEDRO_V1
from tests.doubles import FakeEmbedClient, FakeLLMClient, FakeRAGClient

_CONFIG_PREFIXES = ("APP_", "BOT_", "DB_", "EMBED_", "LLM_", "RAG_")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Every test starts without any service configuration in the environment."""
    for key in list(os.environ):
        if key.startswith(_CONFIG_PREFIXES):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("salesbot.tests")))


@pytest.fixture
def persona():
    return PEDRO_V1


@pytest.fixture
def embed_client(helper_config) -> FakeEmbedClient:
    return FakeEmbedClient(helper_config)


@pytest.fixture
def llm_client(helper_config) -> FakeLLMClient:
    return FakeLLMClient(helper_config)


@pytest.fixture
def rag_client(helper_config) -> FakeRAGClient:
    return FakeRAGClient(helper_config)


@pytest.fixture
async def db_client(helper_config, monkeypatch, tmp_path):
    monkeypatch.setenv("DB_SQL_URL", f"sqlite+aiosqlite:///{tmp_path / 'salesbot.db'}")
    client = DBClientSql(helper_config=helper_config)
    await client.boot()
    await client.do_create_schema()
    yield client
    await client.close()
