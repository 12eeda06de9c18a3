"""
Engine Selection Tests
Tests: <TYPE>_ENGINE resolves to the matching client class.
"""

import pytest

from shared.clients.db.DBClientSql import DBClientSql
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.google.LLMClientGoogle import LLMClientGoogle
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.pgvector.RAGClientPgvector import RAGClientPgvector
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant


class TestClientManagers:

    def test_embed_engine(self, helper_config, monkeypatch):
        monkeypatch.setenv("EMBED_ENGINE", "ollama")
        monkeypatch.setenv("EMBED_OLLAMA_BASE_URL", "http://ollama.test")
        assert isinstance(EmbedClientManager(helper_config).get_client(), EmbedClientOllama)

    def test_llm_engine_is_case_insensitive(self, helper_config, monkeypatch):
        monkeypatch.setenv("LLM_ENGINE", " Google ")
        monkeypatch.setenv("LLM_GOOGLE_API_KEY", "g-key")
        assert isinstance(LLMClientManager(helper_config).get_client(), LLMClientGoogle)

    @pytest.mark.parametrize("engine,env,expected", [
        ("qdrant", {"RAG_QDRANT_BASE_URL": "http://qdrant.test"}, RAGClientQdrant),
        ("pgvector", {"RAG_PGVECTOR_URL": "postgresql+asyncpg://crm@db.test/crm"}, RAGClientPgvector),
    ])
    def test_rag_engines(self, helper_config, monkeypatch, engine, env, expected):
        monkeypatch.setenv("RAG_ENGINE", engine)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        assert isinstance(RAGClientManager(helper_config).get_client(), expected)

    def test_unsupported_engine(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_ENGINE", "elastic")
        with pytest.raises(ValueError, match="Unsupported RAG engine"):
            RAGClientManager(helper_config)

    def test_missing_engine(self, helper_config):
        with pytest.raises(ValueError, match="LLM_ENGINE"):
            LLMClientManager(helper_config)

    def test_missing_engine_setting(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_ENGINE", "qdrant")
        with pytest.raises(ValueError, match="RAG_QDRANT_BASE_URL"):
            RAGClientManager(helper_config)


class TestDBClientSql:

    async def test_healthcheck_and_schema(self, db_client):
        assert await db_client.do_healthcheck() is True
        assert {"conversations", "messages"} <= set(
            await _table_names(db_client)
        )

    def test_unbooted_engine_raises(self, helper_config, monkeypatch):
        monkeypatch.setenv("DB_SQL_URL", "sqlite+aiosqlite://")
        with pytest.raises(RuntimeError, match="boot"):
            DBClientSql(helper_config).get_sessionmaker()


async def _table_names(db_client) -> list[str]:
    from sqlalchemy import inspect

    async with db_client.get_engine().connect() as conn:
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
