"""
Context & Prompt Tests
Tests: ContextRetriever rendering, PersonaPromptBuilder sections and turn assembly.
"""

import asyncio

import pytest

from server.core.ContextRetriever import ContextRetriever, RetrievedContext
from server.core.PersonaPromptBuilder import PersonaPromptBuilder
from shared.clients.rag.models.KnowledgeHit import KnowledgeCollection
from shared.models.conversation import HistoryTurn, MessageRole
from shared.models.errors import RetrievalFailure

OWNER = "user-1"


@pytest.fixture
def retriever(helper_config, rag_client, persona) -> ContextRetriever:
    return ContextRetriever(helper_config=helper_config, rag_client=rag_client, persona=persona)


@pytest.fixture
def builder(persona) -> PersonaPromptBuilder:
    return PersonaPromptBuilder(persona=persona)


class TestContextRetriever:

    async def test_renders_documents_and_inventory(self, retriever, rag_client):
        rag_client.rows[KnowledgeCollection.DOCUMENTS] = [
            {"id": "d1", "user_id": OWNER, "score": 0.8, "content": "Financiación a 60 meses sin entrada."},
        ]
        rag_client.rows[KnowledgeCollection.INVENTORY] = [
            {"id": "c1", "user_id": OWNER, "score": 0.9, "name": "Kia Sportage", "type": "SUV",
             "price": 24500.0, "description": "Híbrido, 2022", "image_url": "https://img/kia.jpg"},
        ]

        context = await retriever.retrieve_context(OWNER, [0.1, 0.2])

        assert context.document_blocks == ["Financiación a 60 meses sin entrada."]
        assert context.inventory_blocks == [
            "NOMBRE: Kia Sportage\nTIPO: SUV\nPRECIO: 24500\nDESCRIPCIÓN: Híbrido, 2022\nIMÁGENES: https://img/kia.jpg"
        ]

    async def test_missing_fields_use_placeholders(self, retriever, rag_client):
        rag_client.rows[KnowledgeCollection.INVENTORY] = [
            {"id": "c2", "user_id": OWNER, "score": 0.5, "name": "Fiat 500", "type": "Urbano", "price": ""},
        ]
        context = await retriever.retrieve_context(OWNER, [0.1])
        assert "PRECIO: Precio no disponible" in context.inventory_blocks[0]
        assert "DESCRIPCIÓN: Sin descripción disponible" in context.inventory_blocks[0]
        assert "IMÁGENES: Sin imágenes disponibles" in context.inventory_blocks[0]

    async def test_empty_results(self, retriever):
        context = await retriever.retrieve_context(OWNER, [0.1])
        assert context == RetrievedContext()
        assert context.is_empty()

    async def test_both_collections_searched_for_owner(self, retriever, rag_client):
        await retriever.retrieve_context(OWNER, [0.1])
        assert sorted((c.value, o) for c, o, _ in rag_client.searches) == [("documents", OWNER), ("inventory", OWNER)]

    async def test_searches_run_concurrently(self, helper_config, persona):
        from tests.doubles import FakeRAGClient

        started = asyncio.Event()
        release = asyncio.Event()
        in_flight = []

        class SlowRAGClient(FakeRAGClient):
            async def _do_similarity_search(self, collection, owner_id, query_vector, limit):
                in_flight.append(collection)
                if len(in_flight) == 2:
                    started.set()
                await release.wait()
                return []

        retriever = ContextRetriever(helper_config=helper_config, rag_client=SlowRAGClient(helper_config), persona=persona)
        task = asyncio.create_task(retriever.retrieve_context(OWNER, [0.1]))
        await asyncio.wait_for(started.wait(), timeout=1)
        release.set()
        await task
        assert len(in_flight) == 2

    async def test_retrieval_failure_propagates(self, retriever, rag_client):
        rag_client.error = RetrievalFailure("db down")
        with pytest.raises(RetrievalFailure):
            await retriever.retrieve_context(OWNER, [0.1])


class TestPersonaPromptBuilder:

    def test_both_sections(self, builder):
        prompt = builder.build_system_prompt(RetrievedContext(["Doc A", "Doc B"], ["NOMBRE: X"]))
        assert "### Información relevante:\nDoc A\n\nDoc B" in prompt
        assert "### Vehículos disponibles:\nNOMBRE: X" in prompt
        assert prompt.index("### Información relevante:") < prompt.index("### Vehículos disponibles:")

    def test_empty_sections_are_omitted(self, builder):
        prompt = builder.build_system_prompt(RetrievedContext(document_blocks=[], inventory_blocks=["NOMBRE: X"]))
        assert "### Información relevante:" not in prompt
        assert "### Vehículos disponibles:" in prompt

        prompt = builder.build_system_prompt(RetrievedContext())
        assert "###" not in prompt

    def test_native_system_role(self, builder):
        history = [
            HistoryTurn(role=MessageRole.ASSISTANT, content="¡Hola! Soy Pedro"),
            HistoryTurn(role=MessageRole.USER, content="Busco un SUV"),
        ]
        messages = builder.build_messages("SYSTEM", history, "¿Tenéis híbridos?")
        assert messages == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "assistant", "content": "¡Hola! Soy Pedro"},
            {"role": "user", "content": "Busco un SUV"},
            {"role": "user", "content": "¿Tenéis híbridos?"},
        ]

    def test_synthetic_system_turns(self, builder, persona):
        messages = builder.build_messages("SYSTEM", [], "Hola", native_system_role=False)
        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert messages[0]["content"].startswith(persona.system_turn_preamble)
        assert messages[0]["content"].endswith("SYSTEM")
        assert messages[1]["content"] == persona.system_turn_ack
        assert messages[2] == {"role": "user", "content": "Hola"}
