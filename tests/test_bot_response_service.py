"""
Bot Response Pipeline Tests
Tests: end-to-end exchange, fallback boundary, embedding recovery, per-conversation serialisation.
"""

import asyncio

import pytest

from server.core.BotResponseService import BotResponseService
from server.core.ContextRetriever import ContextRetriever
from server.core.ConversationLocks import ConversationLocks
from server.core.ConversationService import ConversationService
from server.core.PersonaPromptBuilder import PersonaPromptBuilder
from server.core.ResponsePacer import ResponsePacer
from shared.clients.rag.models.KnowledgeHit import KnowledgeCollection
from shared.models.conversation import MessageRole
from shared.models.errors import (
    ConversationNotFound,
    EmptyGenerationFailure,
    GenerationFailure,
    PersistenceFailure,
    RetrievalFailure,
)
from tests.doubles import FakeEmbedClient, FakeLLMClient, RecordingSleep

OWNER = "user-1"


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def conversation_service(helper_config, db_client, persona) -> ConversationService:
    return ConversationService(helper_config=helper_config, db_client=db_client, persona=persona)


def _build_bot(helper_config, conversation_service, rag_client, embed_client, llm_client, persona, sleep) -> BotResponseService:
    return BotResponseService(
        helper_config=helper_config,
        conversation_service=conversation_service,
        context_retriever=ContextRetriever(helper_config=helper_config, rag_client=rag_client, persona=persona),
        prompt_builder=PersonaPromptBuilder(persona=persona),
        embed_client=embed_client,
        llm_client=llm_client,
        pacer=ResponsePacer(helper_config=helper_config, sleep=sleep),
        persona=persona,
        locks=ConversationLocks(),
    )


@pytest.fixture
def bot(helper_config, conversation_service, rag_client, embed_client, llm_client, persona, sleep) -> BotResponseService:
    return _build_bot(helper_config, conversation_service, rag_client, embed_client, llm_client, persona, sleep)


@pytest.fixture
async def conversation(conversation_service):
    conversation, _ = await conversation_service.create_conversation(OWNER, "Lead María")
    return conversation


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


# ═══════════════════════════════════════════════════════════════
# 1. HAPPY PATH
# ═══════════════════════════════════════════════════════════════

class TestSendMessage:

    async def test_full_exchange(self, bot, conversation, conversation_service, rag_client, embed_client, llm_client, persona, sleep):
        rag_client.rows[KnowledgeCollection.INVENTORY] = [
            {"id": "c1", "user_id": OWNER, "score": 0.9, "name": "Toyota RAV4", "type": "SUV", "price": "29900"},
        ]

        reply = await bot.send_message(OWNER, conversation.id, "Busco un SUV híbrido")

        assert reply.role == MessageRole.ASSISTANT
        assert reply.content == llm_client.reply
        # one embedding call, reused for storage and retrieval
        assert embed_client.calls == [["Busco un SUV híbrido"]]

        sent = llm_client.calls[0]
        assert sent[0]["role"] == "system"
        assert "NOMBRE: Toyota RAV4" in sent[0]["content"]
        assert "### Información relevante:" not in sent[0]["content"]
        # history holds the greeting only, the new turn comes last exactly once
        assert sent[1:] == [
            {"role": "assistant", "content": persona.greeting},
            {"role": "user", "content": "Busco un SUV híbrido"},
        ]

        messages = await conversation_service.get_messages(conversation.id)
        assert [m.role for m in messages] == [MessageRole.ASSISTANT, MessageRole.USER, MessageRole.ASSISTANT]
        assert messages[1].embedding == embed_client.vector
        assert sleep.delays == [1.0]

    async def test_two_sends_are_stored_in_order(self, bot, conversation, conversation_service):
        await bot.send_message(OWNER, conversation.id, "Hola")
        await bot.send_message(OWNER, conversation.id, "¿Tenéis algo barato?")

        messages = list(reversed(await conversation_service.get_messages(conversation.id)))[1:]
        assert [(m.role, m.content) for m in messages][::2] == [
            (MessageRole.USER, "Hola"),
            (MessageRole.USER, "¿Tenéis algo barato?"),
        ]
        assert len(messages) == 4
        keys = [(m.created_at, m.id) for m in messages]
        assert keys == sorted(keys)
        assert len(set(keys)) == 4

    async def test_exchange_bumps_conversation(self, bot, conversation, conversation_service):
        before = await conversation_service.get_conversation(conversation.id, OWNER)
        await bot.send_message(OWNER, conversation.id, "Hola")
        after = await conversation_service.get_conversation(conversation.id, OWNER)
        assert after.updated_at > before.updated_at

    async def test_second_turn_sees_first_exchange(self, bot, conversation, llm_client):
        await bot.send_message(OWNER, conversation.id, "Hola")
        await bot.send_message(OWNER, conversation.id, "Busco un Golf")
        contents = [m["content"] for m in llm_client.calls[1][1:]]
        assert contents[-3:] == ["Hola", llm_client.reply, "Busco un Golf"]

    async def test_synthetic_system_turns(self, helper_config, conversation_service, rag_client, embed_client, persona, sleep, conversation, monkeypatch):
        monkeypatch.setenv("LLM_FAKE_NATIVE_SYSTEM_ROLE", "false")
        llm_client = FakeLLMClient(helper_config)
        bot = _build_bot(helper_config, conversation_service, rag_client, embed_client, llm_client, persona, sleep)

        await bot.send_message(OWNER, conversation.id, "Hola")

        sent = llm_client.calls[0]
        assert [m["role"] for m in sent[:2]] == ["user", "assistant"]
        assert sent[0]["content"].startswith(persona.system_turn_preamble)
        assert "Eres Pedro" in sent[0]["content"]
        assert not any(m["role"] == "system" for m in sent)

    async def test_unknown_conversation(self, bot, conversation, conversation_service, embed_client, llm_client):
        with pytest.raises(ConversationNotFound):
            await bot.send_message("user-2", conversation.id, "Hola")
        assert embed_client.calls == []
        assert llm_client.calls == []
        assert len(await conversation_service.get_messages(conversation.id)) == 1


# ═══════════════════════════════════════════════════════════════
# 2. FAILURE BOUNDARY
# ═══════════════════════════════════════════════════════════════

class TestFallback:

    async def test_generation_failure_stores_fallback(self, bot, conversation, conversation_service, llm_client, persona):
        llm_client.error = GenerationFailure("timeout")
        reply = await bot.send_message(OWNER, conversation.id, "Hola")
        assert reply.content == persona.fallback_reply
        stored = await conversation_service.get_messages(conversation.id)
        assert stored[0].content == persona.fallback_reply

    async def test_retrieval_failure_stores_fallback(self, bot, conversation, rag_client, llm_client, persona):
        rag_client.error = RetrievalFailure("pgvector down")
        reply = await bot.send_message(OWNER, conversation.id, "Hola")
        assert reply.content == persona.fallback_reply
        assert llm_client.calls == []

    async def test_unexpected_chat_error_stores_fallback(self, bot, conversation, conversation_service, llm_client, persona):
        llm_client.error = RuntimeError("sdk blew up")
        reply = await bot.send_message(OWNER, conversation.id, "Hola")

        assert reply.content == persona.fallback_reply
        messages = await conversation_service.get_messages(conversation.id)
        assert [(m.role, m.content) for m in messages[:2]] == [
            (MessageRole.ASSISTANT, persona.fallback_reply),
            (MessageRole.USER, "Hola"),
        ]

    async def test_unexpected_retrieval_error_stores_fallback(self, bot, conversation, conversation_service, rag_client, llm_client, persona):
        rag_client.error = OSError("connection reset by peer")
        reply = await bot.send_message(OWNER, conversation.id, "Hola")

        assert reply.content == persona.fallback_reply
        assert llm_client.calls == []
        stored = await conversation_service.get_messages(conversation.id)
        assert stored[0].content == persona.fallback_reply

    @pytest.mark.parametrize("error", [AttributeError("'str' object has no attribute 'get'"), KeyError("parts"), TypeError("bad")])
    async def test_generate_bot_response_absorbs_any_error(self, bot, llm_client, persona, error):
        llm_client.error = error
        assert await bot.generate_bot_response("Hola", [], OWNER) == persona.fallback_reply

    async def test_empty_generation_stores_empty_reply_line(self, bot, conversation, llm_client, persona):
        llm_client.error = EmptyGenerationFailure("no text")
        reply = await bot.send_message(OWNER, conversation.id, "Hola")
        assert reply.content == persona.empty_reply
        assert reply.content.strip()

    async def test_embedding_failure_is_not_fatal_for_the_user_turn(self, bot, conversation, conversation_service, embed_client, persona):
        embed_client.fail = True
        reply = await bot.send_message(OWNER, conversation.id, "Hola")

        messages = await conversation_service.get_messages(conversation.id)
        assert messages[1].role == MessageRole.USER
        assert messages[1].embedding is None
        # retried once inside the boundary, then the fallback line
        assert len(embed_client.calls) == 2
        assert reply.content == persona.fallback_reply

    async def test_embedding_recovers_for_retrieval(self, helper_config, conversation_service, rag_client, llm_client, persona, sleep, conversation):
        class FlakyEmbedClient(FakeEmbedClient):
            async def do_embed(self, texts):
                self.fail = not self.calls
                return await super().do_embed(texts)

        embed_client = FlakyEmbedClient(helper_config)
        bot = _build_bot(helper_config, conversation_service, rag_client, embed_client, llm_client, persona, sleep)

        reply = await bot.send_message(OWNER, conversation.id, "Hola")

        assert reply.content == llm_client.reply
        assert len(embed_client.calls) == 2
        assert rag_client.searches

    async def test_persistence_failure_propagates(self, bot, conversation, conversation_service, monkeypatch):
        original = conversation_service.append_message

        async def failing_append(conversation_id, role, content, embedding=None):
            if role == MessageRole.ASSISTANT:
                raise PersistenceFailure("disk full")
            return await original(conversation_id, role, content, embedding=embedding)

        monkeypatch.setattr(conversation_service, "append_message", failing_append)
        with pytest.raises(PersistenceFailure):
            await bot.send_message(OWNER, conversation.id, "Hola")

    async def test_generate_bot_response_without_persistence(self, bot, rag_client, llm_client, embed_client):
        reply = await bot.generate_bot_response("¿Qué coches tenéis?", [], OWNER)
        assert reply == llm_client.reply
        assert embed_client.calls == [["¿Qué coches tenéis?"]]
        assert {owner for _, owner, _ in rag_client.searches} == {OWNER}

    async def test_generate_bot_response_never_raises(self, bot, embed_client, persona):
        embed_client.fail = True
        assert await bot.generate_bot_response("Hola", [], OWNER) == persona.fallback_reply


# ═══════════════════════════════════════════════════════════════
# 3. CONCURRENCY
# ═══════════════════════════════════════════════════════════════

class TestSerialisation:

    async def test_messages_to_one_conversation_are_serialised(self, bot, conversation, llm_client):
        llm_client.gate = asyncio.Event()

        first = asyncio.create_task(bot.send_message(OWNER, conversation.id, "primero"))
        await _wait_for(lambda: len(llm_client.calls) == 1)
        second = asyncio.create_task(bot.send_message(OWNER, conversation.id, "segundo"))
        await asyncio.sleep(0.05)
        assert len(llm_client.calls) == 1

        llm_client.gate.set()
        await asyncio.gather(first, second)

        second_prompt = [m["content"] for m in llm_client.calls[1]]
        assert second_prompt[-3:] == ["primero", llm_client.reply, "segundo"]

    async def test_serialisation_can_be_disabled(self, helper_config, conversation_service, rag_client, embed_client, llm_client, persona, sleep, conversation, monkeypatch):
        monkeypatch.setenv("BOT_SERIALIZE_CONVERSATIONS", "false")
        bot = _build_bot(helper_config, conversation_service, rag_client, embed_client, llm_client, persona, sleep)
        llm_client.gate = asyncio.Event()

        tasks = [asyncio.create_task(bot.send_message(OWNER, conversation.id, text)) for text in ("a", "b")]
        await _wait_for(lambda: len(llm_client.calls) == 2)
        llm_client.gate.set()
        await asyncio.gather(*tasks)

    async def test_different_conversations_run_in_parallel(self, bot, conversation_service, llm_client):
        first, _ = await conversation_service.create_conversation(OWNER, "uno")
        second, _ = await conversation_service.create_conversation(OWNER, "dos")
        llm_client.gate = asyncio.Event()

        tasks = [
            asyncio.create_task(bot.send_message(OWNER, first.id, "hola")),
            asyncio.create_task(bot.send_message(OWNER, second.id, "hola")),
        ]
        await _wait_for(lambda: len(llm_client.calls) == 2)
        llm_client.gate.set()
        await asyncio.gather(*tasks)


class TestConversationLocks:

    def test_same_id_same_lock(self):
        locks = ConversationLocks()
        lock = locks.get_lock("a")
        assert locks.get_lock("a") is lock
        assert locks.get_lock("b") is not lock

    def test_unused_locks_are_released(self):
        locks = ConversationLocks()
        locks.get_lock("a")
        assert len(locks) == 0
