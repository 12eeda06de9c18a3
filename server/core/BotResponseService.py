from server.core.ContextRetriever import ContextRetriever
from server.core.ConversationLocks import ConversationLocks
from server.core.ConversationService import ConversationService
from server.core.PersonaPromptBuilder import PersonaPromptBuilder
from server.core.ResponsePacer import ResponsePacer
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import HistoryTurn, Message, MessageRole
from shared.models.errors import EmbeddingFailure, EmptyGenerationFailure, GenerationFailure, RetrievalFailure
from shared.models.persona import PersonaTemplate


class BotResponseService:
    """Answers a user message in the persona's voice: embed -> store -> retrieve -> generate -> pace -> store.

    Retrieval and generation failures never reach the caller, the persona's
    fallback line is stored and returned instead. Database failures do propagate.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        conversation_service: ConversationService,
        context_retriever: ContextRetriever,
        prompt_builder: PersonaPromptBuilder,
        embed_client: EmbedClientInterface,
        llm_client: LLMClientInterface,
        pacer: ResponsePacer,
        persona: PersonaTemplate,
        locks: ConversationLocks | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._conversation_service = conversation_service
        self._context_retriever = context_retriever
        self._prompt_builder = prompt_builder
        self._embed_client = embed_client
        self._llm_client = llm_client
        self._pacer = pacer
        self._persona = persona
        self._locks = locks or ConversationLocks()
        self.serialize_conversations = helper_config.get_bool_val("BOT_SERIALIZE_CONVERSATIONS", default=True)

    ##########################################
    ############### CORE #####################
    ##########################################

    async def send_message(self, owner_id: str, conversation_id: str, content: str) -> Message:
        """Store a user message and the bot's reply to it.

        With BOT_SERIALIZE_CONVERSATIONS the whole exchange holds a per-conversation
        lock, so a second message waits for the first reply and sees it in its history.

        Args:
            owner_id (str): The authenticated user.
            conversation_id (str): Target conversation, must be owned by owner_id.
            content (str): The user's message.

        Returns:
            Message: The stored assistant message.

        Raises:
            ConversationNotFound: If the conversation does not exist or is not owned by owner_id.
            PersistenceFailure: If a message cannot be stored.
        """
        if not self.serialize_conversations:
            return await self._do_exchange(owner_id, conversation_id, content)
        async with self._locks.get_lock(conversation_id):
            return await self._do_exchange(owner_id, conversation_id, content)

    async def _do_exchange(self, owner_id: str, conversation_id: str, content: str) -> Message:
        service = self._conversation_service
        await service.get_conversation(conversation_id, owner_id)

        # best effort, the message is stored without a vector if this fails
        query_vector: list[float] | None = None
        try:
            query_vector = await self._embed_client.embed_text(content)
        except EmbeddingFailure as e:
            self.logging.warning("Could not embed message for conversation %s: %s", conversation_id, e)

        user_message = await service.append_message(conversation_id, MessageRole.USER, content, embedding=query_vector)
        await service.touch_conversation(conversation_id)

        history = await service.get_history(conversation_id, exclude_message_id=user_message.id)
        reply = await self.generate_bot_response(content, history, owner_id, query_vector=query_vector)

        await self._pacer.pace(reply)
        assistant_message = await service.append_message(conversation_id, MessageRole.ASSISTANT, reply)
        self.logging.info(
            "Answered message %d in conversation %s (%d chars).", user_message.id, conversation_id, len(reply)
        )
        return assistant_message

    async def generate_bot_response(
        self,
        query: str,
        history: list[HistoryTurn],
        owner_id: str,
        query_vector: list[float] | None = None,
    ) -> str:
        """Produce the persona's reply to query without storing anything.

        Args:
            query (str): The user message.
            history (list[HistoryTurn]): Prior turns, oldest first.
            owner_id (str): Scopes the knowledge search.
            query_vector (list[float] | None): Precomputed embedding of query. Computed here when missing.

        Returns:
            str: The generated reply, or the persona's fallback or empty-reply line.
        """
        try:
            if query_vector is None:
                query_vector = await self._embed_client.embed_text(query)
            context = await self._context_retriever.retrieve_context(owner_id, query_vector)
            system_prompt = self._prompt_builder.build_system_prompt(context)
            messages = self._prompt_builder.build_messages(
                system_prompt,
                history,
                query,
                native_system_role=self._llm_client.supports_system_role(),
            )
            return await self._llm_client.do_chat(messages)
        except EmptyGenerationFailure as e:
            self.logging.warning("Chat model gave no reply, using the empty-reply line: %s", e)
            return self._persona.empty_reply
        except (EmbeddingFailure, RetrievalFailure, GenerationFailure) as e:
            self.logging.error("Bot response failed, using the fallback line: %s", e)
            return self._persona.fallback_reply
        except Exception as e:
            self.logging.exception("Unexpected error while answering, using the fallback line: %s", e)
            return self._persona.fallback_reply
