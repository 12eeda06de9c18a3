from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.clients.db.DBClientSql import DBClientSql
from shared.clients.db.tables import ConversationRecord, MessageRecord, utcnow
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import Conversation, HistoryTurn, Message, MessageRole
from shared.models.errors import ConversationNotFound, PersistenceFailure
from shared.models.persona import PersonaTemplate


class ConversationService:
    """Persists conversations and their messages and enforces ownership.

    Messages are append-only. The only mutation on a conversation is the
    updated_at bump on every exchange.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        db_client: DBClientSql,
        persona: PersonaTemplate,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._db_client = db_client
        self._persona = persona
        self.history_limit = helper_config.get_int_val("BOT_HISTORY_LIMIT", default=10)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._db_client.get_sessionmaker()() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            self.logging.error("Database operation failed: %s", e)
            raise PersistenceFailure(f"Database operation failed: {e}") from e

    async def _get_owned_record(self, session: AsyncSession, conversation_id: str, owner_id: str) -> ConversationRecord:
        record = await session.get(ConversationRecord, conversation_id)
        if record is None or record.user_id != owner_id:
            raise ConversationNotFound(conversation_id)
        return record

    ##########################################
    ############ CONVERSATIONS ###############
    ##########################################

    async def create_conversation(self, owner_id: str, name: str) -> tuple[Conversation, Message]:
        """Create a conversation and its persona greeting in one transaction.

        Returns:
            tuple[Conversation, Message]: The new conversation and the greeting message.

        Raises:
            PersistenceFailure: If the transaction fails, nothing is stored.
        """
        async with self._transaction() as session:
            conversation = ConversationRecord(user_id=owner_id, name=name)
            session.add(conversation)
            await session.flush()

            greeting = MessageRecord(
                conversation_id=conversation.id,
                role=MessageRole.ASSISTANT.value,
                content=self._persona.greeting,
            )
            session.add(greeting)
            await session.flush()

        self.logging.info("Created conversation %s for user %s.", conversation.id, owner_id)
        return Conversation.model_validate(conversation), Message.model_validate(greeting)

    async def list_conversations(self, owner_id: str) -> list[Conversation]:
        """All conversations of owner_id, most recently active first."""
        async with self._transaction() as session:
            result = await session.scalars(
                select(ConversationRecord)
                .where(ConversationRecord.user_id == owner_id)
                .order_by(ConversationRecord.updated_at.desc())
            )
            return [Conversation.model_validate(record) for record in result.all()]

    async def get_conversation(self, conversation_id: str, owner_id: str) -> Conversation:
        """
        Raises:
            ConversationNotFound: If the conversation does not exist or belongs to another user.
        """
        async with self._transaction() as session:
            record = await self._get_owned_record(session, conversation_id, owner_id)
            return Conversation.model_validate(record)

    async def touch_conversation(self, conversation_id: str) -> None:
        async with self._transaction() as session:
            await session.execute(
                update(ConversationRecord)
                .where(ConversationRecord.id == conversation_id)
                .values(updated_at=utcnow())
            )

    async def delete_conversation(self, conversation_id: str, owner_id: str) -> None:
        """Delete the conversation and all of its messages in one transaction.

        Raises:
            ConversationNotFound: If the conversation does not exist or belongs to another user.
        """
        async with self._transaction() as session:
            await self._get_owned_record(session, conversation_id, owner_id)
            # explicit delete, sqlite does not enforce the FK cascade by default
            await session.execute(delete(MessageRecord).where(MessageRecord.conversation_id == conversation_id))
            await session.execute(delete(ConversationRecord).where(ConversationRecord.id == conversation_id))
        self.logging.info("Deleted conversation %s of user %s.", conversation_id, owner_id)

    ##########################################
    ############### MESSAGES #################
    ##########################################

    async def append_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        embedding: list[float] | None = None,
    ) -> Message:
        async with self._transaction() as session:
            record = MessageRecord(
                conversation_id=conversation_id,
                role=role.value,
                content=content,
                embedding=embedding,
            )
            session.add(record)
            await session.flush()
        return Message.model_validate(record)

    async def get_messages(self, conversation_id: str) -> list[Message]:
        """All messages of a conversation, newest first."""
        async with self._transaction() as session:
            result = await session.scalars(
                select(MessageRecord)
                .where(MessageRecord.conversation_id == conversation_id)
                .order_by(MessageRecord.created_at.desc(), MessageRecord.id.desc())
            )
            return [Message.model_validate(record) for record in result.all()]

    async def get_history(
        self,
        conversation_id: str,
        limit: int | None = None,
        exclude_message_id: int | None = None,
    ) -> list[HistoryTurn]:
        """The most recent messages of a conversation as prompt turns, oldest first.

        Args:
            conversation_id (str): The conversation.
            limit (int | None): Maximum number of turns, defaults to BOT_HISTORY_LIMIT.
            exclude_message_id (int | None): Leave out this message, typically the user
                turn that is being answered.

        Returns:
            list[HistoryTurn]: At most limit turns.
        """
        limit = self.history_limit if limit is None else limit
        stmt = select(MessageRecord.role, MessageRecord.content).where(MessageRecord.conversation_id == conversation_id)
        if exclude_message_id is not None:
            stmt = stmt.where(MessageRecord.id != exclude_message_id)
        stmt = stmt.order_by(MessageRecord.created_at.desc(), MessageRecord.id.desc()).limit(limit)

        async with self._transaction() as session:
            rows = (await session.execute(stmt)).all()
        return [HistoryTurn(role=row.role, content=row.content) for row in reversed(rows)]
