"""Error taxonomy of the bot-response pipeline.

Only ConversationNotFound and PersistenceFailure ever reach an HTTP caller.
Embedding failures are recovered where the pipeline can continue without a
vector; retrieval and generation failures are absorbed into the persona
fallback reply.
"""


class BotError(Exception):
    """Base class for all pipeline errors."""


class ConversationNotFound(BotError):
    """The conversation does not exist or is not owned by the requesting user."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class EmbeddingFailure(BotError):
    """The embedding backend could not produce a vector."""


class RetrievalFailure(BotError):
    """The knowledge store query failed."""


class GenerationFailure(BotError):
    """The generative model call failed or timed out."""


class EmptyGenerationFailure(GenerationFailure):
    """The generative model answered with no text."""


class PersistenceFailure(BotError):
    """A conversation or message could not be read from or written to the database."""
