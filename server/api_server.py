"""FastAPI application entry point for the sales bot."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.db.DBClientSql import DBClientSql
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.models.KnowledgeHit import KnowledgeCollection
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from server.core.BotResponseService import BotResponseService
from server.core.ContextRetriever import ContextRetriever
from server.core.ConversationLocks import ConversationLocks
from server.core.ConversationService import ConversationService
from server.core.PersonaPromptBuilder import PersonaPromptBuilder
from server.core.ResponsePacer import ResponsePacer
from server.exception_handlers import register_exception_handlers
from server.models.responses import HealthResponse
from server.persona.PersonaTemplates import load_persona_template
from server.routers.ConversationRouter import router as conversation_router

logging = setup_logging()
helper_config = HelperConfig(logger=logging)
app_version = helper_config.get_string_val("APP_VERSION", default="unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = helper_config

    persona = load_persona_template(helper_config)
    logging.info("Using persona template '%s' (%s).", persona.version, persona.persona_name)

    db_client = DBClientSql(helper_config=helper_config)
    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    clients: list[ClientInterface] = [db_client, rag_client, embed_client, llm_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    await check_connections(db_client, rag_client, embed_client, llm_client)
    await db_client.do_create_schema()
    await check_knowledge_collections(rag_client)

    conversation_service = ConversationService(
        helper_config=helper_config,
        db_client=db_client,
        persona=persona,
    )
    app.state.conversation_service = conversation_service
    app.state.bot_response_service = BotResponseService(
        helper_config=helper_config,
        conversation_service=conversation_service,
        context_retriever=ContextRetriever(helper_config=helper_config, rag_client=rag_client, persona=persona),
        prompt_builder=PersonaPromptBuilder(persona=persona),
        embed_client=embed_client,
        llm_client=llm_client,
        pacer=ResponsePacer(helper_config=helper_config),
        persona=persona,
        locks=ConversationLocks(),
    )
    logging.info("Sales bot API ready.", color="green")

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="salesbot",
    description=(
        "Persona-driven sales conversation engine for the CRM. "
        "User messages are answered by 'Pedro' using retrieval-augmented generation "
        "over the tenant's knowledge documents and car stock."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=helper_config.get_list_val("APP_CORS_ORIGINS", default=["*"]),
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["X-API-Key", "X-User-Id", "Content-Type"],
)

register_exception_handlers(app)
app.include_router(conversation_router)


@app.get("/health")
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=app_version)


async def check_connections(
    db_client: DBClientSql,
    rag_client: RAGClientInterface,
    embed_client: EmbedClientInterface,
    llm_client: LLMClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Embedding failures are non-fatal (user messages are then stored without a
    vector and answered with the fallback line). Database, RAG and LLM failures
    are fatal.

    Raises:
        Exception: If a critical service (DB, RAG or LLM) is not reachable.
    """
    if not await embed_client.do_healthcheck():
        logging.warning(
            "Embed client '%s' is not reachable. Messages will be stored without embeddings.",
            embed_client.get_engine_name(),
        )

    for name, client in (("DB", db_client), ("RAG", rag_client), ("LLM", llm_client)):
        if not await client.do_healthcheck():
            raise Exception(
                f"{name} client '{client.get_engine_name()}' is not reachable. Cannot serve conversations."
            )


async def check_knowledge_collections(rag_client: RAGClientInterface) -> None:
    """Warn about missing Qdrant collections. They are filled by the CRM and never created here."""
    if not isinstance(rag_client, RAGClientQdrant):
        return
    for collection in KnowledgeCollection:
        try:
            exists = await rag_client.do_existence_check(collection)
        except (httpx.HTTPError, ValueError) as e:
            logging.warning("Could not check Qdrant collection for %s: %s", collection.value, e)
            continue
        if not exists:
            logging.warning(
                "Qdrant collection %r for %s does not exist. Searches on it will fail.",
                rag_client.get_collection_name(collection),
                collection.value,
            )


if __name__ == "__main__":
    import uvicorn

    host = helper_config.get_string_val("APP_HOST", default="0.0.0.0")
    port = helper_config.get_int_val("APP_PORT", default=8000)
    logging.info("Starting salesbot API v%s on %s:%d (root dir: %s)", app_version, host, port, os.getenv("ROOT_DIR", "unknown"))
    uvicorn.run(app, host=host, port=port)
