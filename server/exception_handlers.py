"""Maps pipeline errors that reach the HTTP layer to status codes."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.models.errors import ConversationNotFound, PersistenceFailure


async def conversation_not_found_handler(request: Request, exc: ConversationNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Conversation not found"})


async def persistence_failure_handler(request: Request, exc: PersistenceFailure) -> JSONResponse:
    request.app.state.logging.error("Request %s %s failed to persist: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Failed to persist conversation state"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConversationNotFound, conversation_not_found_handler)
    app.add_exception_handler(PersistenceFailure, persistence_failure_handler)
