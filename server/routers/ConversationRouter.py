import asyncio
from functools import partial
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_current_user_id, verify_api_key
from server.models.requests import CreateConversationRequest, SendMessageRequest
from server.models.responses import (
    ConversationDetailResponse,
    ConversationListResponse,
    CreateConversationResponse,
    DeleteConversationResponse,
    SendMessageResponse,
)
from shared.models.errors import ConversationNotFound

router = APIRouter(prefix="/conversations", tags=["conversations"], dependencies=[Depends(verify_api_key)])


def _log_exchange_failure(logger, conversation_id: str, task: asyncio.Task) -> None:
    # retrieves the result even when the caller stopped waiting for it
    if task.cancelled():
        return
    error = task.exception()
    if error is None or isinstance(error, ConversationNotFound):
        return
    logger.error("Message exchange for conversation %s failed: %s", conversation_id, error)


@router.post("", status_code=201)
async def create_conversation(
    request: Request,
    body: CreateConversationRequest,
    user_id: str = Depends(get_current_user_id),
) -> CreateConversationResponse:
    """Start a new conversation. It opens with the persona's greeting.

    Args:
        request (Request): FastAPI request (provides app.state.conversation_service).
        body (CreateConversationRequest): JSON body with the conversation name.
        user_id (str): The authenticated user.

    Returns:
        CreateConversationResponse: The conversation and its greeting message.
    """
    conversation, greeting = await request.app.state.conversation_service.create_conversation(user_id, body.name)
    return CreateConversationResponse(conversation=conversation, initial_message=greeting)


@router.get("")
async def list_conversations(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> ConversationListResponse:
    conversations = await request.app.state.conversation_service.list_conversations(user_id)
    return ConversationListResponse(conversations=conversations)


@router.get("/{conversation_id}")
async def get_conversation(
    request: Request,
    conversation_id: UUID,
    user_id: str = Depends(get_current_user_id),
) -> ConversationDetailResponse:
    """Return a conversation with its messages, newest first."""
    service = request.app.state.conversation_service
    conversation = await service.get_conversation(str(conversation_id), user_id)
    messages = await service.get_messages(conversation.id)
    return ConversationDetailResponse(conversation=conversation, messages=messages)


@router.post("/{conversation_id}/messages")
async def send_message(
    request: Request,
    conversation_id: UUID,
    body: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
) -> SendMessageResponse:
    """Send a user message and wait for the bot's reply.

    The exchange runs in its own task, a client disconnect does not cancel it
    halfway through storing the messages.

    Args:
        request (Request): FastAPI request (provides app.state.bot_response_service).
        conversation_id (UUID): Target conversation.
        body (SendMessageRequest): JSON body with the message content.
        user_id (str): The authenticated user.

    Returns:
        SendMessageResponse: The stored assistant message.
    """
    bot_response_service = request.app.state.bot_response_service
    exchange = asyncio.create_task(
        bot_response_service.send_message(user_id, str(conversation_id), body.content)
    )
    exchange.add_done_callback(partial(_log_exchange_failure, request.app.state.logging, str(conversation_id)))
    assistant_message = await asyncio.shield(exchange)
    return SendMessageResponse(assistant_message=assistant_message)


@router.delete("/{conversation_id}")
async def delete_conversation(
    request: Request,
    conversation_id: UUID,
    user_id: str = Depends(get_current_user_id),
) -> DeleteConversationResponse:
    await request.app.state.conversation_service.delete_conversation(str(conversation_id), user_id)
    return DeleteConversationResponse(message="Conversation deleted")
