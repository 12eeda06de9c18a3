from pydantic import BaseModel

from shared.models.conversation import Conversation, Message


class CreateConversationResponse(BaseModel):
    success: bool = True
    conversation: Conversation
    initial_message: Message


class ConversationListResponse(BaseModel):
    success: bool = True
    conversations: list[Conversation]


class ConversationDetailResponse(BaseModel):
    success: bool = True
    conversation: Conversation
    messages: list[Message]


class SendMessageResponse(BaseModel):
    success: bool = True
    assistant_message: Message


class DeleteConversationResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    status: str
    version: str
