from pydantic import BaseModel, Field


class CreateConversationRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)
