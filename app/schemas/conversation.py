"""Booking conversation schemas."""
from datetime import datetime
from pydantic import BaseModel, Field


class ParticipantView(BaseModel):
    user_id: int
    name: str
    participant_role: str


class ConversationView(BaseModel):
    id: int
    booking_id: int
    friendly_name: str | None
    twilio_conversation_sid: str | None
    is_active: bool
    last_message_at: datetime | None
    participants: list[ParticipantView]
    unread_count: int = 0


class MessageCreate(BaseModel):
    body: str = Field(min_length=1, max_length=1600)


class MessageView(BaseModel):
    id: int
    conversation_id: int
    author_user_id: int
    author_name: str
    body: str
    created_at: datetime | None


class MarkReadResult(BaseModel):
    conversation_id: int
    last_read_message_id: int | None
