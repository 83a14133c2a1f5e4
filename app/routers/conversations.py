"""Booking conversations between customer, provider and business owner."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.conversation import ConversationView, MarkReadResult, MessageCreate, MessageView
from app.services import bookings as booking_service
from app.services import conversations as conv
from app.services.conversations import ConversationError

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationView])
def my_conversations(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [conv.to_conversation_view(db, c, current_user) for c in conv.list_for_user(db, current_user)]


@router.post("/bookings/{booking_id}", response_model=ConversationView)
def open_booking_conversation(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get or create the conversation for a booking the caller can see."""
    booking = booking_service.get_visible_booking(db, current_user, booking_id)
    try:
        conversation = conv.get_or_create_for_booking(db, booking)
    except ConversationError as e:
        db.rollback()
        raise HTTPException(status_code=502, detail=str(e))
    db.commit()
    db.refresh(conversation)
    return conv.to_conversation_view(db, conversation, current_user)


@router.get("/{conversation_id}/messages", response_model=list[MessageView])
def conversation_messages(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    participant = conv.get_participant(db, conversation_id, current_user)
    return [conv.to_message_view(m) for m in conv.list_messages(db, participant.conversation_id)]


@router.post("/{conversation_id}/messages", response_model=MessageView, status_code=201)
def send_message(
    conversation_id: int,
    data: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    participant = conv.get_participant(db, conversation_id, current_user)
    try:
        message = conv.post_message(db, participant, data.body)
    except ConversationError as e:
        db.rollback()
        raise HTTPException(status_code=502, detail=str(e))
    db.commit()
    db.refresh(message)
    return conv.to_message_view(message)


@router.post("/{conversation_id}/read", response_model=MarkReadResult)
def mark_read(
    conversation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    participant = conv.mark_read(db, conv.get_participant(db, conversation_id, current_user))
    db.commit()
    return MarkReadResult(conversation_id=conversation_id, last_read_message_id=participant.last_read_message_id)
