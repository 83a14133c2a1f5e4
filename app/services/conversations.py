"""Booking conversations. Mirrored to Twilio Conversations when Twilio is configured; local rows otherwise."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.booking import Booking
from app.models.business import BusinessProfile
from app.models.conversation import Conversation, ConversationParticipant, Message
from app.models.user import User
from app.schemas.conversation import ConversationView, MessageView, ParticipantView

log = logging.getLogger("uvicorn.error")


class ConversationError(Exception):
    """Twilio Conversations call failed."""


def twilio_conversations_enabled() -> bool:
    s = get_settings()
    return bool(s.twilio_account_sid and s.twilio_auth_token)


def _conversations_api():
    """Conversations resource, scoped to the configured Conversations service when there is one."""
    from twilio.rest import Client

    settings = get_settings()
    client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
    if settings.twilio_conversations_service_sid:
        return client.conversations.v1.services(settings.twilio_conversations_service_sid).conversations
    return client.conversations.v1.conversations


def _twilio_call(action: str, fn):
    from twilio.base.exceptions import TwilioRestException

    try:
        return fn()
    except TwilioRestException as e:
        log.error("[Conversations] Twilio error during %s: status=%s code=%s msg=%s", action, e.status, e.code, e.msg)
        raise ConversationError(f"Twilio {action} failed: {e.msg}") from e
    except Exception as e:
        log.error("[Conversations] Exception during %s: error=%s: %s", action, type(e).__name__, e)
        raise ConversationError(f"Twilio {action} failed: {e}") from e


def _delete_remote(sid: str) -> None:
    try:
        _twilio_call("conversation delete", lambda: _conversations_api()(sid).delete())
    except ConversationError:
        log.warning("[Conversations] Remote conversation %s left behind after failed setup", sid)
        return
    log.info("[Conversations] Deleted remote conversation %s after failed setup", sid)


def booking_participants(db: Session, booking: Booking) -> list[tuple[User, str]]:
    """Customer, assigned provider and business owner, each at most once."""
    people: list[tuple[User, str]] = []
    seen: set[int] = set()

    def add(user: User | None, role: str) -> None:
        if user is not None and user.id not in seen:
            seen.add(user.id)
            people.append((user, role))

    add(booking.customer, "customer")
    if booking.provider is not None:
        add(booking.provider.user, "provider")
    business = booking.business or db.query(BusinessProfile).filter(BusinessProfile.id == booking.business_id).first()
    if business is not None:
        add(business.owner, "owner")
    return people


def sync_participants(db: Session, conversation: Conversation, booking: Booking) -> int:
    """Add booking people missing from the conversation (e.g. a newly assigned provider). Returns how many joined."""
    present = {p.user_id for p in conversation.participants}
    added = 0
    for user, role in booking_participants(db, booking):
        if user.id in present:
            continue
        participant = ConversationParticipant(conversation_id=conversation.id, user_id=user.id, participant_role=role)
        if conversation.twilio_conversation_sid:
            remote_p = _twilio_call(
                "participant add",
                lambda: _conversations_api()(conversation.twilio_conversation_sid).participants.create(identity=f"user-{user.id}"),
            )
            participant.twilio_participant_sid = remote_p.sid
        conversation.participants.append(participant)
        added += 1
    if added:
        db.flush()
    return added


def get_or_create_for_booking(db: Session, booking: Booking) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.booking_id == booking.id).first()
    if conversation:
        added = sync_participants(db, conversation, booking)
        if added:
            log.info("[Conversations] Added %s participant(s) to conversation %s", added, conversation.id)
        return conversation

    service_name = booking.service.name if booking.service else "Booking"
    conversation = Conversation(
        booking_id=booking.id,
        friendly_name=f"{service_name} - {booking.booking_reference or booking.id}",
        is_active=True,
    )
    if twilio_conversations_enabled():
        remote = _twilio_call(
            "conversation create",
            lambda: _conversations_api().create(
                friendly_name=conversation.friendly_name, attributes=f'{{"booking_id": {booking.id}}}'
            ),
        )
        conversation.twilio_conversation_sid = remote.sid
    db.add(conversation)
    db.flush()

    try:
        sync_participants(db, conversation, booking)
    except ConversationError:
        if conversation.twilio_conversation_sid:
            _delete_remote(conversation.twilio_conversation_sid)
        raise
    log.info("[Conversations] Created conversation %s for booking %s", conversation.id, booking.id)
    return conversation


def get_participant(db: Session, conversation_id: int, user: User) -> ConversationParticipant:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    participant = (
        db.query(ConversationParticipant)
        .filter(ConversationParticipant.conversation_id == conversation_id, ConversationParticipant.user_id == user.id)
        .first()
    )
    if not participant:
        raise HTTPException(status_code=403, detail="You are not a participant in this conversation")
    return participant


def unread_count(db: Session, participant: ConversationParticipant) -> int:
    q = db.query(func.count(Message.id)).filter(
        Message.conversation_id == participant.conversation_id,
        Message.author_user_id != participant.user_id,
    )
    if participant.last_read_message_id:
        q = q.filter(Message.id > participant.last_read_message_id)
    return q.scalar() or 0


def to_conversation_view(db: Session, conversation: Conversation, viewer: User | None = None) -> ConversationView:
    unread = 0
    if viewer is not None:
        mine = next((p for p in conversation.participants if p.user_id == viewer.id), None)
        if mine is not None:
            unread = unread_count(db, mine)
    return ConversationView(
        id=conversation.id,
        booking_id=conversation.booking_id,
        friendly_name=conversation.friendly_name,
        twilio_conversation_sid=conversation.twilio_conversation_sid,
        is_active=conversation.is_active,
        last_message_at=conversation.last_message_at,
        participants=[
            ParticipantView(
                user_id=p.user_id,
                name=(p.user.full_name or p.user.email) if p.user else "",
                participant_role=p.participant_role,
            )
            for p in conversation.participants
        ],
        unread_count=unread,
    )


def list_for_user(db: Session, user: User) -> list[Conversation]:
    return (
        db.query(Conversation)
        .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
        .filter(ConversationParticipant.user_id == user.id, Conversation.is_active.is_(True))
        .order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
        .all()
    )


def to_message_view(message: Message) -> MessageView:
    author = message.author
    return MessageView(
        id=message.id,
        conversation_id=message.conversation_id,
        author_user_id=message.author_user_id,
        author_name=(author.full_name or author.email) if author else "",
        body=message.body,
        created_at=message.created_at,
    )


def list_messages(db: Session, conversation_id: int, limit: int = 100) -> list[Message]:
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.id.desc())
        .limit(limit)
        .all()[::-1]
    )


def post_message(db: Session, participant: ConversationParticipant, body: str) -> Message:
    conversation = participant.conversation
    if not conversation.is_active:
        raise HTTPException(status_code=400, detail="Conversation is closed")
    message = Message(conversation_id=conversation.id, author_user_id=participant.user_id, body=body.strip())
    if conversation.twilio_conversation_sid:
        remote = _twilio_call(
            "message send",
            lambda: _conversations_api()(conversation.twilio_conversation_sid).messages.create(
                author=f"user-{participant.user_id}", body=message.body
            ),
        )
        message.twilio_message_sid = remote.sid
    now = datetime.now(timezone.utc)
    message.created_at = now
    conversation.last_message_at = now
    db.add(message)
    db.flush()
    participant.last_read_message_id = message.id
    return message


def mark_read(db: Session, participant: ConversationParticipant) -> ConversationParticipant:
    last_id = (
        db.query(func.max(Message.id)).filter(Message.conversation_id == participant.conversation_id).scalar()
    )
    participant.last_read_message_id = last_id
    return participant
