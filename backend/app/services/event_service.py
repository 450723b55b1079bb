"""Event lifecycle service.

Responsibilities:
- Authorization hook: only the creator may update/cancel
- Field defaults and validation (office fallback, external signup URL)
- Partial updates: only the fields the caller sent are applied
- Cancellation safety (soft delete; cancelled events stay readable)
"""
import logging
from datetime import datetime
from typing import Optional, Any

from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.config import settings
from app.database import begin_write
from app.models.event import Event, EventStatus, Office, SignupMode
from app.utils import to_naive_utc

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "location",
    "office",
    "starts_at",
    "capacity",
    "signup_mode",
    "external_url",
    "is_public",
)


def get_event(db: Session, event_id: int, lock: bool = False) -> Event:
    """Load an event or raise 404. ``lock`` takes a row lock for the rest of the transaction."""
    query = db.query(Event).filter(Event.id == event_id)
    if lock:
        begin_write(db)
        query = query.with_for_update()
    event = query.first()
    if not event:
        if lock:
            db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


def _check_authorization(event: Event, actor_user_id: int) -> None:
    """Only the creator may modify an event."""
    if event.created_by != actor_user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event creator may modify this event",
        )


def normalize_office(value: Optional[str]) -> Office:
    """Map an office code to the enum; missing or unknown codes get the default office."""
    try:
        return Office(value)
    except ValueError:
        return Office(settings.DEFAULT_OFFICE)


def _check_signup(signup_mode: SignupMode, external_url: Optional[str]) -> None:
    if signup_mode == SignupMode.external and not (external_url or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="externalUrl is required when signupMode is external",
        )


def create_event(
    db: Session,
    owner_id: int,
    title: str,
    starts_at: datetime,
    description: Optional[str] = None,
    location: Optional[str] = None,
    office: Optional[str] = None,
    capacity: Optional[int] = None,
    signup_mode: SignupMode = SignupMode.internal,
    external_url: Optional[str] = None,
    is_public: bool = True,
) -> Event:
    """Create an active event owned by ``owner_id``."""
    _check_signup(signup_mode, external_url)

    event = Event(
        title=title,
        description=description,
        location=location,
        office=normalize_office(office),
        starts_at=to_naive_utc(starts_at),
        capacity=capacity,
        signup_mode=signup_mode,
        external_url=external_url,
        is_public=is_public,
        status=EventStatus.active,
        created_by=owner_id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by user %s", title, event.id, owner_id)
    return event


def update_event(
    db: Session,
    event_id: int,
    actor_user_id: int,
    updates: dict[str, Any],
) -> Event:
    """Apply a partial update. Keys absent from ``updates`` keep their stored values."""
    event = get_event(db, event_id)
    _check_authorization(event, actor_user_id)

    if event.status == EventStatus.cancelled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is cancelled")

    signup_mode = updates.get("signup_mode", event.signup_mode)
    external_url = updates.get("external_url", event.external_url)
    _check_signup(signup_mode, external_url)

    for field, value in updates.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if field == "starts_at":
            value = to_naive_utc(value)
        setattr(event, field, value)

    db.commit()
    db.refresh(event)
    logger.info("Updated event %s (fields: %s)", event_id, ", ".join(sorted(updates)) or "none")
    return event


def cancel_event(db: Session, event_id: int, actor_user_id: int) -> Event:
    """Soft-delete: the row and its RSVPs are kept, only the status changes."""
    event = get_event(db, event_id)
    _check_authorization(event, actor_user_id)

    if event.status == EventStatus.cancelled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is already cancelled")

    event.status = EventStatus.cancelled
    db.commit()
    db.refresh(event)
    logger.info("Cancelled event %s", event_id)
    return event


def list_events(
    db: Session,
    office: Optional[Office] = None,
    include_cancelled: bool = False,
) -> list[Event]:
    """Events ordered by start time, optionally filtered by office."""
    query = db.query(Event)
    if office:
        query = query.filter(Event.office == office)
    if not include_cancelled:
        query = query.filter(Event.status != EventStatus.cancelled)
    return query.order_by(Event.starts_at, Event.id).all()
