"""Event and RSVP API routes: delegate to event_service and rsvp_service."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.auth import get_current_user, get_existing_user
from app.config import settings
from app.database import get_db
from app.models.event import Office
from app.models.user import User
from app.schemas.event import (
    EventCreate,
    EventUpdate,
    EventOut,
    EventEnvelope,
    EventListEnvelope,
    EventSummaryOut,
    EventDetailOut,
)
from app.schemas.rsvp import RsvpEnvelope, RsvpOut
from app.services import event_service, rsvp_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _rsvp_envelope(rsvp) -> RsvpEnvelope:
    return RsvpEnvelope(rsvp=RsvpOut.model_validate(rsvp) if rsvp else None)


@router.get("", response_model=EventListEnvelope)
def list_events(
    office: Optional[Office] = Query(None),
    include_cancelled: bool = Query(False),
    user: Optional[User] = Depends(get_existing_user),
    db: Session = Depends(get_db),
):
    """List events with the caller's registration, going count and an attendee preview."""
    caller_id = user.id if user else None
    items = []
    for event in event_service.list_events(db, office=office, include_cancelled=include_cancelled):
        summary = rsvp_service.attendee_summary(db, event.id, caller_id)
        items.append(EventSummaryOut(
            **EventOut.model_validate(event).model_dump(),
            is_registered=summary["is_registered"],
            rsvp_status=summary["rsvp_status"],
            going_count=summary["going_count"],
            attendees=summary["going"][:settings.ATTENDEE_PREVIEW_LIMIT],
        ))
    return EventListEnvelope(events=items)


@router.get("/{event_id}", response_model=EventDetailOut)
def get_event(
    event_id: int,
    user: Optional[User] = Depends(get_existing_user),
    db: Session = Depends(get_db),
):
    """Fetch one event with its full going/waitlist breakdown. Cancelled events are still returned."""
    event = event_service.get_event(db, event_id)
    caller_id = user.id if user else None
    summary = rsvp_service.attendee_summary(db, event.id, caller_id)
    return EventDetailOut(
        event=EventOut.model_validate(event),
        going_count=summary["going_count"],
        attendees=summary["going"],
        waitlist_count=summary["waitlist_count"],
        waitlist=summary["waitlist"],
        is_creator=caller_id is not None and event.created_by == caller_id,
        is_registered=summary["is_registered"],
        rsvp_status=summary["rsvp_status"],
    )


@router.post("", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new event owned by the caller."""
    event = event_service.create_event(
        db=db,
        owner_id=user.id,
        title=payload.title,
        starts_at=payload.starts_at,
        description=payload.description,
        location=payload.location,
        office=payload.office,
        capacity=payload.capacity,
        signup_mode=payload.signup_mode,
        external_url=payload.external_url,
        is_public=payload.is_public,
    )
    return EventEnvelope(event=EventOut.model_validate(event))


@router.put("/{event_id}", response_model=EventEnvelope)
def update_event(
    event_id: int,
    payload: EventUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partially update an event (creator only)."""
    updates = payload.model_dump(exclude_unset=True)
    event = event_service.update_event(db=db, event_id=event_id, actor_user_id=user.id, updates=updates)
    return EventEnvelope(event=EventOut.model_validate(event))


@router.delete("/{event_id}", response_model=EventEnvelope)
def cancel_event(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cancel an event (soft delete, creator only)."""
    event = event_service.cancel_event(db=db, event_id=event_id, actor_user_id=user.id)
    return EventEnvelope(event=EventOut.model_validate(event))


@router.post("/{event_id}/register", response_model=RsvpEnvelope)
@router.post("/{event_id}/rsvp", response_model=RsvpEnvelope, include_in_schema=False)
def register(
    event_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """RSVP to an event: going while there is room, waitlist otherwise."""
    rsvp = rsvp_service.register(db, event_id=event_id, user_id=user.id)
    return _rsvp_envelope(rsvp)


@router.delete("/{event_id}/register", response_model=RsvpEnvelope)
@router.delete("/{event_id}/rsvp", response_model=RsvpEnvelope, include_in_schema=False)
def cancel_registration(
    event_id: int,
    user: Optional[User] = Depends(get_existing_user),
    db: Session = Depends(get_db),
):
    """Cancel the caller's RSVP. Cancelling when not registered is a no-op."""
    rsvp = rsvp_service.cancel(db, event_id=event_id, user_id=user.id if user else None)
    return _rsvp_envelope(rsvp)
