"""RSVP admission: capacity, waitlist and cancellation.

Admission rule: an event without capacity admits everyone as ``going``.
With a capacity, a registration is ``going`` while fewer than ``capacity``
other users are going, and ``waitlist`` otherwise. Only rows whose status is
exactly ``going`` count against capacity.

The count and the upsert run in one transaction that starts by locking the
event (``SELECT ... FOR UPDATE`` on PostgreSQL, ``BEGIN IMMEDIATE`` on SQLite),
so two registrations for the same event cannot both read a count below
capacity and both be admitted past it.

Cancelling a ``going`` RSVP does not promote anyone from the waitlist unless
``WAITLIST_AUTO_PROMOTE`` is enabled.
"""
import logging
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.models.event import Event, EventStatus, SignupMode
from app.models.rsvp import Rsvp, RSVPStatus
from app.models.user import User
from app.services.event_service import get_event

logger = logging.getLogger(__name__)


def _going_count(db: Session, event_id: int, exclude_user_id: Optional[int] = None) -> int:
    query = db.query(func.count()).select_from(Rsvp).filter(
        Rsvp.event_id == event_id,
        Rsvp.status == RSVPStatus.going,
    )
    if exclude_user_id is not None:
        query = query.filter(Rsvp.user_id != exclude_user_id)
    return query.scalar() or 0


def admission_status(db: Session, event: Event, user_id: int) -> RSVPStatus:
    """Decide ``going`` vs ``waitlist`` for a user against the current going count.

    The user's own row is left out of the count so that re-registering while
    already going never demotes them.
    """
    if event.capacity is None:
        return RSVPStatus.going
    going = _going_count(db, event.id, exclude_user_id=user_id)
    return RSVPStatus.going if going < event.capacity else RSVPStatus.waitlist


def get_rsvp(db: Session, event_id: int, user_id: int) -> Optional[Rsvp]:
    return db.query(Rsvp).filter(Rsvp.event_id == event_id, Rsvp.user_id == user_id).first()


def register(db: Session, event_id: int, user_id: int) -> Rsvp:
    """Register a user for an event, admitting them as going or waitlisting them."""
    event = get_event(db, event_id, lock=True)

    if event.status == EventStatus.cancelled:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is cancelled")

    if event.signup_mode == SignupMode.external:
        external_url = event.external_url
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "External signup only", "externalUrl": external_url},
        )

    decision = admission_status(db, event, user_id)

    rsvp = get_rsvp(db, event_id, user_id)
    if rsvp:
        rsvp.status = decision
    else:
        rsvp = Rsvp(event_id=event_id, user_id=user_id, status=decision)
        db.add(rsvp)

    db.commit()
    db.refresh(rsvp)
    logger.info("User %s registered for event %s as '%s'", user_id, event_id, decision.value)
    return rsvp


def cancel(db: Session, event_id: int, user_id: Optional[int]) -> Optional[Rsvp]:
    """Mark the user's RSVP cancelled. No RSVP (or no local user) is a no-op returning None."""
    event = get_event(db, event_id, lock=True)

    rsvp = get_rsvp(db, event_id, user_id) if user_id is not None else None
    if rsvp is None:
        db.rollback()
        logger.info("No RSVP to cancel for user %s on event %s", user_id, event_id)
        return None

    was_going = rsvp.status == RSVPStatus.going
    rsvp.status = RSVPStatus.cancelled

    if was_going and settings.WAITLIST_AUTO_PROMOTE:
        db.flush()
        _promote_waitlist(db, event)

    db.commit()
    db.refresh(rsvp)
    logger.info("User %s cancelled RSVP for event %s", user_id, event_id)
    return rsvp


def _promote_waitlist(db: Session, event: Event) -> list[Rsvp]:
    """Move the earliest waitlisted RSVPs to going until the event is full again."""
    if event.capacity is None or event.status == EventStatus.cancelled:
        return []

    open_slots = event.capacity - _going_count(db, event.id)
    if open_slots <= 0:
        return []

    promoted = (
        db.query(Rsvp)
        .filter(Rsvp.event_id == event.id, Rsvp.status == RSVPStatus.waitlist)
        .order_by(Rsvp.created_at, Rsvp.user_id)
        .limit(open_slots)
        .all()
    )
    for rsvp in promoted:
        rsvp.status = RSVPStatus.going
        logger.info("Promoted user %s from waitlist on event %s", rsvp.user_id, event.id)
    return promoted


def _attendee(rsvp: Rsvp, user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "avatar_url": user.avatar_url,
        "status": rsvp.status,
        "rsvped_at": rsvp.created_at,
    }


def attendee_summary(db: Session, event_id: int, caller_user_id: Optional[int] = None) -> dict[str, Any]:
    """Going and waitlisted attendees in arrival order, plus the caller's own status."""
    rows = (
        db.query(Rsvp, User)
        .join(User, Rsvp.user_id == User.id)
        .filter(
            Rsvp.event_id == event_id,
            Rsvp.status.in_([RSVPStatus.going, RSVPStatus.waitlist]),
        )
        .order_by(Rsvp.created_at, Rsvp.user_id)
        .all()
    )
    going = [_attendee(r, u) for r, u in rows if r.status == RSVPStatus.going]
    waitlist = [_attendee(r, u) for r, u in rows if r.status == RSVPStatus.waitlist]

    rsvp_status = None
    if caller_user_id is not None:
        own = get_rsvp(db, event_id, caller_user_id)
        rsvp_status = own.status if own else None

    return {
        "going": going,
        "going_count": len(going),
        "waitlist": waitlist,
        "waitlist_count": len(waitlist),
        "rsvp_status": rsvp_status,
        "is_registered": rsvp_status in (RSVPStatus.going, RSVPStatus.waitlist),
    }
