"""Rsvp ORM model: one row per (user, event) pair."""
import enum
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.orm import relationship

from app.database import Base
from app.utils import utcnow


class RSVPStatus(str, enum.Enum):
    going = "going"
    waitlist = "waitlist"
    cancelled = "cancelled"


class Rsvp(Base):
    __tablename__ = "rsvps"
    __table_args__ = (Index("ix_rsvps_event_status", "event_id", "status"),)

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id"), primary_key=True)
    status = Column(SAEnum(RSVPStatus, native_enum=False, length=20), nullable=False)
    # Arrival time; kept on re-registration so queue order stays first come, first served.
    created_at = Column(DateTime, nullable=False, default=utcnow)

    event = relationship("Event", back_populates="rsvps")
    user = relationship("User")
