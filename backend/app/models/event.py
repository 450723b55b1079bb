"""Event ORM model."""
import enum
from sqlalchemy import Column, String, Text, DateTime, Integer, Boolean, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.orm import relationship

from app.database import Base
from app.utils import utcnow


class Office(str, enum.Enum):
    VIE = "VIE"
    SFO = "SFO"
    YYZ = "YYZ"
    AMS = "AMS"
    SEA = "SEA"


class SignupMode(str, enum.Enum):
    internal = "internal"
    external = "external"


class EventStatus(str, enum.Enum):
    active = "active"
    cancelled = "cancelled"


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (Index("ix_events_office_starts_at", "office", "starts_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    office = Column(SAEnum(Office, native_enum=False, length=10), nullable=False, default=Office.VIE)
    starts_at = Column(DateTime, nullable=False)
    capacity = Column(Integer, nullable=True)  # NULL = unlimited
    signup_mode = Column(
        SAEnum(SignupMode, native_enum=False, length=20), nullable=False, default=SignupMode.internal
    )
    external_url = Column(Text, nullable=True)
    is_public = Column(Boolean, nullable=False, default=True)
    status = Column(SAEnum(EventStatus, native_enum=False, length=20), nullable=False, default=EventStatus.active)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    rsvps = relationship("Rsvp", back_populates="event")
