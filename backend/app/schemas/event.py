"""Pydantic schemas for Events and their attendee listings.

Wire format is camelCase (``startsAt``, ``signupMode`` ...); snake_case field
names are accepted on input too.
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.event import EventStatus, Office, SignupMode
from app.models.rsvp import RSVPStatus

CAMEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}


class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    office: Optional[str] = None  # unknown codes fall back to the default office
    starts_at: datetime
    capacity: Optional[int] = Field(None, gt=0)
    signup_mode: SignupMode = SignupMode.internal
    external_url: Optional[str] = None
    is_public: bool = True

    model_config = CAMEL_CONFIG

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title is required")
        return value


class EventUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    office: Optional[Office] = None
    starts_at: Optional[datetime] = None
    capacity: Optional[int] = Field(None, gt=0)
    signup_mode: Optional[SignupMode] = None
    external_url: Optional[str] = None
    is_public: Optional[bool] = None

    model_config = CAMEL_CONFIG

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> str:
        if value is None or not value.strip():
            raise ValueError("title cannot be empty")
        return value.strip()

    @field_validator("office", "starts_at", "signup_mode", "is_public")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class EventOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    office: Office
    starts_at: datetime
    capacity: Optional[int] = None
    signup_mode: SignupMode
    external_url: Optional[str] = None
    is_public: bool
    status: EventStatus
    created_by: int
    created_at: datetime
    updated_at: datetime

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class AttendeeOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    status: RSVPStatus
    rsvped_at: datetime

    model_config = CAMEL_CONFIG


class EventSummaryOut(EventOut):
    """List item: the event plus the caller's registration and a capped preview."""

    is_registered: bool = False
    rsvp_status: Optional[RSVPStatus] = None
    going_count: int = 0
    attendees: list[AttendeeOut] = []


class EventDetailOut(BaseModel):
    event: EventOut
    going_count: int
    attendees: list[AttendeeOut] = []
    waitlist_count: int
    waitlist: list[AttendeeOut] = []
    is_creator: bool
    is_registered: bool
    rsvp_status: Optional[RSVPStatus] = None

    model_config = CAMEL_CONFIG


class EventEnvelope(BaseModel):
    event: EventOut


class EventListEnvelope(BaseModel):
    events: list[EventSummaryOut]
