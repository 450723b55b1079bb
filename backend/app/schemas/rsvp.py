"""Pydantic schemas for RSVPs."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from app.models.rsvp import RSVPStatus


class RsvpOut(BaseModel):
    event_id: int
    user_id: int
    status: RSVPStatus
    created_at: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "from_attributes": True}


class RsvpEnvelope(BaseModel):
    rsvp: Optional[RsvpOut] = None
