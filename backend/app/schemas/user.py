"""Pydantic schemas for Users and the caller's identity."""
from typing import Optional
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class Identity(BaseModel):
    """Claims taken from a verified identity-provider session."""

    subject: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class MeOut(BaseModel):
    user_id: str
    email: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}
