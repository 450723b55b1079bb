"""Pydantic schemas for Comments."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

CAMEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}


class CommentCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment content is required")
        return value


class CommentOut(BaseModel):
    """A comment flattened with its author's public fields."""

    id: int
    event_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    user_id: int
    name: Optional[str] = None
    email: str
    avatar_url: Optional[str] = None

    model_config = CAMEL_CONFIG


class CommentEnvelope(BaseModel):
    comment: CommentOut


class CommentListEnvelope(BaseModel):
    comments: list[CommentOut]
