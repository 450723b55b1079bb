"""Comment API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.auth import get_current_user, get_identity
from app.database import get_db
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comment import CommentCreate, CommentOut, CommentEnvelope, CommentListEnvelope
from app.schemas.user import Identity
from app.services.event_service import get_event

logger = logging.getLogger(__name__)
router = APIRouter()


def _comment_out(comment: Comment) -> CommentOut:
    return CommentOut(
        id=comment.id,
        event_id=comment.event_id,
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        user_id=comment.user.id,
        name=comment.user.name,
        email=comment.user.email,
        avatar_url=comment.user.avatar_url,
    )


@router.get("/{event_id}", response_model=CommentListEnvelope)
def list_comments(
    event_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """List an event's comments, newest first, with author details."""
    comments = (
        db.query(Comment)
        .filter(Comment.event_id == event_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )
    return CommentListEnvelope(comments=[_comment_out(c) for c in comments])


@router.post("/{event_id}", response_model=CommentEnvelope, status_code=status.HTTP_201_CREATED)
def create_comment(
    event_id: int,
    payload: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add a comment to an event."""
    get_event(db, event_id)

    comment = Comment(event_id=event_id, user_id=user.id, content=payload.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("User %s commented on event %s (comment %s)", user.id, event_id, comment.id)
    return CommentEnvelope(comment=_comment_out(comment))
