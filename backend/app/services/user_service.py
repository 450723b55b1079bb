"""Lazy provisioning of local user rows from identity-provider claims."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.user import Identity

logger = logging.getLogger(__name__)


def find_user(db: Session, email: str) -> Optional[User]:
    """Return the local user for an email, or None if they never wrote anything."""
    return db.query(User).filter(User.email == email).first()


def ensure_user(db: Session, identity: Identity) -> User:
    """Find-or-create the local user keyed by email.

    The unique constraint on ``users.email`` makes this idempotent: if a
    concurrent request inserted the row first, the insert fails and the
    existing row is returned.
    """
    user = find_user(db, identity.email)
    if user:
        return user

    user = User(email=identity.email, name=identity.name, avatar_url=identity.avatar_url)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        user = find_user(db, identity.email)
        if user is None:
            raise
        return user

    db.refresh(user)
    logger.info("Provisioned local user %s (%s)", user.id, user.email)
    return user
