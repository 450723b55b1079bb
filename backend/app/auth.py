"""Identity gate: verifies the session token and the organization email domain.

Sessions are issued by an external identity provider as signed JWTs. The
claims used are ``sub`` (provider user id), ``email``, ``name`` and
``picture``.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.schemas.user import Identity
from app.services import user_service

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def decode_session_token(token: str) -> dict:
    """Verify the token signature (and audience, when configured) and return its claims."""
    options = {"verify_aud": bool(settings.IDENTITY_JWT_AUDIENCE)}
    return jwt.decode(
        token,
        settings.IDENTITY_JWT_SECRET,
        algorithms=[settings.IDENTITY_JWT_ALGORITHM],
        audience=settings.IDENTITY_JWT_AUDIENCE or None,
        options=options,
    )


def is_allowed_email(email: Optional[str]) -> bool:
    if not isinstance(email, str) or not email:
        return False
    return email.lower().endswith("@" + settings.ALLOWED_EMAIL_DOMAIN.lower())


def get_identity(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Identity:
    """Resolve the caller's identity or fail with 401 (no/invalid session) or 403 (wrong domain)."""
    if not settings.IDENTITY_JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Identity provider is not configured",
        )

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    try:
        claims = decode_session_token(credentials.credentials)
    except JWTError as exc:
        logger.warning("Rejected session token: %s", exc)
        raise unauthorized

    subject = claims.get("sub")
    if not subject:
        raise unauthorized

    email = claims.get("email")
    if not is_allowed_email(email):
        logger.warning("Denied access for %s (subject %s)", email, subject)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access restricted to @{settings.ALLOWED_EMAIL_DOMAIN} email addresses",
        )

    return Identity(
        subject=str(subject),
        email=email.lower(),
        name=claims.get("name"),
        avatar_url=claims.get("picture"),
    )


def get_current_user(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> User:
    """Local user for the caller, created on first use."""
    return user_service.ensure_user(db, identity)


def get_existing_user(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> Optional[User]:
    """Local user for the caller if one exists; reads never provision."""
    return user_service.find_user(db, identity.email)
