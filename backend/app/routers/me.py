"""Caller identity route."""
from fastapi import APIRouter, Depends

from app.auth import get_identity
from app.schemas.user import Identity, MeOut

router = APIRouter()


@router.get("", response_model=MeOut)
def get_me(identity: Identity = Depends(get_identity)):
    """Return the identity-provider id of the authenticated caller."""
    return MeOut(user_id=identity.subject, email=identity.email)
