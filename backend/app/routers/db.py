"""Database connectivity check (authenticated)."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.auth import get_identity
from app.database import get_db
from app.schemas.user import Identity

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
def db_health(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    """Round-trip a trivial query. Store failures surface as 500 through the app handler."""
    result = db.execute(text("SELECT 1")).scalar()
    return {"ok": True, "result": result}
