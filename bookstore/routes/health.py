from datetime import datetime
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from bookstore.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    db_status = "ok"

    try:
        session.exec(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        db_status = "failed"

    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "database": db_status,
        "timestamp": datetime.utcnow().isoformat()
    }
