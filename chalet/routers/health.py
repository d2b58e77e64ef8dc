"""
Health Check Endpoints

- /health       - liveness
- /health/ready - database round trip and hold purge scheduler status
"""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.hold_scheduler import get_scheduler_status

router = APIRouter(prefix="/health", tags=["Health"])


def get_db_health(db: Session) -> dict:
    """Check database connectivity and latency"""
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": db.get_bind().dialect.name,
        }
    except SQLAlchemyError as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


@router.get("")
async def health_check():
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(db: Session = Depends(get_db)):
    database = get_db_health(db)
    body = {
        "status": "ready" if database["status"] == "up" else "not_ready",
        "database": database,
        "hold_scheduler": get_scheduler_status(),
    }
    return JSONResponse(status_code=200 if database["status"] == "up" else 503, content=body)
