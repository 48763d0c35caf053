from fastapi import APIRouter
from fastapi import HTTPException
from sqlalchemy import text

from vantageflow import db


router = APIRouter()


@router.get("/")
async def root() -> dict[str, str]:
    """Return a basic service greeting."""

    return {"message": "VantageFlow activity heatmap"}


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness status for health checks."""

    return {"status": "ok"}


@router.get("/health/db")
def health_db() -> dict[str, str]:
    """Check that the task store accepts connections."""

    try:
        with db.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:
        raise HTTPException(
            status_code=500, detail="Database connection failed"
        ) from exc

    return {"status": "ok"}
