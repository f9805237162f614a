from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from budgetspace.core.database import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok", "service": "budgetspace"}


@router.get("/health/db")
async def health_db(db: AsyncSession = Depends(get_db)):
    """Round-trip a trivial query so a dead connection pool shows up here."""
    await db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "connected"}
