from fastapi import APIRouter, Depends
from sqlalchemy import text

from app.core.database import Database
from app.core.deps import get_database

router = APIRouter()


@router.get("/", summary="Health Check")
async def health_check(database: Database = Depends(get_database)):
    async with database.engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return {"status": "ok"}
