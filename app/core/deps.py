from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Database
from app.core.mpesa_client import MpesaClient


def get_database(request: Request) -> Database:
    """The Database created on startup (see app.main lifespan)."""
    return request.app.state.database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with get_database(request).session_maker() as session:
        yield session


def get_payment_provider() -> MpesaClient:
    return MpesaClient()
