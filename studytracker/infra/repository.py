"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Separates data access logic from business logic. Makes it easy to:
- Switch database implementations
- Mock data for testing
- Change data sources (local DB to cloud API)
"""

from typing import Any, Dict, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from studytracker.infra.db import RecordModel, get_engine


class RecordRepository:
    """
    Handles persistence of named collections.

    Each collection is one row holding plain JSON (lists/dicts of primitives);
    converting to and from domain models is the caller's job.
    """

    def __init__(self, session: Optional[AsyncSession] = None):
        self.session = session

    async def _get_session(self) -> AsyncSession:
        """Get session - either injected or create new one"""
        if self.session:
            return self.session
        engine = get_engine()
        return engine.get_session()

    async def get(self, key: str) -> Optional[Any]:
        """Get the stored value of a collection, None if never saved"""
        session = await self._get_session()
        async with session:
            result = await session.execute(
                select(RecordModel).where(RecordModel.key == key)
            )
            model = result.scalar_one_or_none()
            return model.value if model else None

    async def get_all(self) -> Dict[str, Any]:
        """Get every stored collection keyed by name"""
        session = await self._get_session()
        async with session:
            result = await session.execute(select(RecordModel))
            return {m.key: m.value for m in result.scalars().all()}

    async def put(self, key: str, value: Any) -> None:
        """Insert or replace one collection"""
        await self.put_many({key: value})

    async def put_many(self, values: Dict[str, Any]) -> None:
        """Insert or replace several collections in a single transaction"""
        session = await self._get_session()
        async with session:
            result = await session.execute(
                select(RecordModel).where(RecordModel.key.in_(list(values)))
            )
            existing = {m.key: m for m in result.scalars().all()}

            for key, value in values.items():
                model = existing.get(key)
                if model is None:
                    session.add(RecordModel(key=key, value=value))
                else:
                    model.value = value

            await session.commit()

    async def delete_all(self) -> int:
        """Delete all collections. Returns count of deleted rows."""
        session = await self._get_session()
        async with session:
            result = await session.execute(delete(RecordModel))
            await session.commit()
            return result.rowcount
