from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import Executable, func, or_
from sqlalchemy.ext.asyncio import AsyncSession


# PUBLIC_INTERFACE
def visible_to_org(column, organization_id):
    """
    Filter for an `assigned_org_ids` array column.

    An empty array means every organization; otherwise the organization must be listed.
    A profile without organization only sees unrestricted rows.
    """
    unrestricted = func.cardinality(column) == 0
    if organization_id is None:
        return unrestricted
    return or_(unrestricted, column.any(organization_id))


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Repositories never decide who may see a row; callers pass the organization
    filter explicitly.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def count(self, statement: Executable) -> int:
        """Execute a count statement and return an int."""
        result = await self.execute(statement)
        return int(result.scalar_one() or 0)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def refresh(self, entity: Any) -> None:
        """Reload server-generated column values."""
        await self.session.refresh(entity)

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)

    async def save(self, entity: Any) -> Any:
        """Add, commit and refresh a single entity."""
        await self.add(entity)
        await self.commit()
        await self.refresh(entity)
        return entity

    async def apply(self, entity: Any, values: Mapping[str, Any]) -> Any:
        """Set attributes on a loaded entity, then commit and refresh it."""
        for key, value in values.items():
            setattr(entity, key, value)
        await self.commit()
        await self.refresh(entity)
        return entity

    async def remove(self, entity: Any) -> None:
        """Delete a loaded entity and commit."""
        await self.session.delete(entity)
        await self.commit()

    async def stage(self, entity: Any) -> Any:
        """Add and flush an entity without committing; server defaults are loaded."""
        await self.add(entity)
        await self.session.flush()
        await self.refresh(entity)
        return entity

    async def assign(self, entity: Any, values: Mapping[str, Any]) -> Any:
        """Set attributes and flush them without committing."""
        for key, value in values.items():
            setattr(entity, key, value)
        await self.session.flush()
        await self.refresh(entity)
        return entity
