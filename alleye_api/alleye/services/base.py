from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.settings import AppSettings, get_app_settings


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services keep business logic and orchestration, delegating data access
    to repositories and publishing change notifications after writes.
    """

    def __init__(self, session: AsyncSession, settings: Optional[AppSettings] = None) -> None:
        self.session = session
        self.settings = settings or get_app_settings()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Commit everything staged inside the block once, or roll all of it back.

        Repositories must be used in their non-committing form (stage/assign)
        inside the block. Publish change notifications after it exits.
        """
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise


# PUBLIC_INTERFACE
def round_half_up(numerator: int, denominator: int = 1) -> int:
    """
    Round numerator / denominator to an int with ties going up (12.5 -> 13).

    Works on the integer fraction so scores like 1/8 of 100 never land on the
    wrong side of a tie. Both arguments must be non-negative.
    """
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (2 * int(numerator) + int(denominator)) // (2 * int(denominator))
