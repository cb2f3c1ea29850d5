from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from variant_engine.core.exceptions import InternalException
from variant_engine.core.logging import get_logger
from variant_engine.db.session import AsyncSessionLocal

logger = get_logger(__name__)


class SqlRepository:
    """Opens one session and one transaction per repository call."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or AsyncSessionLocal

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as db:
            try:
                async with db.begin():
                    yield db
            except SQLAlchemyError as e:
                logger.error(f"{type(self).__name__} storage error: {e}")
                raise InternalException("Storage operation failed") from e
