"""
Base class for store services.

Wraps the async session factory in a commit/rollback scope and retries
writes that hit a transient SQLite lock.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

# Delay before the first retry, doubled on every further attempt
RETRY_BASE_DELAY = 0.1


class BaseService:
    """Base class for services backed by the checker database."""

    def __init__(self, session_factory: async_sessionmaker, max_retries: int = 3):
        """
        Args:
            session_factory: Async session factory from the Database class
            max_retries: Attempts made by execute_with_retry before giving up
        """
        self.session_factory = session_factory
        self.max_retries = max_retries

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on any error."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def execute_with_retry(self, func: Callable[[], Awaitable[Any]], operation: str) -> Any:
        """
        Run ``func``, retrying on OperationalError (locked or busy database).

        Other errors propagate on the first attempt.
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                return await func()
            except OperationalError as e:
                if attempt == self.max_retries:
                    raise
                delay = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(f"{operation} failed (attempt {attempt}/{self.max_retries}), retrying in {delay:.1f}s: {e}")
                await asyncio.sleep(delay)
