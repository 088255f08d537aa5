from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine

from wr_checker.database.models import Base
from wr_checker.utils.exceptions import SetupError
import logging

logger = logging.getLogger(__name__)

class Database:
    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.async_session: Optional[async_sessionmaker] = None
        
    async def initialize(self):
        """
        Open the database connection and create tables.
        
        Table creation is idempotent. Any failure here is fatal for the
        checker and is raised as SetupError.
        """
        logger.info("Initializing database...")
        
        try:
            self.engine = create_async_engine(self.database_url, echo=self.echo)
            
            self.async_session = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )
            
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise SetupError("Failed to initialize database", str(e)) from e
            
        logger.info("Database initialized successfully")
    
    @property
    def session_factory(self) -> async_sessionmaker:
        if self.async_session is None:
            raise SetupError("Database has not been initialized")
        return self.async_session
    
    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connection closed")
