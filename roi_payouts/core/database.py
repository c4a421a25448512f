"""
Database configuration and session management.
Uses SQLAlchemy 2.0 with async support.

The engine is owned by an explicitly constructed ``Database`` handle
(one per run) instead of module-level globals.
"""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine
)
from sqlalchemy.orm import DeclarativeBase

from .config import DatabaseConfig, Settings, settings
from .exceptions import DatabaseError
from .logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class Database:
    """
    Owns one async engine and its session maker.

    Usage:
        database = Database(url)
        await database.connect()
        try:
            async with database.session() as session:
                ...
        finally:
            await database.dispose()
    """

    def __init__(self, url: str, config: Optional[Settings] = None):
        self.config = config or settings
        self.url = DatabaseConfig.get_async_url(url)
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.dispose()

    @property
    def is_connected(self) -> bool:
        return self.engine is not None

    async def connect(self) -> None:
        """Initialize the engine and session maker."""
        if self.engine is not None:
            return

        logger.info("Initializing database connection", driver=self.url.split("://", 1)[0])

        try:
            self.engine = create_async_engine(
                self.url,
                **DatabaseConfig.get_engine_config(self.url, self.config),
                echo=self.config.debug
            )
        except (SQLAlchemyError, ImportError, ValueError) as e:
            raise DatabaseError(
                "Failed to create database engine",
                {"error": str(e)}
            ) from e

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        logger.info("Database connection initialized")

    async def dispose(self) -> None:
        """Close database connections."""
        if self.engine is None:
            return

        logger.info("Closing database connection")
        await self.engine.dispose()
        self.engine = None
        self.session_maker = None
        logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session with automatic commit/rollback.

        Usage:
            async with database.session() as session:
                # Use session here
                pass
        """
        if not self.session_maker:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create all tables in the database."""
        # Register models on the metadata
        from roi_payouts.models import document  # noqa: F401

        if not self.engine:
            raise RuntimeError("Database not connected")

        logger.info("Creating database tables")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False
