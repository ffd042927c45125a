import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from paperscope.config import Settings

logger = logging.getLogger(__name__)


def relaxed_ssl_context() -> ssl.SSLContext:
    """TLS without certificate validation (managed cloud certificates)"""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def build_connect_args(settings: Settings) -> Dict[str, object]:
    """Driver arguments for either a Unix socket or TCP (optionally TLS) connection"""
    connect_args: Dict[str, object] = {"connect_timeout": settings.db_connect_timeout}

    if settings.socket_path:
        connect_args["unix_socket"] = settings.socket_path
    elif settings.db_ssl:
        connect_args["ssl"] = relaxed_ssl_context()

    return connect_args


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the bounded connection pool"""
    if settings.socket_path:
        logger.info(f"Database via unix socket {settings.socket_path}")
    else:
        logger.info(
            f"Database via tcp {settings.db_host}:{settings.db_port} "
            f"(ssl={'on' if settings.db_ssl else 'off'})"
        )

    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=0,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
        connect_args=build_connect_args(settings),
    )


class Database:
    """Connection pool wrapper handed to request handlers"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(create_engine_from_settings(settings))

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """Pooled connection for reads and single-statement writes"""
        async with self.engine.connect() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self, isolation_level: Optional[str] = "READ COMMITTED") -> AsyncIterator[AsyncConnection]:
        """Explicit transaction: commit on success, rollback on any exception"""
        async with self.engine.connect() as conn:
            if isolation_level:
                conn = await conn.execution_options(isolation_level=isolation_level)
            async with conn.begin():
                yield conn

    async def ping(self) -> bool:
        async with self.connect() as conn:
            result = await conn.execute(text("SELECT 1 AS ok"))
            return result.scalar() == 1

    async def dispose(self):
        await self.engine.dispose()
