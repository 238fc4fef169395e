import asyncio
import logging
import os
from functools import partial
from typing import Awaitable, Callable, Optional

from dotenv import load_dotenv
from fastapi import Request
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from common.errors import ConfigurationError, DatabaseConnectionError

load_dotenv()

logger = logging.getLogger(__name__)

# NOTE: For local setup
# MONGODB_URI = "mongodb://localhost:27017/devevents"


MONGODB_URI = os.getenv("MONGODB_URI")
MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "devevents")
SERVER_SELECTION_TIMEOUT_MS = os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "5000")

Connector = Callable[[str], Awaitable[AsyncMongoClient]]


async def connect_mongo(
    uri: str, server_selection_timeout_ms: int = 5000
) -> AsyncMongoClient:
    """Open a client and make sure a server answers before handing it out.

    Operations never queue behind a pending connection: server selection is
    bounded, so a command issued without a reachable server fails fast.
    """
    client = AsyncMongoClient(
        uri, serverSelectionTimeoutMS=server_selection_timeout_ms
    )
    try:
        await client.admin.command("ping")
    except PyMongoError:
        await client.close()
        raise
    return client


class ConnectionManager:
    """Hands out one MongoDB client per process.

    Concurrent callers on a cold manager share a single in-flight connect
    attempt. A failed attempt is forgotten so the next call retries.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        database_name: str = MONGODB_DATABASE,
        connector: Optional[Connector] = None,
        on_connect: Optional[Callable[[AsyncDatabase], Awaitable[None]]] = None,
        server_selection_timeout_ms=5000,
    ):
        self.uri = uri
        self.database_name = database_name
        self._connector = connector
        self._on_connect = on_connect
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.active_connection: Optional[AsyncMongoClient] = None
        self.pending_attempt: Optional[asyncio.Task] = None

    @classmethod
    def from_env(cls, **kwargs) -> "ConnectionManager":
        return cls(
            uri=MONGODB_URI,
            database_name=MONGODB_DATABASE,
            server_selection_timeout_ms=SERVER_SELECTION_TIMEOUT_MS,
            **kwargs,
        )

    async def acquire(self) -> AsyncMongoClient:
        if self.active_connection is not None:
            return self.active_connection

        if self.pending_attempt is None:
            if not self.uri:
                raise ConfigurationError(
                    "Please define the MONGODB_URI environment variable"
                )
            connector = self._connector or partial(
                connect_mongo,
                server_selection_timeout_ms=self._server_selection_timeout(),
            )
            self.pending_attempt = asyncio.ensure_future(self._connect(connector))
            self.pending_attempt.add_done_callback(_consume_exception)
        else:
            logger.debug("Waiting on in-flight MongoDB connection attempt")

        # A waiter giving up must not cancel the attempt other waiters share.
        return await asyncio.shield(self.pending_attempt)

    def _server_selection_timeout(self) -> int:
        try:
            timeout = int(self.server_selection_timeout_ms)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                "MONGODB_SERVER_SELECTION_TIMEOUT_MS must be a whole number of "
                f"milliseconds, got {self.server_selection_timeout_ms!r}"
            ) from e
        if timeout <= 0:
            raise ConfigurationError(
                "MONGODB_SERVER_SELECTION_TIMEOUT_MS must be positive"
            )
        return timeout

    async def get_database(self) -> AsyncDatabase:
        client = await self.acquire()
        return client[self.database_name]

    async def _connect(self, connector: Connector) -> AsyncMongoClient:
        logger.info("Connecting to MongoDB database %s", self.database_name)
        client = None
        try:
            client = await connector(self.uri)
            if self._on_connect is not None:
                await self._on_connect(client[self.database_name])
        except asyncio.CancelledError:
            self._forget_attempt()
            raise
        except Exception as e:
            self._forget_attempt()
            if client is not None:
                await client.close()
            logger.error("MongoDB connection failed: %s", e)
            raise DatabaseConnectionError(f"MongoDB connection failed: {e}") from e

        if self.pending_attempt is not asyncio.current_task():
            # close() ran while connecting
            await client.close()
            raise DatabaseConnectionError(
                "MongoDB connection was closed while connecting"
            )

        self.active_connection = client
        self._forget_attempt()
        logger.info("MongoDB connection established")
        return client

    def _forget_attempt(self):
        # close() may already have dropped this attempt for a newer one
        if self.pending_attempt is asyncio.current_task():
            self.pending_attempt = None

    async def close(self):
        """Close the MongoDB connection."""
        client, self.active_connection = self.active_connection, None
        self.pending_attempt = None
        if client is not None:
            await client.close()
            logger.info("MongoDB connection closed")


def _consume_exception(task: asyncio.Task):
    # Marks the failure as retrieved when no waiter is left to re-raise it.
    if not task.cancelled():
        task.exception()


async def get_mongo_db(request: Request):
    """Provide the MongoDB database to FastAPI routes."""
    manager: ConnectionManager = request.app.state.connection_manager
    return await manager.get_database()
