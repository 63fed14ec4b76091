"""
Tubely MongoDB Database Client Module

Async MongoDB connection management using Motor:
- Connection pooling with configurable pool size
- Health checks using the MongoDB ping command
- Accessor for the videos collection
- Index creation for the per-user listing query
- Startup/shutdown lifecycle helpers for FastAPI
- Retry with exponential backoff when connecting
"""

import asyncio
import logging

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from tubely.config import Settings, get_settings


logger = logging.getLogger(__name__)

VIDEOS_COLLECTION = "videos"

CONNECT_MAX_RETRIES = 3
SERVER_SELECTION_TIMEOUT_MS = 5000

# Shared with scripts/init_db.py so both create identically named indexes
VIDEO_INDEXES: list[IndexModel] = [
    IndexModel([("user_id", ASCENDING)], name="user_id_idx"),
    IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)], name="user_videos_sorted_idx"),
]


class DatabaseClient:
    """
    Owns the Motor client for one database and hands out the videos collection.

    Example:
        ```python
        db_client = DatabaseClient(get_settings())
        await db_client.connect()
        videos = db_client.get_videos_collection()
        await db_client.close()
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.db_name = settings.mongodb_db_name
        self.client: AsyncIOMotorClient | None = None
        self.database: AsyncIOMotorDatabase | None = None

    async def connect(self) -> bool:
        """
        Establish the MongoDB connection, retrying with exponential backoff (1s, 2s).

        Returns:
            bool: True if connection successful, False after all retries fail.
        """
        retry_delay = 1.0

        for attempt in range(1, CONNECT_MAX_RETRIES + 1):
            try:
                logger.info(
                    "Attempting MongoDB connection (attempt %d/%d) to %s...",
                    attempt,
                    CONNECT_MAX_RETRIES,
                    self.db_name,
                )

                self.client = AsyncIOMotorClient(
                    self.settings.mongodb_uri,
                    minPoolSize=self.settings.mongodb_min_pool_size,
                    maxPoolSize=self.settings.mongodb_max_pool_size,
                    serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
                )
                self.database = self.client[self.db_name]

                await self.client.admin.command("ping")

                logger.info("Connected to MongoDB database: %s", self.db_name)
                return True

            except (ServerSelectionTimeoutError, ConnectionFailure):
                logger.exception(
                    "MongoDB connection failure (attempt %d/%d)", attempt, CONNECT_MAX_RETRIES
                )
                if attempt < CONNECT_MAX_RETRIES:
                    logger.warning("Retrying in %.0f seconds...", retry_delay)
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2

        self.client = None
        self.database = None
        logger.error(
            "Failed to connect to MongoDB after %d attempts. "
            "Check connection URI and server availability.",
            CONNECT_MAX_RETRIES,
        )
        return False

    async def close(self) -> None:
        """Close the Motor client; a no-op when never connected."""
        if self.client is None:
            return

        self.client.close()
        self.client = None
        self.database = None
        logger.info("Closed MongoDB connection to %s", self.db_name)

    async def ping(self) -> bool:
        """Return True when the server answers ``ping``."""
        if self.client is None:
            return False

        try:
            await self.client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError):
            logger.exception("MongoDB ping to %s failed", self.db_name)
            return False
        return True

    def get_database(self) -> AsyncIOMotorDatabase:
        """
        Raises:
            RuntimeError: If ``connect`` has not succeeded.
        """
        if self.database is None:
            raise RuntimeError(f"Not connected to MongoDB database {self.db_name!r}")
        return self.database

    def get_videos_collection(self) -> AsyncIOMotorCollection:
        """
        Get the videos collection.

        Documents hold the video id (as ``_id``), owner, title, description,
        the storage keys of the processed video and thumbnail, and timestamps.
        """
        return self.get_database()[VIDEOS_COLLECTION]

    async def create_indexes(self) -> None:
        """Create the indexes backing ownership lookups and per-user listings."""
        await self.get_videos_collection().create_indexes(VIDEO_INDEXES)
        logger.info("Ensured %d indexes on %s", len(VIDEO_INDEXES), VIDEOS_COLLECTION)


# Process-wide client, set by init_db and cleared by close_db
_active_client: dict[str, DatabaseClient] = {}


async def init_db(settings: Settings | None = None) -> DatabaseClient:
    """
    Connect, ensure indexes and register the client for ``get_db_client``.

    Called once from the FastAPI lifespan. A second call returns the client
    that is already registered.

    Raises:
        RuntimeError: If MongoDB stays unreachable after every retry.
    """
    if "client" in _active_client:
        return _active_client["client"]

    client = DatabaseClient(settings or get_settings())
    if not await client.connect():
        raise RuntimeError(f"Could not connect to MongoDB database {client.db_name!r}")

    await client.create_indexes()
    _active_client["client"] = client
    return client


async def close_db() -> None:
    """Close and unregister the process-wide client, if any."""
    client = _active_client.pop("client", None)
    if client is not None:
        await client.close()


def get_db_client() -> DatabaseClient:
    """
    Return the client registered by ``init_db``.

    Raises:
        RuntimeError: If ``init_db`` has not run.
    """
    try:
        return _active_client["client"]
    except KeyError:
        raise RuntimeError("MongoDB client is not initialized; init_db() runs at application startup") from None
