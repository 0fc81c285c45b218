"""
MongoDB client lifecycle.

This module provides:
- MongoDB client connection via Motor (async driver)
- Database/collection handles for repositories
- Health check utilities
"""

import logging
from typing import Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import PyMongoError

from mongorepo.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Global MongoDB client instance and the settings it was created from
_client: Optional[AsyncIOMotorClient] = None
_settings: Optional[Settings] = None


def init_client(settings: Optional[Settings] = None) -> AsyncIOMotorClient:
    """
    Create the MongoDB client. Safe to call again; the existing client is kept.
    """
    global _client, _settings

    if _client is not None:
        return _client

    _settings = settings or get_settings()
    mongo = _settings.mongodb

    _client = AsyncIOMotorClient(
        mongo.url,
        tz_aware=mongo.tz_aware,
        serverSelectionTimeoutMS=mongo.server_selection_timeout_ms,
        appname=mongo.app_name,
    )
    logger.info(f"MongoDB client created for {sanitize_mongodb_url(mongo.url)}")
    return _client


def close_client() -> None:
    """
    Close MongoDB connection.
    """
    global _client, _settings
    if _client is not None:
        _client.close()
        _client = None
        _settings = None
        logger.info("MongoDB client closed")


def get_client() -> AsyncIOMotorClient:
    """
    Get the MongoDB client instance.
    """
    if _client is None:
        raise RuntimeError("MongoDB client not initialized. Call init_client() first.")
    return _client


def get_database(name: Optional[str] = None) -> AsyncIOMotorDatabase:
    """
    Get a database handle, defaulting to the configured database.
    """
    client = get_client()
    return client[name or _settings.mongodb.database]


def get_collection(name: str, database: Optional[str] = None) -> AsyncIOMotorCollection:
    return get_database(database)[name]


async def check_connection() -> bool:
    """
    Check if MongoDB connection is healthy.
    """
    if _client is None:
        return False

    try:
        await _client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False


def get_connection_info() -> dict:
    """
    Get database connection information and status.
    """
    settings = _settings or get_settings()

    return {
        "status": "connected" if _client is not None else "disconnected",
        "url": sanitize_mongodb_url(settings.mongodb.url),
        "database": settings.mongodb.database,
    }


def sanitize_mongodb_url(url: str) -> str:
    """
    Hide password in MongoDB URL for safe logging.
    """
    if "@" not in url:
        return url

    # Handle mongodb+srv:// or mongodb://
    if "://" in url:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            credentials, host = rest.rsplit("@", 1)
            if ":" in credentials:
                username = credentials.split(":", 1)[0]
                return f"{protocol}://{username}:***@{host}"
    return url
