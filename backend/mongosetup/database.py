"""
MongoDB connection management.

This module provides:
- One cached pymongo client per connection string
- Database resolution from the connection string path
- Health check utilities
"""

import logging
import threading

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

# Global MongoDB client instances keyed by connection string
_clients: dict[str, MongoClient] = {}
_clients_lock = threading.Lock()


def get_client(url: str, server_selection_timeout_ms: int = 5000) -> MongoClient:
    """
    Get the MongoDB client for a connection string, creating it on first use.

    pymongo connects lazily, so creating the client performs no I/O.
    """
    client = _clients.get(url)
    if client is not None:
        return client

    with _clients_lock:
        client = _clients.get(url)
        if client is None:
            client = MongoClient(url, serverSelectionTimeoutMS=server_selection_timeout_ms)
            _clients[url] = client
            logger.info(f"Created MongoDB client for {sanitize_mongodb_url(url)}")
    return client


def get_database(
    url: str,
    default_database: str,
    server_selection_timeout_ms: int = 5000,
) -> Database:
    """
    Get the database named in the connection string path, or the default.
    """
    client = get_client(url, server_selection_timeout_ms)
    return client.get_default_database(default=default_database)


def check_db_connection(url: str) -> bool:
    """
    Check if MongoDB connection is healthy.
    """
    try:
        get_client(url).admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"MongoDB ping failed for {sanitize_mongodb_url(url)}: {e}")
        return False


def get_db_info(url: str, default_database: str) -> dict:
    """
    Get database connection information and status.
    """
    database = get_database(url, default_database)

    return {
        "status": "connected" if check_db_connection(url) else "disconnected",
        "url": sanitize_mongodb_url(url),
        "database": database.name,
    }


def close_all() -> None:
    """
    Close every cached MongoDB client.
    """
    with _clients_lock:
        for client in _clients.values():
            client.close()
        _clients.clear()


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
