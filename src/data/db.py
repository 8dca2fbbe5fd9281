"""
Database Connection
===================

Shared psycopg2 connection pool for the repository and the vector store.

psycopg2 is synchronous; async callers run the functions that use
get_connection() inside asyncio.to_thread().
"""

import logging
from contextlib import contextmanager
from typing import Optional

from psycopg2 import pool as pg_pool

from .config import DatabaseConfig, get_settings

logger = logging.getLogger(__name__)

_pool: Optional[pg_pool.ThreadedConnectionPool] = None


def get_pool(config: Optional[DatabaseConfig] = None) -> pg_pool.ThreadedConnectionPool:
    """Get or create the connection pool (lazy singleton)."""
    global _pool
    if _pool is not None:
        return _pool

    config = config or get_settings().database
    _pool = pg_pool.ThreadedConnectionPool(
        config.pool_min_size,
        config.pool_max_size,
        **config.connection_dict,
    )
    logger.info(f"DB pool created: {config.host}:{config.port}/{config.name}")
    return _pool


def close_pool():
    """Close the connection pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("DB pool closed")


@contextmanager
def get_connection(pool: Optional[pg_pool.ThreadedConnectionPool] = None):
    """
    Borrow a connection from the pool.

    Commits when the block exits cleanly, rolls back otherwise.
    """
    pool = pool or get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)
