#!/usr/bin/env python3
"""
Database Utilities

Connection pool for the Postgres-backed high score store. Only used when
SCORE_STORE=postgres; the default in-memory store never touches it.

Configuration:
    DATABASE_URL, or DB_HOST / DB_NAME / DB_USER / DB_PASSWORD / DB_PORT
"""

import os
import logging
import threading
import time
from contextlib import contextmanager
from typing import Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION
# ============================================================================

def get_connection_string() -> str:
    """Build the connection string from DATABASE_URL or the DB_* variables"""
    url = os.environ.get('DATABASE_URL')
    if url:
        return url

    host = os.environ.get('DB_HOST', 'localhost')
    dbname = os.environ.get('DB_NAME', 'songquiz')
    user = os.environ.get('DB_USER', 'postgres')
    password = os.environ.get('DB_PASSWORD', '')
    port = os.environ.get('DB_PORT', '5432')
    sslmode = os.environ.get('DB_SSLMODE', 'prefer')
    return f"postgresql://{user}:{password}@{host}:{port}/{dbname}?sslmode={sslmode}"


# ============================================================================
# POOL
# ============================================================================

pool: Optional[ConnectionPool] = None
pool_init_lock = threading.Lock()


def init_connection_pool(max_retries=3, retry_delay=2):
    """
    Initialize the connection pool (thread-safe, no-op if already open)

    Returns:
        bool: True if successful, False otherwise
    """
    global pool

    with pool_init_lock:
        if pool is not None:
            logger.debug("Connection pool already initialized")
            return True

        for attempt in range(max_retries):
            try:
                logger.info(f"Initializing connection pool (attempt {attempt + 1}/{max_retries})...")
                pool = ConnectionPool(
                    get_connection_string(),
                    min_size=1,
                    max_size=5,
                    open=True,
                    timeout=30,
                    max_lifetime=1800,
                    max_idle=600,
                    kwargs={
                        'row_factory': dict_row,
                        'connect_timeout': 10,
                        'autocommit': False,
                        'prepare_threshold': None
                    }
                )

                with pool.connection() as conn:
                    with conn.cursor() as cur:
                        cur.execute("SELECT 1 as test")
                        cur.fetchone()
                logger.info("✓ Connection pool initialized successfully")
                return True

            except psycopg.Error as e:
                logger.error(f"✗ Connection pool initialization failed (attempt {attempt + 1}/{max_retries}): {e}")
                if pool is not None:
                    pool.close()
                    pool = None

                if attempt < max_retries - 1:
                    wait_time = retry_delay * (1.5 ** attempt)
                    logger.info(f"Retrying in {wait_time:.1f} seconds...")
                    time.sleep(wait_time)

        logger.error("Failed to initialize connection pool after all retries")
        return False


def close_connection_pool():
    """Close the connection pool"""
    global pool

    with pool_init_lock:
        if pool:
            logger.info("Closing connection pool...")
            pool.close()
            pool = None
            logger.info("Connection pool closed")


def get_pool_stats():
    """Get current connection pool statistics, or None if no pool is open"""
    if pool is None:
        return None

    stats = pool.get_stats()
    return {
        'pool_size': stats.get('pool_size', 0),
        'pool_available': stats.get('pool_available', 0),
        'requests_waiting': stats.get('requests_waiting', 0)
    }


# ============================================================================
# CONNECTION MANAGER
# ============================================================================

@contextmanager
def get_db_connection():
    """
    Get a pooled database connection (lazy pool initialization)

    Returns:
        Database connection (context manager); the transaction commits on
        normal exit and rolls back on exception
    """
    if pool is None:
        logger.info("Connection pool not initialized, initializing now...")
        if not init_connection_pool():
            raise RuntimeError("Failed to initialize connection pool")

    try:
        with pool.connection() as conn:
            yield conn
    except psycopg.OperationalError as e:
        logger.error(f"Database operational error: {e}")
        raise
