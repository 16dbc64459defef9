"""
FeedPoster Database Schema
==========================

SQLite schema for per-feed processing state.

Tables:
- feeds_data: last processed timestamp per configured feed id
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"feeds_data"}


class DatabaseSchema:
    """Database schema manager for the FeedPoster SQLite database."""

    def __init__(self, db_path: str = "data/feeds_data.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        with sqlite3.connect(self.db_path) as conn:
            self._create_feeds_data_table(conn)
            self._run_migrations(conn)
            conn.commit()
            logger.info("Database schema created successfully")

    def _create_feeds_data_table(self, conn: sqlite3.Connection) -> None:
        """Create the checkpoint table. Timestamps are UTC epoch seconds."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS feeds_data (
                feed_id TEXT PRIMARY KEY,
                last_processed_at INTEGER NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _run_migrations(self, conn: sqlite3.Connection) -> None:
        """Upgrade databases written by older releases."""
        cursor = conn.execute("PRAGMA table_info(feeds_data)")
        columns = {column[1]: column[2] for column in cursor.fetchall()}

        # Older databases had no updated_at column
        if "updated_at" not in columns:
            logger.info("Adding updated_at column to feeds_data table")
            conn.execute("ALTER TABLE feeds_data ADD COLUMN updated_at TIMESTAMP")

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DROP TABLE IF EXISTS feeds_data")
            conn.commit()
            logger.info("All database tables dropped")

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                """
                )
                tables = {row[0] for row in cursor.fetchall()}

            missing = EXPECTED_TABLES - tables
            if missing:
                logger.error(f"Missing tables: {sorted(missing)}")
                return False

            logger.info("Database schema verification passed")
            return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False
