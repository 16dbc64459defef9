"""
Checkpoint Repository
=====================

Repository for the per-feed "last processed" timestamps that drive
deduplication. Timestamps are stored as UTC epoch seconds and only ever move
forward.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Checkpoint
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import CheckpointStoreError, ErrorCode


class CheckpointRepository:
    """Repository for reading and advancing feed checkpoints."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize checkpoint repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("checkpoint_repository")

    def get(self, feed_id: str) -> Optional[Checkpoint]:
        """Get the checkpoint of a feed.

        Args:
            feed_id: Configured feed id

        Returns:
            Checkpoint, or None if the feed was never processed

        Raises:
            CheckpointStoreError: If the store cannot be read
        """
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT feed_id, last_processed_at, updated_at FROM feeds_data WHERE feed_id = ?",
                    (feed_id,),
                ).fetchone()

        except sqlite3.Error as e:
            self.logger.error(f"Failed to read checkpoint for {feed_id}: {e}")
            raise CheckpointStoreError(
                f"Failed to read checkpoint for {feed_id}: {e}",
                feed_id=feed_id,
                error_code=ErrorCode.DATABASE_READ,
            ) from e

        return self._row_to_checkpoint(row) if row else None

    def upsert(self, feed_id: str, timestamp: datetime) -> bool:
        """Record a new last processed timestamp for a feed.

        The stored value never moves backwards: a timestamp that is not newer
        than the current one leaves the row untouched.

        Args:
            feed_id: Configured feed id
            timestamp: Publish time of the newest handled item

        Returns:
            True if the stored checkpoint changed

        Raises:
            CheckpointStoreError: If the store cannot be written
        """
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        epoch = int(timestamp.timestamp())

        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO feeds_data (feed_id, last_processed_at)
                    VALUES (?, ?)
                    ON CONFLICT(feed_id) DO UPDATE SET
                        last_processed_at = excluded.last_processed_at,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE excluded.last_processed_at > feeds_data.last_processed_at
                """,
                    (feed_id, epoch),
                )
                changed = cursor.rowcount > 0

        except sqlite3.Error as e:
            self.logger.error(f"Failed to write checkpoint for {feed_id}: {e}")
            raise CheckpointStoreError(
                f"Failed to write checkpoint for {feed_id}: {e}",
                feed_id=feed_id,
                error_code=ErrorCode.DATABASE_WRITE,
            ) from e

        if changed:
            self.logger.info(
                f"Checkpoint for {feed_id} advanced to {timestamp.isoformat()}",
                extra={"feed_id": feed_id, "last_processed_at": epoch},
            )
        else:
            self.logger.debug(f"Checkpoint for {feed_id} already at or past {timestamp.isoformat()}")
        return changed

    def list_all(self) -> List[Checkpoint]:
        """Get every stored checkpoint, ordered by feed id.

        Raises:
            CheckpointStoreError: If the store cannot be read
        """
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT feed_id, last_processed_at, updated_at FROM feeds_data ORDER BY feed_id"
                ).fetchall()

        except sqlite3.Error as e:
            self.logger.error(f"Failed to list checkpoints: {e}")
            raise CheckpointStoreError(
                f"Failed to list checkpoints: {e}",
                error_code=ErrorCode.DATABASE_READ,
            ) from e

        return [self._row_to_checkpoint(row) for row in rows]

    def reset(self, feed_id: str) -> bool:
        """Forget a feed's checkpoint so the next run treats it as new.

        Returns:
            True if a checkpoint was deleted

        Raises:
            CheckpointStoreError: If the store cannot be written
        """
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute("DELETE FROM feeds_data WHERE feed_id = ?", (feed_id,))
                deleted = cursor.rowcount > 0

        except sqlite3.Error as e:
            self.logger.error(f"Failed to reset checkpoint for {feed_id}: {e}")
            raise CheckpointStoreError(
                f"Failed to reset checkpoint for {feed_id}: {e}",
                feed_id=feed_id,
                error_code=ErrorCode.DATABASE_WRITE,
            ) from e

        if deleted:
            self.logger.info(f"Checkpoint for {feed_id} reset")
        return deleted

    def _row_to_checkpoint(self, row: sqlite3.Row) -> Checkpoint:
        """Convert database row to Checkpoint model."""
        updated_at = None
        if row["updated_at"]:
            updated_at = datetime.fromisoformat(str(row["updated_at"])).replace(tzinfo=timezone.utc)

        return Checkpoint(
            feed_id=row["feed_id"],
            last_processed_at=datetime.fromtimestamp(row["last_processed_at"], tz=timezone.utc),
            updated_at=updated_at,
        )
