"""
Feed Repository
===============

Repository pattern implementation for feed registry data, plus the status
tracker that records the outcome of every fetch attempt.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from pydantic import ValidationError as ModelValidationError

from ..database.connection import DatabaseConnection
from ..database.models import Feed, FeedStatus, truncate_title
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    DatabaseError,
    ErrorCode,
    FeedManagementError,
    PersistenceError,
    SetupError,
)


class FeedRepository:
    """Repository for managing feed records in the database."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize feed repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("feed_repository")

    def create_feed(self, feed: Feed) -> str:
        """Register a new feed.

        Args:
            feed: Feed object to create

        Returns:
            Feed ID

        Raises:
            FeedManagementError: If a feed with the same URL already exists
            DatabaseError: If database operation fails
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO feeds (
                        id, url, title, status, last_fetched, error_message, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        feed.id,
                        feed.url,
                        feed.title,
                        feed.status.value,
                        _to_db_time(feed.last_fetched),
                        feed.error_message,
                        _to_db_time(feed.created_at or datetime.now(timezone.utc)),
                    ),
                )
                conn.commit()

            self.logger.info(f"Created feed {feed.id}: {feed.url}")
            return feed.id

        except sqlite3.IntegrityError as e:
            raise FeedManagementError(
                f"Feed already registered: {feed.url}",
                error_code=ErrorCode.DUPLICATE_RESOURCE,
                user_message="This feed URL is already registered",
            ) from e
        except sqlite3.Error as e:
            self.logger.error(f"Failed to create feed: {e}")
            raise DatabaseError(
                f"Failed to create feed: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_feed_by_id(self, feed_id: str) -> Optional[Feed]:
        """Get feed by ID.

        Raises:
            DatabaseError: If the registry cannot be read
        """
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM feeds WHERE id = ?", (feed_id,)
                ).fetchone()

                return self._row_to_feed(row) if row else None

        except (sqlite3.Error, ModelValidationError) as e:
            raise DatabaseError(
                f"Failed to get feed {feed_id}: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_feed_by_url(self, url: str) -> Optional[Feed]:
        """Get feed by URL, or None if not registered."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM feeds WHERE url = ?", (url,)
                ).fetchone()

                return self._row_to_feed(row) if row else None

        except (sqlite3.Error, ModelValidationError) as e:
            raise DatabaseError(
                f"Failed to get feed by url {url}: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_active_feeds(self) -> List[Feed]:
        """Get every feed whose last fetch succeeded (or that was never fetched).

        Returns:
            Feeds with status ``active`` in registration order

        Raises:
            SetupError: If the feed list cannot be read at all
        """
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM feeds WHERE status = ? ORDER BY created_at, id",
                    (FeedStatus.ACTIVE.value,),
                ).fetchall()

                return [self._row_to_feed(row) for row in rows]

        except (sqlite3.Error, ModelValidationError) as e:
            self.logger.error(f"Failed to read active feeds: {e}")
            raise SetupError(f"Failed to fetch feeds: {e}") from e

    def list_feeds(self, status: Optional[FeedStatus] = None) -> List[Feed]:
        """List registered feeds, optionally filtered by status."""
        try:
            with self.db.get_connection() as conn:
                if status:
                    rows = conn.execute(
                        "SELECT * FROM feeds WHERE status = ? ORDER BY created_at, id",
                        (status.value,),
                    ).fetchall()
                else:
                    rows = conn.execute(
                        "SELECT * FROM feeds ORDER BY created_at, id"
                    ).fetchall()

                return [self._row_to_feed(row) for row in rows]

        except (sqlite3.Error, ModelValidationError) as e:
            raise DatabaseError(
                f"Failed to list feeds: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def update_feed(self, feed_id: str, **kwargs) -> bool:
        """Update feed fields.

        Args:
            feed_id: Feed ID
            **kwargs: Fields to update

        Returns:
            True if a row was updated

        Raises:
            PersistenceError: If the write fails
        """
        if not kwargs:
            return True

        fields = []
        values = []

        for field, value in kwargs.items():
            if field in ["title", "status", "last_fetched", "error_message"]:
                fields.append(f"{field} = ?")
                if isinstance(value, FeedStatus):
                    value = value.value
                elif isinstance(value, datetime):
                    value = _to_db_time(value)
                values.append(value)

        if not fields:
            self.logger.warning(f"No valid fields to update for feed {feed_id}")
            return False

        values.append(feed_id)
        query = f"UPDATE feeds SET {', '.join(fields)} WHERE id = ?"

        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(query, values)
                conn.commit()

                if cursor.rowcount > 0:
                    self.logger.debug(f"Updated feed {feed_id}")
                    return True

                self.logger.warning(f"No feed found with ID {feed_id}")
                return False

        except sqlite3.Error as e:
            self.logger.error(f"Failed to update feed {feed_id}: {e}")
            raise PersistenceError(
                f"Failed to update feed {feed_id}: {e}", feed_id=feed_id
            ) from e

    def get_feed_statistics(self) -> Dict[str, Any]:
        """Get feed counts by status."""
        try:
            with self.db.get_connection() as conn:
                stats = conn.execute(
                    """
                    SELECT
                        COUNT(*) as total_feeds,
                        SUM(CASE WHEN status = 'active' THEN 1 ELSE 0 END) as active_feeds,
                        SUM(CASE WHEN status = 'error' THEN 1 ELSE 0 END) as error_feeds
                    FROM feeds
                """
                ).fetchone()

                return {
                    "total_feeds": stats["total_feeds"] or 0,
                    "active_feeds": stats["active_feeds"] or 0,
                    "error_feeds": stats["error_feeds"] or 0,
                }

        except sqlite3.Error as e:
            self.logger.error(f"Failed to get feed statistics: {e}")
            return {}

    def _row_to_feed(self, row) -> Feed:
        """Convert database row to Feed object."""
        return Feed(
            id=row["id"],
            url=row["url"],
            title=row["title"],
            status=FeedStatus(row["status"]),
            last_fetched=row["last_fetched"],
            error_message=row["error_message"],
            created_at=row["created_at"],
        )


class FeedStatusTracker:
    """Records the outcome of each fetch attempt on the feed registry.

    Status is driven solely by the most recent attempt for a feed.
    """

    def __init__(self, feed_repository: FeedRepository):
        self.feeds = feed_repository
        self.logger = get_logger_for_component("status_tracker")

    def record_success(self, feed_id: str, parsed_title: Optional[str] = None) -> None:
        """Mark a feed active after a successful run.

        The stored title is replaced only when the feed declares a non-empty
        title different from the current one. Long titles are clipped.

        Raises:
            PersistenceError: If the registry write fails or the feed no
                longer exists
        """
        updates: Dict[str, Any] = {
            "status": FeedStatus.ACTIVE,
            "last_fetched": datetime.now(timezone.utc),
            "error_message": None,
        }

        title = truncate_title(parsed_title.strip()) if parsed_title else None
        if title:
            current = self._current_feed(feed_id)
            if current is None or current.title != title:
                updates["title"] = title

        if not self.feeds.update_feed(feed_id, **updates):
            raise PersistenceError(
                f"Feed {feed_id} was removed before its status could be recorded",
                feed_id=feed_id,
            )
        self.logger.debug(f"Recorded success for feed {feed_id}")

    def record_failure(self, feed_id: str, message: str) -> None:
        """Mark a feed errored. ``last_fetched`` keeps its previous value.

        Raises:
            PersistenceError: If the registry write fails
        """
        self.feeds.update_feed(
            feed_id, status=FeedStatus.ERROR, error_message=message
        )
        self.logger.debug(f"Recorded failure for feed {feed_id}: {message}")

    def reactivate(self, feed_id: str) -> bool:
        """Move an errored feed back to active so scheduled runs pick it up.

        Returns:
            True if the feed exists
        """
        updated = self.feeds.update_feed(
            feed_id, status=FeedStatus.ACTIVE, error_message=None
        )
        if updated:
            self.logger.info(f"Reactivated feed {feed_id}")
        return updated

    def _current_feed(self, feed_id: str) -> Optional[Feed]:
        try:
            return self.feeds.get_feed_by_id(feed_id)
        except DatabaseError as e:
            raise PersistenceError(
                f"Failed to read feed {feed_id} before status update: {e.message}",
                feed_id=feed_id,
            ) from e


def _to_db_time(value: Optional[datetime]) -> Optional[str]:
    """Store timestamps as ISO-8601 text."""
    return value.isoformat() if value else None
