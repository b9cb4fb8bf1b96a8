"""
Article Repository
==================

Repository for the article store. Articles are keyed by canonical URL and
written with insert-or-ignore semantics: the first write for a URL wins and
later writes for the same URL leave the stored row untouched.
"""

import sqlite3
from typing import List, Optional, Dict, Any

from ..database.models import Article, Category, UpsertOutcome
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, PersistenceError, ErrorCode


_INSERT_ARTICLE = """
    INSERT INTO articles (id, feed_id, title, url, description,
                          published_at, guid, category, created_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(url) DO NOTHING
"""


class ArticleRepository:
    """Repository for Article persistence with database abstraction."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize article repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("article_repository")

    def upsert_many(self, feed_id: str, articles: List[Article]) -> UpsertOutcome:
        """Insert a feed's articles, ignoring URLs that are already stored.

        Each row is written independently on one connection; a row that fails
        for a reason other than duplication is recorded in the outcome and the
        remaining rows are still written.

        Args:
            feed_id: Feed the batch belongs to
            articles: Normalized articles

        Returns:
            Counts of inserted, duplicate and rejected rows

        Raises:
            PersistenceError: If the batch as a whole cannot be written
        """
        outcome = UpsertOutcome(attempted=len(articles))
        if not articles:
            return outcome

        logger = self.logger.bind(feed_id=feed_id)

        try:
            with self.db.get_connection() as conn:
                for article in articles:
                    try:
                        cursor = conn.execute(_INSERT_ARTICLE, self._article_params(article))
                    except sqlite3.IntegrityError as e:
                        outcome.errors.append(f"{article.url or article.guid}: {e}")
                        logger.warning(f"Rejected article {article.url!r}: {e}")
                        continue

                    if cursor.rowcount > 0:
                        outcome.inserted += 1
                    else:
                        outcome.duplicates += 1

                conn.commit()

        except sqlite3.Error as e:
            raise PersistenceError(
                f"Failed to upsert articles: {e}", feed_id=feed_id
            ) from e

        logger.info(
            f"Upserted {outcome.attempted} articles: {outcome.inserted} new, "
            f"{outcome.duplicates} already stored, {outcome.rejected} rejected"
        )
        return outcome

    def get_by_url(self, url: str) -> Optional[Article]:
        """Get the stored article for a canonical URL."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM articles WHERE url = ?", (url,)
                ).fetchone()

                return self._row_to_article(row) if row else None

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get article by url: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_article(self, article_id: str) -> Optional[Article]:
        """Get article by ID."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM articles WHERE id = ?",
                    (article_id,)
                ).fetchone()

                return self._row_to_article(row) if row else None

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get article {article_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_articles_by_feed(self, feed_id: str, limit: int = 100) -> List[Article]:
        """Get a feed's articles, newest first."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM articles
                    WHERE feed_id = ?
                    ORDER BY published_at DESC
                    LIMIT ?
                    """,
                    (feed_id, limit)
                ).fetchall()

                return [self._row_to_article(row) for row in rows]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get articles for feed {feed_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_uncategorized(self, limit: int = 50) -> List[Article]:
        """Get articles that have not been categorized yet, oldest first."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM articles
                    WHERE category IS NULL
                    ORDER BY created_at, id
                    LIMIT ?
                    """,
                    (limit,)
                ).fetchall()

                return [self._row_to_article(row) for row in rows]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get uncategorized articles: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def set_category(self, article_id: str, category: Category) -> bool:
        """Assign a category to an article that has none yet.

        Returns:
            True if the category was stored, False if the article already had
            one or does not exist
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    "UPDATE articles SET category = ? WHERE id = ? AND category IS NULL",
                    (Category(category).value, article_id)
                )
                conn.commit()
                return cursor.rowcount > 0

        except sqlite3.Error as e:
            raise PersistenceError(
                f"Failed to set category for article {article_id}: {e}"
            ) from e

    def count_articles(self, feed_id: Optional[str] = None) -> int:
        """Count stored articles, optionally for one feed."""
        try:
            with self.db.get_connection() as conn:
                if feed_id:
                    row = conn.execute(
                        "SELECT COUNT(*) FROM articles WHERE feed_id = ?", (feed_id,)
                    ).fetchone()
                else:
                    row = conn.execute("SELECT COUNT(*) FROM articles").fetchone()
                return row[0]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to count articles: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_category_counts(self) -> Dict[str, int]:
        """Count stored articles per category (``None`` key for pending)."""
        with self.db.get_connection() as conn:
            rows = conn.execute(
                "SELECT category, COUNT(*) AS n FROM articles GROUP BY category"
            ).fetchall()
        return {row["category"]: row["n"] for row in rows}

    @staticmethod
    def _article_params(article: Article) -> tuple:
        return (
            article.id,
            article.feed_id,
            article.title,
            article.url,
            article.description,
            article.published_at.isoformat(),
            article.guid,
            article.category.value if article.category else None,
            article.created_at.isoformat() if article.created_at else None,
        )

    def _row_to_article(self, row) -> Article:
        data: Dict[str, Any] = dict(row)
        return Article(**data)
