"""
FeedVine Input Validators
=========================

Validation utilities for feed URLs and categorization requests.
"""

import re
from urllib.parse import urlparse, urlunparse
from typing import Optional

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and normalization utilities."""

    # Allowed schemes for RSS feeds
    ALLOWED_SCHEMES = {"http", "https"}

    # Common RSS/Atom feed patterns
    RSS_PATTERNS = [
        r"\.rss$", r"\.xml$", r"\.atom$",
        r"/rss/?$", r"/feed/?$", r"/feeds/?$",
        r"/atom/?$", r"/rss\.xml$", r"/feed\.xml$",
    ]

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate and normalize an RSS feed (or website) URL.

        Args:
            url: URL to validate

        Returns:
            Normalized URL

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = url.strip()

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ValidationError(
                f"Invalid URL format: {e}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            ) from e

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                "URL scheme must be http or https",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        return urlunparse(
            parsed._replace(
                scheme=parsed.scheme.lower(),
                netloc=parsed.netloc.lower(),
                path=parsed.path or "/",
                fragment="",
            )
        )

    @classmethod
    def is_likely_feed_url(cls, url: str) -> bool:
        """Check if URL is likely an RSS/Atom feed."""
        url_lower = url.lower()
        return any(re.search(pattern, url_lower) for pattern in cls.RSS_PATTERNS)


class ContentValidator:
    """Validation for text submitted to the categorizer."""

    MAX_TITLE_LENGTH = 1000
    MAX_DESCRIPTION_LENGTH = 4000

    @classmethod
    def validate_title(cls, title: Optional[str]) -> str:
        """Validate an article title for categorization.

        Raises:
            ValidationError: If the title is missing or empty
        """
        if not title or not isinstance(title, str) or not title.strip():
            raise ValidationError(
                "Title is required",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="title",
                user_message="Title is required",
            )

        return title.strip()[: cls.MAX_TITLE_LENGTH]

    @classmethod
    def clean_description(cls, description: Optional[str]) -> str:
        """Normalize an optional description, truncating very long bodies."""
        if not description or not isinstance(description, str):
            return ""
        return description.strip()[: cls.MAX_DESCRIPTION_LENGTH]
