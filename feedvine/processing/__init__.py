"""
FeedVine Processing Module
==========================

Run orchestration for feed ingestion and the post-run heartbeat.
"""

from .pipeline import IngestionPipeline, PREVIEW_FEED_ID
from .heartbeat import HeartbeatNotifier

__all__ = [
    'IngestionPipeline',
    'PREVIEW_FEED_ID',
    'HeartbeatNotifier',
]
