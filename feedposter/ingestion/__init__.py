"""
FeedPoster Ingestion
====================

Feed download/parsing and description markup removal.
"""

from .feed_fetcher import FeedFetcher
from .content_cleaner import ContentCleaner

__all__ = ["FeedFetcher", "ContentCleaner"]
