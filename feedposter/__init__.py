"""
FeedPoster - RSS to Blog Publishing
===================================

Reads RSS/Atom feeds, keeps the items published since the last run, matches
them against the target blog's categories and tags, and publishes the matches
as blog posts over WordPress XML-RPC.

Main Components:
- Database: SQLite checkpoint store with connection pooling
- Configuration: YAML + environment variables with Pydantic validation
- Ingestion: feed fetching and markup removal
- Processing: deduplication, taxonomy matching, normalization, pipeline
- Blog: XML-RPC taxonomy source and publisher
"""

__version__ = "1.0.0"
__author__ = "FeedPoster Development Team"
__description__ = "Publish matching RSS items to a WordPress blog"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedPosterError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedPosterError",
]
