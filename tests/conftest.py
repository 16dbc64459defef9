"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and test doubles for FeedPoster tests.
"""

import pytest
import tempfile
import os
import sys
from datetime import datetime, timezone, timedelta
from email.utils import format_datetime
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from feedposter.config.settings import FeedPosterSettings, FeedSettings
from feedposter.database.connection import DatabaseConnection
from feedposter.database.models import FeedDocument, FeedItem, Enclosure, Taxonomy
from feedposter.database.schema import DatabaseSchema
from feedposter.storage.checkpoint_repository import CheckpointRepository
from feedposter.utils.exceptions import FeedFetchError, PublishError, TaxonomyError


# Reference instant used across tests
T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def rfc822(dt: datetime) -> str:
    """Render a datetime the way RSS 2.0 pubDate does."""
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def make_item(title="Untitled", description="", published=T0, link=None, enclosure=None) -> FeedItem:
    """Build a feed item with an RFC 822 publish date."""
    return FeedItem(
        title=title,
        description=description,
        link=link or f"https://news.example.com/{title.lower().replace(' ', '-')}",
        pub_date=rfc822(published) if isinstance(published, datetime) else published,
        enclosure=enclosure,
    )


# ============================================================================
# Test doubles
# ============================================================================


class FakeFetcher:
    """Feed fetcher returning canned documents or errors by URL."""

    def __init__(self, documents=None):
        self.documents = documents or {}
        self.calls = []

    def fetch(self, url, timeout):
        self.calls.append((url, timeout))
        result = self.documents.get(url)
        if result is None:
            raise FeedFetchError(f"HTTP 404 fetching {url}", feed_url=url)
        if isinstance(result, Exception):
            raise result
        return result


class FakeBlog:
    """Blog double recording publish requests."""

    def __init__(self, categories=(), tags=(), fail_titles=(), taxonomy_error=None):
        self.taxonomy = Taxonomy.from_names(categories, tags)
        self.fail_titles = set(fail_titles)
        self.taxonomy_error = taxonomy_error
        self.published = []
        self.taxonomy_calls = 0

    def fetch_taxonomy(self):
        self.taxonomy_calls += 1
        if self.taxonomy_error:
            raise TaxonomyError(self.taxonomy_error)
        return self.taxonomy

    def publish(self, post):
        if post.title in self.fail_titles:
            raise PublishError("fault 500: Internal error", post_title=post.title)
        self.published.append(post)
        return str(100 + len(self.published))


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def temp_db():
    """Temporary database file with the schema created."""
    temp_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_path = temp_file.name
    temp_file.close()

    DatabaseSchema(db_path).create_tables()

    yield db_path

    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def db_connection(temp_db):
    """Create a database connection manager for testing."""
    connection = DatabaseConnection(temp_db, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def checkpoint_repo(db_connection):
    """Checkpoint repository over the temporary database."""
    return CheckpointRepository(db_connection)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_feed():
    """A single configured feed."""
    return FeedSettings(id="tech-news", name="Tech News", url="https://news.example.com/rss.xml")


@pytest.fixture
def make_settings(tmp_path):
    """Factory for settings pointing at temporary paths."""

    def _make(feeds=None, **processing):
        return FeedPosterSettings(
            blog={
                "xmlrpc_url": "https://blog.example.com/xmlrpc.php",
                "username": "poster",
                "password": "secret",
            },
            feeds=feeds or [],
            database={"path": str(tmp_path / "feeds_data.db")},
            logging={"file_path": None, "console_logging": False},
            processing=processing,
        )

    return _make


@pytest.fixture
def sample_document():
    """Feed document with three items around T0."""
    return FeedDocument(
        url="https://news.example.com/rss.xml",
        title="Tech News",
        items=[
            make_item("Old Python release notes", "Python 3.11 is out", T0 - timedelta(hours=1)),
            make_item("Python 3.13 lands", "<p>The new <b>Python</b> release</p>", T0 + timedelta(hours=1)),
            make_item("Gardening tips", "Tomatoes in spring", T0 + timedelta(hours=2)),
        ],
    )


@pytest.fixture
def image_enclosure():
    return Enclosure(url="https://cdn.example.com/photo.jpg", type="image/jpeg")
