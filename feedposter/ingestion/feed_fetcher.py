"""
Feed Fetcher
============

Downloads an RSS/Atom document with ``requests`` and parses it with
``feedparser`` into a FeedDocument. Each fetch is a single attempt: failures
are reported to the caller and never retried.
"""

import time
from typing import Any, Optional, List

import feedparser
import requests

from .. import __version__
from ..database.models import FeedDocument, FeedItem, Enclosure
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FeedFetchError, ErrorCode

DEFAULT_USER_AGENT = f"FeedPoster/{__version__}"

ACCEPT_HEADER = "application/rss+xml, application/atom+xml, application/xml, text/xml;q=0.9, */*;q=0.8"


class FeedFetcher:
    """Fetches and parses feeds over HTTP."""

    def __init__(self, session: Optional[requests.Session] = None, user_agent: str = DEFAULT_USER_AGENT):
        """Initialize feed fetcher.

        Args:
            session: Session to use; a new one is created when omitted
            user_agent: User-Agent header sent with every request
        """
        self.logger = get_logger_for_component("feed_fetcher")

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": user_agent,
                "Accept": ACCEPT_HEADER,
            }
        )

    def fetch(self, url: str, timeout: int) -> FeedDocument:
        """Fetch and parse a feed.

        Args:
            url: Feed URL
            timeout: Connect and read timeout in seconds

        Returns:
            Parsed feed with items in document order

        Raises:
            FeedFetchError: On network errors, timeouts, non-2xx responses
                or documents that are not feeds
        """
        self.logger.info(f"Fetching feed: {url}")
        start_time = time.time()

        try:
            response = self.session.get(url, timeout=timeout)
            response.raise_for_status()

        except requests.Timeout as e:
            raise FeedFetchError(
                f"Timed out after {timeout}s fetching {url}",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise FeedFetchError(
                f"HTTP {status} fetching {url}",
                feed_url=url,
                error_code=ErrorCode.FEED_HTTP_ERROR,
                context={"status_code": status},
            ) from e
        except (requests.exceptions.MissingSchema, requests.exceptions.InvalidURL) as e:
            raise FeedFetchError(
                f"Invalid feed URL {url}: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_INVALID_URL,
            ) from e
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Failed to fetch feed {url}: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        self.logger.debug(
            f"Feed fetched in {time.time() - start_time:.2f}s, size: {len(response.content)} bytes"
        )

        # feedparser only looks up lower-case header names
        headers = {name.lower(): value for name, value in response.headers.items()}
        parsed = feedparser.parse(response.content, response_headers=headers)
        entries = getattr(parsed, "entries", None)

        if entries is None or (parsed.bozo and not entries):
            reason = getattr(parsed, "bozo_exception", "no entries")
            raise FeedFetchError(
                f"Not a parsable feed at {url}: {reason}",
                feed_url=url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )

        if parsed.bozo:
            # Many feeds have minor formatting issues; keep what parsed
            self.logger.warning(f"Feed parsing warning for {url}: {parsed.bozo_exception}")

        items = [self._extract_item(entry) for entry in entries]
        title = parsed.feed.get("title", "") if hasattr(parsed, "feed") else ""

        self.logger.info(f"Parsed {len(items)} items from {url}")
        return FeedDocument(url=url, title=title or "", items=items)

    def _extract_item(self, entry: Any) -> FeedItem:
        """Convert a feedparser entry into a FeedItem."""
        description = entry.get("description") or entry.get("summary") or ""
        if not description:
            content = entry.get("content") or []
            if content:
                description = content[0].get("value", "") or ""

        pub_date = entry.get("published") or entry.get("updated") or None

        return FeedItem(
            title=entry.get("title", "") or "",
            description=description,
            link=entry.get("link", "") or "",
            pub_date=pub_date,
            enclosure=self._extract_enclosure(entry),
        )

    def _extract_enclosure(self, entry: Any) -> Optional[Enclosure]:
        """Return the first enclosure of an entry, if it has one."""
        enclosures: List[Any] = entry.get("enclosures") or []
        for enclosure in enclosures:
            href = enclosure.get("href") or enclosure.get("url")
            if href:
                return Enclosure(url=href, type=enclosure.get("type", "") or "")
        return None
