"""
Item Normalizer
===============

Turns a matched feed item into the HTML body that gets published: an
attribution line linking back to the source, an inline image for image
enclosures, then the description with all markup removed.
"""

import html
import unicodedata
from typing import Optional

from ..config.settings import FeedSettings
from ..database.models import NormalizedItem
from ..ingestion.content_cleaner import ContentCleaner
from .taxonomy_matcher import MatchResult

ATTRIBUTION_TEMPLATE = 'From <a href="{link}" target="_new">{name}</a>:<br /><br />\n\n'
IMAGE_TEMPLATE = '<img src="{url}" />\n\n'


def _nfc(text: str) -> str:
    return unicodedata.normalize("NFC", text or "")


class ItemNormalizer:
    """Builds publishable bodies for matched items."""

    def __init__(self, cleaner: Optional[ContentCleaner] = None):
        self.cleaner = cleaner or ContentCleaner()

    def normalize(self, feed: FeedSettings, match: MatchResult) -> NormalizedItem:
        """Build the publishable form of a matched item.

        Args:
            feed: Feed the item came from; its name labels the attribution link
            match: Matched item

        Returns:
            NormalizedItem with an HTML body
        """
        item = match.item

        body = ATTRIBUTION_TEMPLATE.format(
            link=html.escape(item.link, quote=True),
            name=html.escape(feed.name, quote=True),
        )

        if item.enclosure is not None and item.enclosure.is_image:
            body += IMAGE_TEMPLATE.format(url=html.escape(item.enclosure.url, quote=True))

        text = self.cleaner.strip_markup(item.description)
        body += html.escape(text, quote=False)

        return NormalizedItem(
            title=_nfc(item.title),
            body=_nfc(body),
            link=item.link,
            published_at=match.published_at,
            categories=match.categories,
            tags=match.tags,
        )


def normalize(feed: FeedSettings, match: MatchResult) -> NormalizedItem:
    """Quick function to normalize a single matched item."""
    return ItemNormalizer().normalize(feed, match)
