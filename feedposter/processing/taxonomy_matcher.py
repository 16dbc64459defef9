"""
Taxonomy Matcher
================

Matches feed items against the blog's categories and tags. A term matches
when it appears as a whole word, ignoring case, in the item title or in the
text of its description. Items that match no category and no tag are
dropped.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Tuple

from ..database.models import DatedItem, FeedItem, Taxonomy, clean_names
from ..ingestion.content_cleaner import ContentCleaner
from ..utils.logging import get_logger_for_component

logger = get_logger_for_component("taxonomy_matcher")


@dataclass(frozen=True)
class MatchResult:
    """A dated item with the categories and tags it matched."""
    dated_item: DatedItem
    categories: Tuple[str, ...]
    tags: Tuple[str, ...]

    @property
    def item(self) -> FeedItem:
        return self.dated_item.item

    @property
    def published_at(self) -> datetime:
        return self.dated_item.published_at


@lru_cache(maxsize=4096)
def _term_pattern(term: str) -> Pattern:
    # \b fails next to non-word characters, so "C++" or ".NET" need look-arounds
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", re.IGNORECASE)


def term_matches(term: str, text: str) -> bool:
    """Check whether ``term`` occurs in ``text`` as a whole word, ignoring case."""
    term = term.strip()
    if not term or not text:
        return False
    return _term_pattern(term).search(text) is not None


def _matching_terms(terms: Tuple[str, ...], title: str, body: str) -> Tuple[str, ...]:
    return tuple(
        term for term in terms if term_matches(term, title) or term_matches(term, body)
    )


def match_items(
    items: Iterable[DatedItem],
    categories: Iterable[str],
    tags: Iterable[str],
    cleaner: Optional[ContentCleaner] = None,
) -> List[MatchResult]:
    """Match items against category and tag names.

    Args:
        items: Items selected by the dedup filter
        categories: Blog category names
        tags: Blog tag names
        cleaner: Markup stripper used on descriptions

    Returns:
        One MatchResult per item that matched at least one name, in input
        order. Matched names are listed in sorted order.
    """
    category_terms = clean_names(categories)
    tag_terms = clean_names(tags)
    cleaner = cleaner or ContentCleaner()

    results = []
    for dated_item in items:
        item = dated_item.item
        body = cleaner.strip_markup(item.description)

        matched_categories = _matching_terms(category_terms, item.title, body)
        matched_tags = _matching_terms(tag_terms, item.title, body)

        if not matched_categories and not matched_tags:
            logger.debug(f"No taxonomy match for '{item.title[:50]}'")
            continue

        results.append(
            MatchResult(
                dated_item=dated_item,
                categories=matched_categories,
                tags=matched_tags,
            )
        )

    logger.debug(f"Matched {len(results)} items")
    return results
