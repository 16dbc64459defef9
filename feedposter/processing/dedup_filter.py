"""
Dedup Filter
============

Selects the feed items published strictly after a feed's checkpoint.
Publish dates are parsed from the feed's own date strings with
python-dateutil and compared as timezone-aware UTC datetimes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Iterable, List, Optional

from dateutil.parser import parse as parse_date

from ..database.models import FeedItem, DatedItem
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DateParseError

# Common timezone abbreviations
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
}

logger = get_logger_for_component("dedup_filter")


@dataclass
class DedupResult:
    """Result of deduplicating one feed's items."""
    new_items: List[DatedItem] = field(default_factory=list)
    errors: List[DateParseError] = field(default_factory=list)

    @property
    def newest(self) -> Optional[datetime]:
        """Publish time of the newest selected item."""
        return latest_timestamp(self.new_items)


def parse_pub_date(raw: Optional[str], item_title: Optional[str] = None) -> datetime:
    """Parse a feed-native publish date into an aware UTC datetime.

    Args:
        raw: Date string as it appears in the feed (RFC 822, ISO 8601, ...)
        item_title: Title of the owning item, for error context

    Returns:
        Timezone-aware UTC datetime truncated to whole seconds, matching the
        resolution checkpoints are stored at; dates without a zone are taken
        as UTC

    Raises:
        DateParseError: If the string is empty or cannot be parsed
    """
    if raw is None or not str(raw).strip():
        raise DateParseError("Item has no publish date", raw_value=raw, item_title=item_title)

    try:
        dt = parse_date(str(raw).strip(), tzinfos=TZINFOS)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        # Converting edge dates such as year 1 with a positive offset overflows
        dt = dt.astimezone(timezone.utc)
    except (ValueError, OverflowError, TypeError) as e:
        raise DateParseError(
            f"Cannot parse publish date {raw!r}: {e}",
            raw_value=raw,
            item_title=item_title,
        ) from e

    return dt.replace(microsecond=0)


def select_new_items(items: Iterable[FeedItem], last_checkpoint: Optional[datetime]) -> DedupResult:
    """Keep items published strictly after the checkpoint.

    Items whose date cannot be parsed are skipped and reported in
    ``errors``; they never stop the rest of the batch.

    Args:
        items: Feed items in document order
        last_checkpoint: Feed checkpoint, or None if the feed was never processed

    Returns:
        DedupResult with the selected items in input order
    """
    if last_checkpoint is not None and last_checkpoint.tzinfo is None:
        last_checkpoint = last_checkpoint.replace(tzinfo=timezone.utc)

    result = DedupResult()
    for item in items:
        try:
            published_at = parse_pub_date(item.pub_date, item_title=item.title)
        except DateParseError as e:
            logger.warning(f"Skipping item with unreadable date: {e}")
            result.errors.append(e)
            continue

        if last_checkpoint is None or published_at > last_checkpoint:
            result.new_items.append(DatedItem(item=item, published_at=published_at))

    logger.debug(
        f"Selected {len(result.new_items)} new items"
        f" (checkpoint: {last_checkpoint.isoformat() if last_checkpoint else 'never'})"
    )
    return result


def latest_timestamp(items: Iterable[DatedItem]) -> Optional[datetime]:
    """Newest publish time among the items, or None for an empty sequence."""
    return max((item.published_at for item in items), default=None)
