"""
Feed Processing Pipeline
========================

Drives one run over the configured feeds. Each feed goes through

    Fetching -> Deduping -> Matching -> Publishing -> Checkpointing -> Done

and any stage may end in Failed. A failed feed never stops the others; a
failed publish never stops the rest of its batch.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from ..config.settings import FeedPosterSettings, FeedSettings, CheckpointPolicy
from ..database.models import BlogPost, DatedItem, Taxonomy
from ..storage.checkpoint_repository import CheckpointRepository
from ..blog.client import build_post
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    FeedPosterError,
    FeedError,
    CheckpointStoreError,
    DateParseError,
    PublishError,
    TaxonomyError,
)

from .dedup_filter import select_new_items, latest_timestamp
from .taxonomy_matcher import match_items, MatchResult
from .item_normalizer import ItemNormalizer


class FeedStage(str, Enum):
    """Processing stages of a single feed."""
    FETCHING = "fetching"
    DEDUPING = "deduping"
    MATCHING = "matching"
    PUBLISHING = "publishing"
    CHECKPOINTING = "checkpointing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FeedRunResult:
    """Outcome of processing one feed."""
    feed_id: str
    stage: FeedStage = FeedStage.FETCHING
    failed_stage: Optional[FeedStage] = None
    items_fetched: int = 0
    items_new: int = 0
    items_matched: int = 0
    items_published: int = 0
    items_failed: int = 0
    date_errors: List[DateParseError] = field(default_factory=list)
    publish_errors: List[PublishError] = field(default_factory=list)
    fatal_error: Optional[FeedPosterError] = None
    checkpoint_target: Optional[datetime] = None
    checkpoint_advanced_to: Optional[datetime] = None
    post_ids: List[str] = field(default_factory=list)
    planned_posts: List[BlogPost] = field(default_factory=list)
    processing_time_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.stage == FeedStage.DONE

    @property
    def has_warnings(self) -> bool:
        """Non-fatal problems: unreadable dates or failed publishes."""
        return bool(self.date_errors or self.publish_errors)

    def fail(self, error: FeedPosterError) -> None:
        self.failed_stage = self.stage
        self.stage = FeedStage.FAILED
        self.fatal_error = error


@dataclass
class RunSummary:
    """Outcome of a whole run."""
    feeds: List[FeedRunResult] = field(default_factory=list)
    taxonomy_error: Optional[TaxonomyError] = None
    dry_run: bool = False
    processing_time_seconds: float = 0.0

    @property
    def total_fetched(self) -> int:
        return sum(result.items_fetched for result in self.feeds)

    @property
    def total_new(self) -> int:
        return sum(result.items_new for result in self.feeds)

    @property
    def total_matched(self) -> int:
        return sum(result.items_matched for result in self.feeds)

    @property
    def total_published(self) -> int:
        return sum(result.items_published for result in self.feeds)

    @property
    def total_failed(self) -> int:
        return sum(result.items_failed for result in self.feeds)

    @property
    def failed_feeds(self) -> List[FeedRunResult]:
        return [result for result in self.feeds if result.stage == FeedStage.FAILED]

    @property
    def has_fatal_errors(self) -> bool:
        """True when the taxonomy could not be loaded or any feed failed."""
        return self.taxonomy_error is not None or bool(self.failed_feeds)


class FeedPipeline:
    """Runs configured feeds through fetch, dedup, match, publish and checkpoint."""

    def __init__(
        self,
        settings: FeedPosterSettings,
        checkpoints: CheckpointRepository,
        fetcher,
        blog,
        normalizer: Optional[ItemNormalizer] = None,
        dry_run: Optional[bool] = None,
    ):
        """Initialize pipeline.

        Args:
            settings: Application settings
            checkpoints: Checkpoint repository
            fetcher: Object with ``fetch(url, timeout)`` returning a FeedDocument
            blog: Object with ``fetch_taxonomy()`` and ``publish(post)``
            normalizer: Item normalizer, a default one when omitted
            dry_run: Overrides ``settings.processing.dry_run`` when given
        """
        self.settings = settings
        self.checkpoints = checkpoints
        self.fetcher = fetcher
        self.blog = blog
        self.normalizer = normalizer or ItemNormalizer()
        self.dry_run = settings.processing.dry_run if dry_run is None else dry_run
        self.logger = get_logger_for_component("pipeline")

    def run(self, feeds: Optional[Sequence[FeedSettings]] = None) -> RunSummary:
        """Process feeds one after another in configuration order.

        Args:
            feeds: Feeds to process; all configured feeds when omitted

        Returns:
            RunSummary with one result per processed feed
        """
        start_time = time.time()
        feeds = list(self.settings.feeds if feeds is None else feeds)
        summary = RunSummary(dry_run=self.dry_run)

        self.logger.info(
            f"Starting run over {len(feeds)} feeds" + (" (dry run)" if self.dry_run else "")
        )

        try:
            taxonomy = self.blog.fetch_taxonomy()
        except TaxonomyError as e:
            self.logger.error(f"Cannot load blog taxonomy, aborting run: {e}")
            summary.taxonomy_error = e
            summary.processing_time_seconds = time.time() - start_time
            return summary

        if taxonomy.is_empty:
            self.logger.warning("Blog has no categories or tags; nothing can match")

        for feed in feeds:
            summary.feeds.append(self.process_feed(feed, taxonomy))

        summary.processing_time_seconds = time.time() - start_time
        self.logger.info(
            f"Run complete: {len(feeds)} feeds, {summary.total_new} new items, "
            f"{summary.total_matched} matched, {summary.total_published} published, "
            f"{summary.total_failed} failed, {len(summary.failed_feeds)} failed feeds "
            f"in {summary.processing_time_seconds:.2f}s"
        )
        return summary

    def process_feed(self, feed: FeedSettings, taxonomy: Taxonomy) -> FeedRunResult:
        """Run one feed through every stage.

        Errors that end the feed are recorded on the result, never raised.
        """
        start_time = time.time()
        logger = get_logger_for_component("pipeline", feed_id=feed.id)
        result = FeedRunResult(feed_id=feed.id)

        try:
            self._process_stages(feed, taxonomy, result, logger)
        except (FeedError, CheckpointStoreError) as e:
            logger.error(f"Feed {feed.id} failed while {result.stage.value}: {e}")
            result.fail(e)

        result.processing_time_seconds = time.time() - start_time
        return result

    def _process_stages(self, feed: FeedSettings, taxonomy: Taxonomy, result: FeedRunResult, logger) -> None:
        # Fetching
        document = self.fetcher.fetch(feed.url, feed.effective_timeout(self.settings.conn_timeout))
        result.items_fetched = len(document.items)

        # Deduping
        result.stage = FeedStage.DEDUPING
        checkpoint = self.checkpoints.get(feed.id)
        last_processed = checkpoint.last_processed_at if checkpoint else None

        dedup = select_new_items(document.items, last_processed)
        result.items_new = len(dedup.new_items)
        result.date_errors = dedup.errors

        if not dedup.new_items:
            logger.info(f"No new items in {feed.id}")
            result.stage = FeedStage.DONE
            return

        # Matching
        result.stage = FeedStage.MATCHING
        matches = match_items(dedup.new_items, taxonomy.categories, taxonomy.tags, self.normalizer.cleaner)
        result.items_matched = len(matches)

        if not matches:
            logger.info(f"{result.items_new} new items in {feed.id}, none matched")
            if self.settings.processing.advance_on_no_match:
                result.stage = FeedStage.CHECKPOINTING
                self._advance_checkpoint(feed, latest_timestamp(dedup.new_items), result, logger)
            result.stage = FeedStage.DONE
            return

        # Publishing
        result.stage = FeedStage.PUBLISHING
        failed = self._publish_matches(feed, matches, result, logger)

        # Checkpointing
        result.stage = FeedStage.CHECKPOINTING
        target = self._checkpoint_target(dedup.new_items, failed)
        self._advance_checkpoint(feed, target, result, logger)
        result.stage = FeedStage.DONE

    def _publish_matches(self, feed: FeedSettings, matches: List[MatchResult], result: FeedRunResult, logger) -> List[MatchResult]:
        """Publish every match independently; return the ones that failed."""
        failed = []

        for match in matches:
            item = self.normalizer.normalize(feed, match)
            post = build_post(item, self.settings.blog)

            if self.dry_run:
                logger.info(
                    f"[dry run] Would publish '{post.title}' "
                    f"categories={post.categories} tags={post.tags}"
                )
                result.planned_posts.append(post)
                continue

            try:
                post_id = self.blog.publish(post)
            except PublishError as e:
                logger.warning(f"Failed to publish '{post.title}': {e}")
                result.publish_errors.append(e)
                result.items_failed += 1
                failed.append(match)
                continue

            result.items_published += 1
            result.post_ids.append(post_id)

        return failed

    def _checkpoint_target(self, selected: List[DatedItem], failed: List[MatchResult]) -> Optional[datetime]:
        """Timestamp the checkpoint should move to after a publishing batch."""
        if self.settings.processing.checkpoint_policy == CheckpointPolicy.SELECTED or not failed:
            return latest_timestamp(selected)

        oldest_failure = min(match.published_at for match in failed)
        return max(
            (item.published_at for item in selected if item.published_at < oldest_failure),
            default=None,
        )

    def _advance_checkpoint(self, feed: FeedSettings, target: Optional[datetime], result: FeedRunResult, logger) -> None:
        if target is None:
            logger.info(f"Checkpoint for {feed.id} left unchanged")
            return

        result.checkpoint_target = target
        if self.dry_run:
            logger.info(f"[dry run] Would advance checkpoint for {feed.id} to {target.isoformat()}")
            return

        if self.checkpoints.upsert(feed.id, target):
            result.checkpoint_advanced_to = target
