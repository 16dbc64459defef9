"""
FeedPoster Processing Module
============================

Deduplication, taxonomy matching, normalization and the per-feed pipeline.
"""

from .dedup_filter import select_new_items, parse_pub_date, DedupResult
from .taxonomy_matcher import match_items, MatchResult
from .item_normalizer import ItemNormalizer, normalize
from .pipeline import FeedPipeline, FeedRunResult, FeedStage, RunSummary

__all__ = [
    'select_new_items',
    'parse_pub_date',
    'DedupResult',
    'match_items',
    'MatchResult',
    'ItemNormalizer',
    'normalize',
    'FeedPipeline',
    'FeedRunResult',
    'FeedStage',
    'RunSummary',
]
