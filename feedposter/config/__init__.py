"""Configuration loading for FeedPoster."""

from .settings import (
    FeedPosterSettings,
    FeedSettings,
    BlogSettings,
    CheckpointPolicy,
    get_settings,
    load_settings,
)

__all__ = [
    "FeedPosterSettings",
    "FeedSettings",
    "BlogSettings",
    "CheckpointPolicy",
    "get_settings",
    "load_settings",
]
