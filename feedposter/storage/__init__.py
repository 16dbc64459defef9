"""
FeedPoster Storage Layer
========================

Repositories over the SQLite checkpoint database.
"""

from .checkpoint_repository import CheckpointRepository

__all__ = ["CheckpointRepository"]
