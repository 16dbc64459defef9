"""
FeedPoster Data Models
======================

Pydantic data models shared by the ingestion, processing and storage layers.
Feed items are frozen: every processing stage produces new objects instead of
mutating what the fetcher returned.
"""

import xmlrpc.client
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class Enclosure(BaseModel):
    """Media attached to a feed item."""
    url: str = Field(..., min_length=1, description="Enclosure URL")
    type: str = Field(default="", description="MIME type hint, e.g. image/jpeg")

    model_config = {"frozen": True}

    @property
    def is_image(self) -> bool:
        return self.type.strip().lower().startswith("image/")


class FeedItem(BaseModel):
    """One entry of a fetched feed, as the feed supplied it."""
    title: str = Field(default="", description="Item title")
    description: str = Field(default="", description="Item body, may contain markup")
    link: str = Field(default="", description="Link to the source article")
    pub_date: Optional[str] = Field(default=None, description="Feed-native publish date string")
    enclosure: Optional[Enclosure] = Field(default=None, description="First enclosure, if any")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"FeedItem({self.title[:50]})"


class FeedDocument(BaseModel):
    """A parsed feed: channel metadata plus items in document order."""
    url: str
    title: str = ""
    items: List[FeedItem] = Field(default_factory=list)


class DatedItem(BaseModel):
    """A feed item together with its parsed, timezone-aware publish time."""
    item: FeedItem
    published_at: datetime

    model_config = {"frozen": True}

    @field_validator('published_at')
    @classmethod
    def ensure_utc(cls, v):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class Checkpoint(BaseModel):
    """Persisted processing state of one feed."""
    feed_id: str = Field(..., min_length=1, description="Configured feed id")
    last_processed_at: datetime = Field(..., description="Newest publish time already handled (UTC)")
    updated_at: Optional[datetime] = Field(default=None, description="When the row was last written")

    @field_validator('last_processed_at')
    @classmethod
    def ensure_utc(cls, v):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def epoch(self) -> int:
        return int(self.last_processed_at.timestamp())

    def __str__(self) -> str:
        return f"Checkpoint({self.feed_id}@{self.last_processed_at.isoformat()})"


class BlogPost(BaseModel):
    """A publish request for the remote blog."""
    title: str
    body: str
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    publish_timestamp: datetime
    status: str = Field(default="publish")
    post_type: str = Field(default="post")
    post_format: str = Field(default="standard")
    excerpt: str = Field(default="")
    comment_status: str = Field(default="open")
    ping_status: str = Field(default="open")
    sticky: bool = Field(default=False)

    def to_metaweblog_struct(self) -> Dict[str, Any]:
        """Build the struct expected by ``metaWeblog.newPost``."""
        published = self.publish_timestamp
        if published.tzinfo is not None:
            published = published.astimezone(timezone.utc).replace(tzinfo=None)
        created = xmlrpc.client.DateTime(published)

        return {
            "title": self.title,
            "description": self.body,
            "categories": list(self.categories),
            "mt_keywords": ",".join(self.tags),
            "dateCreated": created,
            "date_created_gmt": created,
            "post_status": self.status,
            "post_type": self.post_type,
            "wp_post_format": self.post_format,
            "mt_excerpt": self.excerpt,
            "mt_allow_comments": self.comment_status,
            "mt_allow_pings": self.ping_status,
            "sticky": 1 if self.sticky else 0,
        }


def clean_names(names: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted({name.strip() for name in names if name and name.strip()}))


class Taxonomy(BaseModel):
    """Snapshot of the blog's category and tag names for one run."""
    categories: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def from_names(cls, categories: Iterable[str], tags: Iterable[str]) -> "Taxonomy":
        """Build a snapshot, dropping blank and duplicate names."""
        return cls(categories=clean_names(categories), tags=clean_names(tags))

    @property
    def is_empty(self) -> bool:
        return not self.categories and not self.tags


class NormalizedItem(BaseModel):
    """A matched item in publishable form."""
    title: str
    body: str
    link: str
    published_at: datetime
    categories: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()

    model_config = {"frozen": True}
