"""
FeedPoster Blog Integration
===========================

WordPress XML-RPC taxonomy source and publisher.
"""

from .client import BlogClient, RequestsTransport, build_post

__all__ = ["BlogClient", "RequestsTransport", "build_post"]
