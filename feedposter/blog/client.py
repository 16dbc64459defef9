"""
Blog Client
===========

WordPress XML-RPC client used as the run's taxonomy source and publisher.

Calls go through ``xmlrpc.client`` with a transport backed by a
``requests.Session``, so proxy, HTTP basic-auth, TLS verification and
timeout are ordinary session settings.
"""

import xmlrpc.client
from typing import Any, List, Optional
from urllib.parse import urlsplit
from xml.parsers.expat import ExpatError

import requests

from .. import __version__
from ..config.settings import BlogSettings
from ..database.models import BlogPost, NormalizedItem, Taxonomy
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import TaxonomyError, PublishError, ErrorCode

# Failures of a single XML-RPC round trip
_CALL_ERRORS = (
    xmlrpc.client.ProtocolError,
    xmlrpc.client.ResponseError,
    requests.RequestException,
    ExpatError,
    OSError,
)


class RequestsTransport(xmlrpc.client.Transport):
    """XML-RPC transport that sends requests through a requests.Session."""

    def __init__(self, session: requests.Session, scheme: str = "https", timeout: int = 30):
        super().__init__()
        self.session = session
        self.scheme = scheme
        self.timeout = timeout

    def request(self, host, handler, request_body, verbose=False):
        url = f"{self.scheme}://{host}{handler}"
        response = self.session.post(
            url,
            data=request_body,
            headers={"Content-Type": "text/xml"},
            timeout=self.timeout,
        )

        if response.status_code != 200:
            raise xmlrpc.client.ProtocolError(
                url, response.status_code, response.reason, dict(response.headers)
            )

        self.verbose = verbose
        return self._parse_body(response.content)

    def _parse_body(self, content: bytes):
        parser, unmarshaller = self.getparser()
        parser.feed(content)
        parser.close()
        return unmarshaller.close()


def build_session(settings: BlogSettings) -> requests.Session:
    """Create the HTTP session used for blog calls."""
    session = requests.Session()
    session.headers.update({"User-Agent": f"FeedPoster/{__version__}"})
    session.verify = settings.verify_tls

    if settings.proxy:
        session.proxies = {"http": settings.proxy, "https": settings.proxy}

    if settings.http_auth:
        session.auth = (settings.http_auth.username, settings.http_auth.password)

    return session


class BlogClient:
    """Taxonomy source and publisher for a WordPress blog."""

    def __init__(self, settings: BlogSettings, server: Optional[Any] = None):
        """Initialize blog client.

        Args:
            settings: Blog connection settings
            server: XML-RPC proxy to use instead of building one from settings
        """
        self.settings = settings
        self.logger = get_logger_for_component("blog_client")

        if server is None:
            transport = RequestsTransport(
                build_session(settings),
                scheme=urlsplit(settings.xmlrpc_url).scheme or "https",
                timeout=settings.timeout,
            )
            server = xmlrpc.client.ServerProxy(settings.xmlrpc_url, transport=transport, allow_none=True)

        self.server = server

    @property
    def _credentials(self) -> tuple:
        return (self.settings.blog_id, self.settings.username, self.settings.password)

    def list_categories(self) -> List[str]:
        """Get the blog's category names.

        Raises:
            TaxonomyError: If the call fails
        """
        records = self._taxonomy_call("wp.getCategories", self.server.wp.getCategories)
        return [record.get("categoryName", "") for record in records if isinstance(record, dict)]

    def list_tags(self) -> List[str]:
        """Get the blog's tag names.

        Raises:
            TaxonomyError: If the call fails
        """
        records = self._taxonomy_call("wp.getTags", self.server.wp.getTags)
        return [record.get("name", "") for record in records if isinstance(record, dict)]

    def fetch_taxonomy(self) -> Taxonomy:
        """Fetch the category and tag snapshot for a run."""
        with PerformanceLogger(self.logger, "taxonomy fetch"):
            taxonomy = Taxonomy.from_names(self.list_categories(), self.list_tags())

        self.logger.info(
            f"Loaded taxonomy: {len(taxonomy.categories)} categories, {len(taxonomy.tags)} tags"
        )
        return taxonomy

    def _taxonomy_call(self, method_name: str, method) -> list:
        try:
            records = method(*self._credentials)
        except xmlrpc.client.Fault as e:
            raise TaxonomyError(
                f"{method_name} fault {e.faultCode}: {e.faultString}",
                endpoint=self.settings.xmlrpc_url,
                context={"method": method_name, "fault_code": e.faultCode},
            ) from e
        except _CALL_ERRORS as e:
            raise TaxonomyError(
                f"{method_name} failed: {e}",
                endpoint=self.settings.xmlrpc_url,
                context={"method": method_name},
            ) from e

        if not isinstance(records, list):
            raise TaxonomyError(
                f"{method_name} returned {type(records).__name__}, expected a list",
                endpoint=self.settings.xmlrpc_url,
                context={"method": method_name},
            )
        return records

    def publish(self, post: BlogPost) -> str:
        """Create a post on the blog.

        Args:
            post: Post to create

        Returns:
            Id of the new post

        Raises:
            PublishError: If the blog rejects the post or cannot be reached
        """
        publish_now = post.status == "publish"

        try:
            with PerformanceLogger(self.logger, "publish", post_title=post.title):
                post_id = self.server.metaWeblog.newPost(
                    *self._credentials, post.to_metaweblog_struct(), publish_now
                )

        except xmlrpc.client.Fault as e:
            raise PublishError(
                f"Blog rejected post: fault {e.faultCode}: {e.faultString}",
                post_title=post.title,
                endpoint=self.settings.xmlrpc_url,
                error_code=ErrorCode.BLOG_FAULT,
            ) from e
        except _CALL_ERRORS as e:
            raise PublishError(
                f"Failed to publish post: {e}",
                post_title=post.title,
                endpoint=self.settings.xmlrpc_url,
            ) from e

        self.logger.info(f"Published '{post.title}' as post {post_id}")
        return str(post_id)


def build_post(item: NormalizedItem, settings: BlogSettings) -> BlogPost:
    """Turn a normalized item into a publish request.

    Configured default categories come first, followed by the matched
    categories that are not already among them.
    """
    categories = list(settings.default_categories)
    for name in item.categories:
        if name not in categories:
            categories.append(name)

    return BlogPost(
        title=item.title,
        body=item.body,
        categories=categories,
        tags=list(item.tags),
        publish_timestamp=item.published_at,
        status=settings.post_status,
    )
