"""
Tests for BlogClient
====================

XML-RPC calls are made against a mocked server proxy; the transport is
tested with a mocked requests session.
"""

import xmlrpc.client
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
import requests

from feedposter.blog.client import BlogClient, RequestsTransport, build_post, build_session
from feedposter.config.settings import BlogSettings
from feedposter.database.models import BlogPost, NormalizedItem
from feedposter.utils.exceptions import TaxonomyError, PublishError, ErrorCode

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def blog_settings():
    return BlogSettings(
        xmlrpc_url="https://blog.example.com/xmlrpc.php",
        username="poster",
        password="secret",
        blog_id=3,
    )


@pytest.fixture
def server():
    proxy = Mock()
    proxy.wp.getCategories.return_value = [
        {"categoryId": "1", "categoryName": "Uncategorized"},
        {"categoryId": "2", "categoryName": "Python"},
        {"categoryId": "3", "categoryName": "Gardening"},
    ]
    proxy.wp.getTags.return_value = [
        {"tag_id": "7", "name": "release"},
        {"tag_id": "8", "name": "tomatoes"},
    ]
    proxy.metaWeblog.newPost.return_value = "42"
    return proxy


@pytest.fixture
def client(blog_settings, server):
    return BlogClient(blog_settings, server=server)


@pytest.fixture
def post():
    return BlogPost(
        title="Python 3.13 lands",
        body="From <a>...</a>",
        categories=["Uncategorized", "Python"],
        tags=["release"],
        publish_timestamp=T0,
    )


class TestTaxonomy:
    """Category and tag retrieval."""

    def test_list_categories(self, client, server):
        assert client.list_categories() == ["Uncategorized", "Python", "Gardening"]
        server.wp.getCategories.assert_called_once_with(3, "poster", "secret")

    def test_list_tags(self, client, server):
        assert client.list_tags() == ["release", "tomatoes"]
        server.wp.getTags.assert_called_once_with(3, "poster", "secret")

    def test_fetch_taxonomy_is_sorted_snapshot(self, client):
        taxonomy = client.fetch_taxonomy()

        assert taxonomy.categories == ("Gardening", "Python", "Uncategorized")
        assert taxonomy.tags == ("release", "tomatoes")

    def test_fault_raises_taxonomy_error(self, client, server):
        server.wp.getCategories.side_effect = xmlrpc.client.Fault(403, "Incorrect username or password.")

        with pytest.raises(TaxonomyError) as exc_info:
            client.fetch_taxonomy()

        assert exc_info.value.error_code == ErrorCode.BLOG_TAXONOMY_FAILED
        assert exc_info.value.recoverable is False
        assert exc_info.value.context["fault_code"] == 403

    def test_network_error_raises_taxonomy_error(self, client, server):
        server.wp.getTags.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(TaxonomyError):
            client.list_tags()

    def test_unexpected_payload_raises_taxonomy_error(self, client, server):
        server.wp.getTags.return_value = "not a list"

        with pytest.raises(TaxonomyError):
            client.list_tags()


class TestPublish:
    """Post creation."""

    def test_publish_returns_post_id(self, client, server, post):
        assert client.publish(post) == "42"

        args = server.metaWeblog.newPost.call_args[0]
        assert args[:3] == (3, "poster", "secret")
        assert args[4] is True

    def test_publish_struct(self, client, server, post):
        client.publish(post)

        struct = server.metaWeblog.newPost.call_args[0][3]
        assert struct["title"] == "Python 3.13 lands"
        assert struct["description"] == "From <a>...</a>"
        assert struct["categories"] == ["Uncategorized", "Python"]
        assert struct["mt_keywords"] == "release"
        assert struct["post_status"] == "publish"
        assert struct["post_type"] == "post"
        assert struct["mt_allow_comments"] == "open"
        assert struct["sticky"] == 0
        assert struct["dateCreated"].value == "20240301T12:00:00"

    def test_draft_is_not_published_immediately(self, client, server, post):
        client.publish(post.model_copy(update={"status": "draft"}))

        assert server.metaWeblog.newPost.call_args[0][4] is False

    def test_fault_raises_publish_error(self, client, server, post):
        server.metaWeblog.newPost.side_effect = xmlrpc.client.Fault(500, "Sorry, you are not allowed to publish posts.")

        with pytest.raises(PublishError) as exc_info:
            client.publish(post)

        assert exc_info.value.error_code == ErrorCode.BLOG_FAULT
        assert exc_info.value.context["post_title"] == "Python 3.13 lands"

    def test_protocol_error_raises_publish_error(self, client, server, post):
        server.metaWeblog.newPost.side_effect = xmlrpc.client.ProtocolError(
            "https://blog.example.com/xmlrpc.php", 502, "Bad Gateway", {}
        )

        with pytest.raises(PublishError) as exc_info:
            client.publish(post)

        assert exc_info.value.error_code == ErrorCode.BLOG_PUBLISH_FAILED


class TestBuildPost:
    """Mapping normalized items to publish requests."""

    def make_item(self, categories=("Python",), tags=("release",)):
        return NormalizedItem(
            title="Python 3.13 lands",
            body="body",
            link="https://news.example.com/p",
            published_at=T0,
            categories=categories,
            tags=tags,
        )

    def test_default_categories_come_first(self, blog_settings):
        post = build_post(self.make_item(), blog_settings)

        assert post.categories == ["Uncategorized", "Python"]
        assert post.tags == ["release"]
        assert post.publish_timestamp == T0
        assert post.status == "publish"

    def test_no_duplicate_categories(self, blog_settings):
        post = build_post(self.make_item(categories=("Python", "Uncategorized")), blog_settings)

        assert post.categories == ["Uncategorized", "Python"]

    def test_configured_defaults_and_status(self):
        settings = BlogSettings(
            xmlrpc_url="https://blog.example.com/xmlrpc.php",
            username="poster",
            password="secret",
            default_categories=["News"],
            post_status="draft",
        )

        post = build_post(self.make_item(), settings)

        assert post.categories == ["News", "Python"]
        assert post.status == "draft"


class TestTransport:
    """HTTP plumbing under xmlrpc.client."""

    def test_build_session_applies_settings(self):
        settings = BlogSettings(
            xmlrpc_url="https://blog.example.com/xmlrpc.php",
            username="poster",
            password="secret",
            verify_tls=False,
            proxy="http://proxy.example.com:3128",
            http_auth={"username": "gate", "password": "keeper"},
        )

        session = build_session(settings)

        assert session.verify is False
        assert session.proxies == {
            "http": "http://proxy.example.com:3128",
            "https": "http://proxy.example.com:3128",
        }
        assert session.auth == ("gate", "keeper")

    def test_request_round_trip(self):
        session = Mock()
        session.post.return_value = Mock(
            status_code=200,
            content=xmlrpc.client.dumps(([{"name": "release"}],), methodresponse=True).encode("utf-8"),
        )
        transport = RequestsTransport(session, scheme="https", timeout=12)
        proxy = xmlrpc.client.ServerProxy("https://blog.example.com/xmlrpc.php", transport=transport)

        assert proxy.wp.getTags(1, "poster", "secret") == [{"name": "release"}]

        url = session.post.call_args[0][0]
        kwargs = session.post.call_args[1]
        assert url == "https://blog.example.com/xmlrpc.php"
        assert kwargs["timeout"] == 12
        assert b"wp.getTags" in kwargs["data"]

    def test_non_200_raises_protocol_error(self):
        session = Mock()
        session.post.return_value = Mock(status_code=401, reason="Unauthorized", headers={}, content=b"")
        transport = RequestsTransport(session)
        proxy = xmlrpc.client.ServerProxy("https://blog.example.com/xmlrpc.php", transport=transport)

        with pytest.raises(xmlrpc.client.ProtocolError):
            proxy.wp.getTags(1, "poster", "secret")

    def test_client_uses_transport_when_no_server_given(self, blog_settings):
        client = BlogClient(blog_settings)

        assert isinstance(client.server, xmlrpc.client.ServerProxy)
