"""
Tests for the Item Normalizer
=============================
"""

import unicodedata

from feedposter.config.settings import FeedSettings
from feedposter.database.models import DatedItem, Enclosure
from feedposter.processing.item_normalizer import ItemNormalizer, normalize
from feedposter.processing.taxonomy_matcher import MatchResult

from conftest import T0, make_item


def matched(item, categories=("Python",), tags=()):
    return MatchResult(
        dated_item=DatedItem(item=item, published_at=T0),
        categories=tuple(categories),
        tags=tuple(tags),
    )


class TestItemNormalizer:
    """Body construction for publishing."""

    def test_attribution_header_and_stripped_body(self, sample_feed):
        item = make_item(
            "Python 3.13",
            "<p>The <b>new</b> release</p>",
            link="https://news.example.com/py313",
        )

        result = normalize(sample_feed, matched(item))

        assert result.body == (
            'From <a href="https://news.example.com/py313" target="_new">Tech News</a>:<br /><br />\n\n'
            "The new release"
        )

    def test_image_enclosure_goes_between_header_and_body(self, sample_feed, image_enclosure):
        item = make_item("Python", "Body text", link="https://news.example.com/p", enclosure=image_enclosure)

        body = normalize(sample_feed, matched(item)).body

        header_end = body.index("<br /><br />")
        image_at = body.index('<img src="https://cdn.example.com/photo.jpg" />\n\n')
        assert header_end < image_at < body.index("Body text")

    def test_image_type_check_is_case_insensitive(self, sample_feed):
        enclosure = Enclosure(url="https://cdn.example.com/p.png", type="IMAGE/PNG")
        item = make_item("Python", "Body", enclosure=enclosure)

        assert "<img " in normalize(sample_feed, matched(item)).body

    def test_non_image_enclosure_adds_nothing(self, sample_feed):
        enclosure = Enclosure(url="https://cdn.example.com/clip.mp4", type="video/mp4")
        item = make_item("Python", "Body", enclosure=enclosure)

        body = normalize(sample_feed, matched(item)).body

        assert "<img" not in body
        assert "clip.mp4" not in body

    def test_link_and_feed_name_are_escaped(self):
        feed = FeedSettings(id="odd", name='Tom & "Jerry"', url="https://odd.example.com/feed")
        item = make_item("Python", "Body", link='https://odd.example.com/a?x=1&y="2"')

        body = normalize(feed, matched(item)).body

        assert 'href="https://odd.example.com/a?x=1&amp;y=&quot;2&quot;"' in body
        assert ">Tom &amp; &quot;Jerry&quot;</a>" in body

    def test_body_text_is_html_safe(self, sample_feed):
        item = make_item("Python", "<p>1 &lt; 2 &amp;&amp; 3 &gt; 2</p>")

        body = normalize(sample_feed, matched(item)).body

        assert body.endswith("1 &lt; 2 &amp;&amp; 3 &gt; 2")

    def test_title_passes_through_nfc_normalized(self, sample_feed):
        decomposed = unicodedata.normalize("NFD", "Café <Python>")
        item = make_item(decomposed, "Body")

        result = normalize(sample_feed, matched(item))

        assert result.title == "Café <Python>"
        assert unicodedata.is_normalized("NFC", result.title)

    def test_carries_match_data(self, sample_feed):
        item = make_item("Python", "Body", link="https://news.example.com/p")

        result = ItemNormalizer().normalize(sample_feed, matched(item, ["Python"], ["release"]))

        assert result.categories == ("Python",)
        assert result.tags == ("release",)
        assert result.published_at == T0
        assert result.link == "https://news.example.com/p"

    def test_source_item_is_not_modified(self, sample_feed):
        item = make_item("Python", "<p>Body</p>")

        normalize(sample_feed, matched(item))

        assert item.description == "<p>Body</p>"
