"""
Content Cleaner
===============

Markup removal for feed item descriptions.

Descriptions arrive as HTML fragments of arbitrary quality. The cleaner
removes every tag, drops non-content nodes (scripts, styles, comments),
decodes entities and collapses runs of spaces, leaving plain text with the
source line breaks intact.
"""

import re
import html

from bs4 import BeautifulSoup, Comment
from bs4.element import CData, ProcessingInstruction, Doctype

from ..utils.logging import get_logger_for_component


class ContentCleaner:
    """Strips HTML markup from feed text."""

    # Elements removed together with their content
    NON_CONTENT_ELEMENTS = {
        "script",
        "style",
        "iframe",
        "embed",
        "object",
        "applet",
        "noscript",
        "template",
        "head",
    }

    # Elements whose boundaries separate words
    BLOCK_ELEMENTS = {
        "p",
        "div",
        "br",
        "li",
        "ul",
        "ol",
        "tr",
        "td",
        "th",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "blockquote",
        "pre",
        "hr",
        "section",
        "article",
        "figure",
        "figcaption",
    }

    SPACE_PATTERN = re.compile(r"[^\S\n]+")
    LINE_EDGE_PATTERN = re.compile(r" ?\n ?")
    BLANK_LINES_PATTERN = re.compile(r"\n{3,}")
    TAG_PATTERN = re.compile(r"<[^>]+>")

    def __init__(self):
        """Initialize content cleaner."""
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"

    def strip_markup(self, html_content: str) -> str:
        """Remove all markup and return plain text.

        Args:
            html_content: HTML fragment or plain text

        Returns:
            Text with tags removed, entities decoded and spaces collapsed
        """
        if not html_content or not html_content.strip():
            return ""

        # Plain text needs no parsing beyond entity decoding
        if "<" not in html_content:
            return self._normalize_text(html.unescape(html_content))

        try:
            soup = BeautifulSoup(html_content, self.parser)

            for element in soup(self.NON_CONTENT_ELEMENTS):
                element.decompose()

            for node in soup.find_all(
                string=lambda text: isinstance(
                    text, (Comment, CData, ProcessingInstruction, Doctype)
                )
            ):
                node.extract()

            for element in soup.find_all(self.BLOCK_ELEMENTS):
                element.insert_after(" ")

            text = soup.get_text()

        except Exception as e:
            self.logger.warning(f"Failed to parse markup, using fallback: {e}")
            text = html.unescape(self.TAG_PATTERN.sub(" ", html_content))

        return self._normalize_text(text)

    def _normalize_text(self, text: str) -> str:
        """Collapse spaces and tabs; keep line breaks, at most one blank line."""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = self.SPACE_PATTERN.sub(" ", text)
        text = self.LINE_EDGE_PATTERN.sub("\n", text)
        return self.BLANK_LINES_PATTERN.sub("\n\n", text).strip()


def strip_markup(html_content: str) -> str:
    """Quick function to strip markup from a fragment."""
    return ContentCleaner().strip_markup(html_content)
