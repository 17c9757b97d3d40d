"""Tests for content normalization and selector extraction."""

from __future__ import annotations

import logging
import sys
from unittest.mock import patch

import pytest

from backend.scraper.extractor import (
    _bs4_fallback,
    collapse_whitespace,
    extract,
    extract_structured_data,
    normalize,
    readable_text,
    summarize_page,
)
from backend.scraper.models import ExtractedElement, Image, Link

_ARTICLE_HTML = """\
<html>
<head>
  <title>  Product
     Page </title>
  <meta name="Description" content="All about widgets">
  <script type="application/ld+json">{"@type": "Product", "name": "Widget"}</script>
</head>
<body>
  <nav>Menu</nav>
  <h1>Widgets</h1>
  <p>Buy   our
     widgets.</p>
  <a href="/a">First</a>
  <a>No href</a>
  <a href="/c">  Third   link </a>
  <img src="/w.png" alt="A widget">
  <img alt="no source">
  <script>var tracking = 1;</script>
  <style>p { color: red }</style>
  <noscript>Enable JavaScript</noscript>
</body>
</html>
"""


class TestNormalize:
    def test_minimal_document(self) -> None:
        page = normalize("<title>Hi</title><body>  a   b  </body>")
        assert page.title == "Hi"
        assert page.body_text == "a b"
        assert page.links == ()
        assert page.images == ()
        assert page.structured_data == ()
        assert page.meta_description == ""

    def test_title_and_description(self) -> None:
        page = normalize(_ARTICLE_HTML)
        assert page.title == "Product Page"
        assert page.meta_description == "All about widgets"

    def test_body_text_is_visible_text_only(self) -> None:
        page = normalize(_ARTICLE_HTML)
        assert "Buy our widgets." in page.body_text
        assert "tracking" not in page.body_text
        assert "color" not in page.body_text
        assert "Enable JavaScript" not in page.body_text
        assert "Product Page" not in page.body_text

    def test_body_text_has_no_runs_of_whitespace(self) -> None:
        page = normalize(_ARTICLE_HTML)
        assert "  " not in page.body_text
        assert "\n" not in page.body_text
        assert page.body_text == page.body_text.strip()

    def test_links_keep_order_and_count(self) -> None:
        page = normalize(_ARTICLE_HTML)
        assert page.links == (
            Link(href="/a", text="First"),
            Link(href="", text="No href"),
            Link(href="/c", text="Third link"),
        )

    def test_images_default_missing_src(self) -> None:
        page = normalize(_ARTICLE_HTML)
        assert page.images == (
            Image(src="/w.png", alt="A widget"),
            Image(src="", alt="no source"),
        )

    def test_structured_data(self) -> None:
        page = normalize(_ARTICLE_HTML)
        assert page.structured_data == ({"@type": "Product", "name": "Widget"},)

    def test_document_without_body(self) -> None:
        page = normalize("<title>Only</title><p>loose text</p>")
        assert page.title == "Only"
        assert page.body_text == "loose text"

    def test_empty_document(self) -> None:
        page = normalize("")
        assert page.title == ""
        assert page.body_text == ""

    def test_keeps_original_html(self) -> None:
        page = normalize(_ARTICLE_HTML)
        assert page.html == _ARTICLE_HTML

    def test_to_dict_without_html(self) -> None:
        data = normalize(_ARTICLE_HTML).to_dict(include_html=False)
        assert "html" not in data
        assert data["links"][0] == {"href": "/a", "text": "First"}


class TestStructuredData:
    def test_mixed_valid_and_malformed_blocks(self, caplog: pytest.LogCaptureFixture) -> None:
        html = """
        <script type="application/ld+json">{"a": 1}</script>
        <script type="application/ld+json">{not json</script>
        <script type="APPLICATION/LD+JSON">[{"b": 2}]</script>
        <script type="application/ld+json">   </script>
        <script type="text/javascript">{"c": 3}</script>
        """
        with caplog.at_level(logging.WARNING, logger="backend.scraper.extractor"):
            blocks = extract_structured_data(html)

        assert blocks == [{"a": 1}, [{"b": 2}]]
        assert "malformed JSON-LD" in caplog.text

    def test_no_blocks(self) -> None:
        assert extract_structured_data("<p>nothing</p>") == []

    @pytest.mark.skipif(
        not hasattr(sys, "get_int_max_str_digits"),
        reason="interpreter has no integer string conversion limit",
    )
    def test_oversized_integer_block_is_skipped(self) -> None:
        html = (
            f'<script type="application/ld+json">{"1" * 5000}</script>'
            '<script type="application/ld+json">{"a": 1}</script>'
        )
        assert normalize(html).structured_data == ({"a": 1},)

    def test_deeply_nested_block_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        html = (
            f'<script type="application/ld+json">{"[" * 100000}{"]" * 100000}</script>'
            '<script type="application/ld+json">{"a": 1}</script>'
        )
        with caplog.at_level(logging.WARNING, logger="backend.scraper.extractor"):
            page = normalize(html)
        assert page.structured_data == ({"a": 1},)
        assert "malformed JSON-LD" in caplog.text


class TestExtract:
    def test_matches_in_document_order(self) -> None:
        html = '<ul><li class="x">One <b>bold</b></li><li>skip</li><li class="x">Two</li></ul>'
        elements = extract(html, "li.x")
        assert elements == [
            ExtractedElement(text="One bold", inner_html="One <b>bold</b>"),
            ExtractedElement(text="Two", inner_html="Two"),
        ]

    def test_no_match_returns_empty(self) -> None:
        assert extract("<p>hi</p>", "div.missing") == []

    def test_invalid_selector_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            extract("<p>hi</p>", "p[")


class TestCollapseWhitespace:
    def test_collapses_and_trims(self) -> None:
        assert collapse_whitespace("\n  a \t\t b  c  ") == "a b c"


class TestBs4Fallback:
    def test_strips_scripts_and_styles(self) -> None:
        html = """\
<html><body>
  <script>alert('x')</script>
  <style>.a{color:red}</style>
  <main><p>Real content here.</p></main>
</body></html>
"""
        text = _bs4_fallback(html)
        assert "alert" not in text
        assert "color" not in text
        assert "Real content" in text

    def test_falls_back_to_body_when_no_main(self) -> None:
        text = _bs4_fallback("<html><body><p>Body text.</p></body></html>")
        assert "Body text." in text


class TestReadableText:
    def test_trafilatura_fallback_to_bs4(self) -> None:
        """When trafilatura returns None the BS4 fallback provides text."""
        with patch("backend.scraper.extractor.trafilatura.extract", return_value=None):
            text = readable_text("<html><body><main><p>Main content.</p></main></body></html>")
        assert "Main content." in text

    def test_uses_trafilatura_result(self) -> None:
        with patch("backend.scraper.extractor.trafilatura.extract", return_value="clean"):
            assert readable_text("<p>x</p>", url="https://example.com/") == "clean"


class TestSummarizePage:
    def test_truncates_text_and_lists(self) -> None:
        links = "".join(f'<a href="/{i}">{i}</a>' for i in range(30))
        page = normalize(f"<body><p>{'word ' * 400}</p>{links}</body>")
        summary = summarize_page(page, text_limit=50, item_limit=5)
        assert summary["body_text"].endswith("...")
        assert len(summary["body_text"]) == 53
        assert len(summary["links"]) == 5
        assert "html" not in summary
