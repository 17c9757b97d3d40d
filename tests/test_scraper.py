"""Tests for the static fetcher and the SPA detection heuristic.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made during ``fetch_static`` tests.
- Playwright is covered separately in ``test_browser.py``.
"""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
import respx

from backend.scraper.fetcher import fetch_static, looks_like_spa
from backend.scraper.models import FetchError, FetchErrorKind, FetchResult


# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

_SIMPLE_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Test Page</title></head>
<body>
  <main>
    <p>This is the main content of the test page with enough text for extraction.</p>
    <p>It discusses topics such as renewable energy and battery technology.</p>
    <a href="https://example.com/page1">Link 1</a>
    <a href="https://example.com/page2">Link 2</a>
  </main>
</body>
</html>
"""

_SPA_HTML = """\
<!DOCTYPE html>
<html>
<head><title>React App</title></head>
<body>
  <div id="root"></div>
  <script src="/bundle.js"></script>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# looks_like_spa unit tests
# ---------------------------------------------------------------------------

class TestLooksLikeSpa:
    def test_detects_react_root_div(self) -> None:
        assert looks_like_spa(_SPA_HTML) is True

    def test_populated_root_div_is_not_spa(self) -> None:
        html = '<html><body><div id="root"><p>Server rendered</p></div></body></html>'
        assert looks_like_spa(html) is False

    def test_detects_next_data(self) -> None:
        html = "<html><body><script>window.__NEXT_DATA__ = {}</script></body></html>"
        assert looks_like_spa(html) is True

    def test_detects_angular(self) -> None:
        html = '<html ng-version="12.0.0"><body>content</body></html>'
        assert looks_like_spa(html) is True

    def test_detects_react_root_attr(self) -> None:
        html = '<html><body><div data-reactroot=""></div></body></html>'
        assert looks_like_spa(html) is True

    def test_normal_page_not_spa(self) -> None:
        assert looks_like_spa(_SIMPLE_HTML) is False

    def test_minimal_body_heuristic(self) -> None:
        # Long HTML (>2000 chars) with next-to-no visible text triggers the heuristic
        big_script = "<script>" + "x" * 2500 + "</script>"
        html = f"<html><body>{big_script}<p> </p></body></html>"
        assert looks_like_spa(html) is True


# ---------------------------------------------------------------------------
# fetch_static tests
# ---------------------------------------------------------------------------

class TestFetchStatic:
    def test_successful_fetch_returns_result(self) -> None:
        with respx.mock:
            respx.get("https://example.com/article").mock(
                return_value=httpx.Response(200, text=_SIMPLE_HTML)
            )
            raw = fetch_static("https://example.com/article")

        assert isinstance(raw, FetchResult)
        assert raw.url == "https://example.com/article"
        assert raw.status_code == 200
        assert raw.screenshot is None
        assert "<title>Test Page</title>" in raw.html

    def test_sends_browser_user_agent(self) -> None:
        with respx.mock:
            route = respx.get("https://example.com/").mock(
                return_value=httpx.Response(200, text=_SIMPLE_HTML)
            )
            fetch_static("https://example.com/")

        assert "Mozilla/5.0" in route.calls.last.request.headers["user-agent"]

    def test_non_success_status_is_unreachable(self) -> None:
        with respx.mock:
            respx.get("https://example.com/missing").mock(
                return_value=httpx.Response(404, text="Not Found")
            )
            with pytest.raises(FetchError) as excinfo:
                fetch_static("https://example.com/missing")

        assert excinfo.value.kind is FetchErrorKind.UNREACHABLE
        assert excinfo.value.status == 404

    def test_connection_error_is_unreachable(self) -> None:
        with respx.mock:
            respx.get("https://down.example.com/").mock(
                side_effect=httpx.ConnectError("connection refused")
            )
            with pytest.raises(FetchError) as excinfo:
                fetch_static("https://down.example.com/")

        assert excinfo.value.kind is FetchErrorKind.UNREACHABLE
        assert excinfo.value.status is None
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)

    def test_timeout_is_timeout(self) -> None:
        with respx.mock:
            respx.get("https://slow.example.com/").mock(
                side_effect=httpx.ReadTimeout("read timed out")
            )
            with pytest.raises(FetchError) as excinfo:
                fetch_static("https://slow.example.com/", timeout=0.5)

        assert excinfo.value.kind is FetchErrorKind.TIMEOUT

    def test_follows_redirects(self) -> None:
        with respx.mock:
            respx.get("https://example.com/old").mock(
                return_value=httpx.Response(301, headers={"Location": "https://example.com/new"})
            )
            respx.get("https://example.com/new").mock(
                return_value=httpx.Response(200, text=_SIMPLE_HTML)
            )
            raw = fetch_static("https://example.com/old")

        assert raw.status_code == 200

    def test_no_sleep_on_fetch(self) -> None:
        """Retry and pacing policy belongs to callers, not the fetcher."""
        with respx.mock:
            respx.get("https://example.com/").mock(
                return_value=httpx.Response(200, text=_SIMPLE_HTML)
            )
            with patch("time.sleep") as mock_sleep:
                fetch_static("https://example.com/")

        mock_sleep.assert_not_called()
