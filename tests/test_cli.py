"""Tests for the typer CLI."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from backend.db import get_connection, history, init_db
from backend.scraper.models import FetchError, FetchErrorKind, FetchResult
from cli.main import app

runner = CliRunner()

_HTML = (
    "<html><head><title>CLI Page</title></head>"
    "<body><h2>First</h2><h2>Second</h2><a href='/x'>x</a></body></html>"
)
_URL = "https://example.com/"


@pytest.fixture
def clean_db(tmp_path, monkeypatch):
    """Point the workspace (and so the DB) at a temp directory."""
    monkeypatch.setattr("backend.config.settings.workspace_dir", tmp_path)
    return tmp_path / "webharvest.db"


@pytest.fixture
def static_fetch():
    with patch(
        "backend.scraper.fetcher.fetch_static",
        return_value=FetchResult(url=_URL, html=_HTML, status_code=200),
    ) as mock:
        yield mock


def test_db_init(clean_db):
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0
    assert "Database ready" in result.stdout
    assert clean_db.exists()


def test_scrape_text_output(clean_db, static_fetch):
    result = runner.invoke(app, ["scrape", "--url", _URL, "--mode", "static"])
    assert result.exit_code == 0
    assert "CLI Page" in result.stdout
    assert "First Second" in result.stdout


def test_scrape_json_output(clean_db, static_fetch):
    result = runner.invoke(
        app, ["--log-level", "WARNING", "scrape", "--url", _URL, "--mode", "static", "--json"]
    )
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["title"] == "CLI Page"
    assert data["links"] == [{"href": "/x", "text": "x"}]


def test_scrape_main_content_text(clean_db, static_fetch):
    with patch("backend.scraper.extractor.trafilatura.extract", return_value="Main text."):
        result = runner.invoke(
            app, ["--log-level", "WARNING", "scrape", "--url", _URL, "--mode", "static", "--text"]
        )
    assert result.exit_code == 0
    assert result.stdout == "Main text.\n"


def test_scrape_writes_screenshot(clean_db, tmp_path):
    rendered = FetchResult(url=_URL, html=_HTML, status_code=200, screenshot=b"\x89PNG")
    out = tmp_path / "shot.png"
    with patch("backend.scraper.browser.fetch_rendered", return_value=rendered):
        result = runner.invoke(
            app, ["scrape", "--url", _URL, "--mode", "rendered", "--screenshot", str(out)]
        )
    assert result.exit_code == 0
    assert out.read_bytes() == b"\x89PNG"


def test_scrape_save(clean_db, static_fetch):
    result = runner.invoke(app, ["scrape", "--url", _URL, "--mode", "static", "--save"])
    assert result.exit_code == 0

    conn = get_connection()
    init_db(conn)
    tasks = history.list_tasks(conn)
    conn.close()
    assert [t.url for t in tasks] == [_URL]
    assert tasks[0].results["page"]["title"] == "CLI Page"


def test_scrape_failure_exits_nonzero(clean_db):
    error = FetchError(FetchErrorKind.TIMEOUT, "too slow")
    with patch("backend.scraper.fetcher.fetch_static", side_effect=error):
        result = runner.invoke(app, ["scrape", "--url", _URL, "--mode", "static"])
    assert result.exit_code == 1


def test_extract(clean_db, static_fetch):
    result = runner.invoke(
        app, ["--log-level", "WARNING", "extract", "--url", _URL, "--selector", "h2", "--mode", "static"]
    )
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["First", "Second"]


def test_extract_no_match(clean_db, static_fetch):
    result = runner.invoke(app, ["extract", "--url", _URL, "--selector", "table", "--mode", "static"])
    assert result.exit_code == 0
    assert "No elements match" in result.stdout


def test_history_commands(clean_db):
    conn = get_connection()
    init_db(conn)
    task = history.save_task(conn, _URL, instructions="titles")
    conn.close()

    listed = runner.invoke(app, ["history", "list"])
    assert task.id in listed.stdout

    shown = runner.invoke(app, ["--log-level", "WARNING", "history", "show", task.id])
    assert json.loads(shown.stdout)["instructions"] == "titles"

    deleted = runner.invoke(app, ["history", "delete", task.id])
    assert deleted.exit_code == 0
    assert runner.invoke(app, ["history", "delete", task.id]).exit_code == 1
    assert "No tasks found" in runner.invoke(app, ["history", "list"]).stdout


def test_serve_runs_uvicorn(clean_db):
    with patch("uvicorn.run") as run:
        result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    run.assert_called_once_with("backend.api.app:app", host="127.0.0.1", port=9000, reload=False)
