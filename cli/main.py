"""WebHarvest CLI: entry-point for scraping and history operations.

Usage:
    python cli/main.py --help

Command groups:
    db        database setup
    scrape    fetch + normalize one page
    extract   elements matching a CSS selector
    history   saved scrape tasks
    serve     run the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from backend.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from backend.cache import ResultCache
from backend.config import settings
from backend.db import get_connection, history, init_db
from backend.log import configure_logging
from backend.scraper import FetchError, ScrapeMode, ScrapeService, UrlNotAllowed
from backend.scraper.extractor import readable_text, summarize_page
from backend.security import UrlPolicy

app = typer.Typer(
    name="webharvest",
    help="WebHarvest scraper CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    configure_logging(log_level)


def _service() -> ScrapeService:
    cache = ResultCache(capacity=settings.cache_capacity, default_ttl=settings.cache_ttl)
    return ScrapeService(cache, UrlPolicy.from_settings())


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Scrape commands
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Option(..., help="URL to scrape."),
    mode: ScrapeMode = typer.Option(ScrapeMode.AUTO, help="auto | static | rendered | stealth."),
    wait_for: Optional[str] = typer.Option(None, "--wait-for", help="CSS selector to wait for."),
    timeout: Optional[float] = typer.Option(None, help="Fetch timeout in seconds."),
    screenshot: Optional[Path] = typer.Option(None, help="Write the PNG screenshot here."),
    as_json: bool = typer.Option(False, "--json", help="Print the normalized page as JSON."),
    as_text: bool = typer.Option(False, "--text", help="Print only the main-content text."),
    save: bool = typer.Option(False, help="Store the result in the history table."),
) -> None:
    """Scrape a URL and print the normalized page."""
    if not (as_json or as_text):
        typer.echo(f"[scrape] Fetching {url!r} (mode={mode.value}) …", err=True)
    try:
        result = _service().scrape(url, wait_for, mode=mode, timeout=timeout)
    except (FetchError, UrlNotAllowed, ValueError) as exc:
        typer.echo(f"[scrape] Error: {exc}", err=True)
        raise typer.Exit(1)

    page = result.page
    if screenshot is not None:
        if result.screenshot is None:
            typer.echo("[scrape] No screenshot (page was fetched statically).", err=True)
        else:
            screenshot.write_bytes(result.screenshot)
            typer.echo(f"[scrape] Screenshot written to {screenshot}", err=True)

    if save:
        conn = get_connection()
        init_db(conn)
        try:
            task = history.save_task(
                conn, url, wait_for=wait_for, results={"page": summarize_page(page)}
            )
        finally:
            conn.close()
        typer.echo(f"[scrape] Saved as task {task.id}", err=True)

    if as_json:
        typer.echo(json.dumps(page.to_dict(include_html=False), indent=2, ensure_ascii=False))
        return
    if as_text:
        typer.echo(readable_text(page.html, result.url))
        return

    typer.echo(f"[scrape] Title  : {page.title or '(none)'}")
    typer.echo(f"[scrape] Words  : {len(page.body_text.split())}")
    typer.echo(f"[scrape] Links  : {len(page.links)}")
    typer.echo(f"[scrape] Images : {len(page.images)}")
    typer.echo(f"[scrape] JSON-LD: {len(page.structured_data)}")
    typer.echo("")
    typer.echo(page.body_text)


@app.command("extract")
def extract(
    url: str = typer.Option(..., help="URL to scrape."),
    selector: str = typer.Option(..., help="CSS selector."),
    mode: ScrapeMode = typer.Option(ScrapeMode.AUTO, help="auto | static | rendered | stealth."),
    wait_for: Optional[str] = typer.Option(None, "--wait-for", help="CSS selector to wait for."),
    html: bool = typer.Option(False, "--html", help="Print inner HTML instead of text."),
) -> None:
    """Print every element of a page matching a CSS selector."""
    try:
        elements = _service().extract(url, selector, wait_for, mode=mode)
    except (FetchError, UrlNotAllowed, ValueError) as exc:
        typer.echo(f"[extract] Error: {exc}", err=True)
        raise typer.Exit(1)

    if not elements:
        typer.echo(f"[extract] No elements match {selector!r}.")
        return
    for element in elements:
        typer.echo(element.inner_html if html else element.text)


# ---------------------------------------------------------------------------
# History commands
# ---------------------------------------------------------------------------
history_app = typer.Typer(help="Saved scrape tasks.", no_args_is_help=True)
app.add_typer(history_app, name="history")


@history_app.command("list")
def history_list(
    limit: int = typer.Option(20, help="Maximum number of tasks."),
) -> None:
    """List saved tasks, newest first."""
    conn = get_connection()
    init_db(conn)
    tasks = history.list_tasks(conn, limit=limit)
    conn.close()
    if not tasks:
        typer.echo("[history list] No tasks found.")
        return
    for t in tasks:
        typer.echo(f"  {t.id}  {t.created_at}  {t.url}")


@history_app.command("show")
def history_show(task_id: str = typer.Argument(..., help="Task id.")) -> None:
    """Print one task as JSON."""
    conn = get_connection()
    init_db(conn)
    task = history.get_task(conn, task_id)
    conn.close()
    if task is None:
        typer.echo(f"[history show] Task {task_id!r} not found.", err=True)
        raise typer.Exit(1)
    typer.echo(json.dumps(
        {
            "id": task.id,
            "url": task.url,
            "instructions": task.instructions,
            "wait_for": task.wait_for,
            "results": task.results,
            "created_at": task.created_at,
        },
        indent=2,
        ensure_ascii=False,
    ))


@history_app.command("delete")
def history_delete(task_id: str = typer.Argument(..., help="Task id.")) -> None:
    """Delete one task."""
    conn = get_connection()
    init_db(conn)
    removed = history.delete_task(conn, task_id)
    conn.close()
    if not removed:
        typer.echo(f"[history delete] Task {task_id!r} not found.", err=True)
        raise typer.Exit(1)
    typer.echo(f"[history delete] Deleted {task_id}")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("backend.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
