"""CLI entrypoint for Bookworm."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

from bookworm.analytics.frequency import FrequencyCounter
from bookworm.ingest.loaders import LoaderRegistry

app = typer.Typer(name="bkw", help="Bookworm command-line interface")

DEFAULT_HOST = "http://127.0.0.1:3000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("BKW_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=120, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="Book file (.txt, .md, .pdf, .docx)"),
    title: Optional[str] = typer.Option(None, "--title", help="Book title"),
    author: Optional[str] = typer.Option(None, "--author", help="Book author"),
    genre: Optional[str] = typer.Option(None, "--genre", help="Book genre"),
    top: Optional[int] = typer.Option(None, "--top", help="Number of top words to keep"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Ingest a book file and queue it for enrichment."""
    body: dict[str, object] = {"path": str(path.expanduser().resolve())}
    for key, value in (("title", title), ("author", author), ("genre", genre), ("top_n", top)):
        if value is not None:
            body[key] = value
    resp = _request("POST", "/books/ingest", host=host, json=body)
    _echo(resp.json())


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="Book file to analyze locally"),
    top: int = typer.Option(20, "--top", help="Number of top words to print"),
) -> None:
    """Print the most frequent words of a file without contacting the server."""
    loaded = LoaderRegistry().load(path.expanduser())
    counter = FrequencyCounter()
    counter.record_many(loaded.pages)
    _echo([{"word": word, "count": count} for word, count in counter.top(top)])


@app.command()
def book(
    book_id: str = typer.Argument(..., help="Book identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show a book and its enrichment status."""
    resp = _request("GET", f"/books/{book_id}", host=host)
    _echo(resp.json())


@app.command()
def process(
    book_id: str = typer.Argument(..., help="Book identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Run enrichment for one book and wait for the result."""
    resp = _request("POST", f"/books/{book_id}/process", host=host)
    _echo(resp.json())


@app.command()
def reprocess(
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum failed books to retry"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Retry enrichment for failed books."""
    params = {"limit": limit} if limit is not None else None
    resp = _request("POST", "/books/reprocess", host=host, params=params)
    _echo(resp.json())


@app.command()
def stats(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show enrichment status counts."""
    resp = _request("GET", "/books/stats", host=host)
    _echo(resp.json())


if __name__ == "__main__":
    app()
