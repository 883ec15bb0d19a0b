"""Link preview CLI — run the preview pipeline or the API server.

Usage:
    linkpreview --help

Commands:
    preview   → validate, fetch and extract one URL, print JSON
    validate  → run only the SSRF check
    serve     → start the HTTP API with uvicorn
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer

from linkpreview.config import settings
from linkpreview.preview import PreviewError, build_preview, validate_url

app = typer.Typer(
    name="linkpreview",
    help="Link preview service CLI.",
    no_args_is_help=True,
)


@app.command("preview")
def preview(
    url: str = typer.Argument(..., help="URL of the page to preview."),
    compact: bool = typer.Option(False, "--compact", help="Print JSON on one line."),
) -> None:
    """Fetch *url* and print its preview metadata as JSON."""
    try:
        result = asyncio.run(build_preview(url))
    except PreviewError as exc:
        typer.echo(f"[preview] Error: {exc}", err=True)
        raise typer.Exit(code=1)

    indent = None if compact else 2
    typer.echo(json.dumps(result.to_dict(), indent=indent, ensure_ascii=False))


@app.command("validate")
def validate(
    url: str = typer.Argument(..., help="URL to check."),
) -> None:
    """Check that *url* resolves only to public addresses."""
    try:
        canonical = asyncio.run(validate_url(url))
    except PreviewError as exc:
        typer.echo(f"[validate] Blocked: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"[validate] OK: {canonical}")


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Interface to bind (default: settings.host)."),
    port: Optional[int] = typer.Option(None, help="Port to listen on (default: settings.port)."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes."),
) -> None:
    """Start the preview API server."""
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    typer.echo(f"[serve] Server running at http://{bind_host}:{bind_port}")
    uvicorn.run(
        "linkpreview.api.app:app",
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
