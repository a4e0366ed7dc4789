"""CLI entrypoint for Local RAG."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="lrag", help="Local RAG command-line interface")
files_app = typer.Typer(name="files", help="Inspect and remove ingested files")
app.add_typer(files_app, name="files")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("LRAG_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(
    method: str,
    path: str,
    host: Optional[str] = None,
    check: bool = True,
    **kwargs,
) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=300, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Cannot reach {base}: {exc}", err=True)
        raise typer.Exit(code=1)
    if check and not resp.ok:
        typer.echo(f"Request failed ({resp.status_code}): {_error_body(resp)['detail']}", err=True)
        raise typer.Exit(code=1)
    return resp


def _error_body(resp: requests.Response) -> dict[str, str]:
    try:
        body = resp.json()
    except ValueError:
        return {"detail": resp.text, "error": f"HTTP {resp.status_code}"}
    if not isinstance(body, dict):
        return {"detail": resp.text, "error": f"HTTP {resp.status_code}"}
    return {"detail": str(body.get("detail", resp.text)), "error": str(body.get("error", f"HTTP {resp.status_code}"))}


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def ingest(
    paths: List[Path] = typer.Argument(..., help="Files to ingest (.txt, .md, .text, .pdf, .docx)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds allowed for embedding each file"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Upload files to the backend to be extracted, chunked, embedded, and stored."""
    form = {"timeout": str(timeout)} if timeout is not None else {}
    results: list[dict[str, object]] = []
    for path in paths:
        local = path.expanduser()
        try:
            data = local.read_bytes()
        except OSError as exc:
            detail = f"Cannot read file: {exc}"
            results.append({"path": str(local), "status": "error", "detail": detail, "error": "OSError"})
            continue
        resp = _request(
            "POST",
            "/ingest/upload",
            host=host,
            check=False,
            files={"file": (local.name, data)},
            data=form,
        )
        if resp.ok:
            results.append({**resp.json(), "path": str(local)})
        else:
            results.append({"path": str(local), "status": "error", **_error_body(resp)})
    processed = [item for item in results if item["status"] == "processed"]
    stats = {
        "processed": len(processed),
        "failed": len(results) - len(processed),
        "chunks": sum(int(item.get("chunks", 0)) for item in processed),
    }
    _echo_json({"stats": stats, "results": results})
    if stats["failed"]:
        raise typer.Exit(code=1)


@app.command()
def search(
    q: str = typer.Argument(..., help="Query text"),
    k: int = typer.Option(5, "--k", help="Number of chunks to return"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show the chunks most similar to a query."""
    resp = _request("POST", "/search", host=host, json={"query": q, "k": k})
    _echo_json(resp.json())


@app.command()
def ask(
    q: str = typer.Argument(..., help="Question to answer"),
    k: int = typer.Option(5, "--k", help="Number of chunks used as context"),
    show_context: bool = typer.Option(False, "--context/--no-context", help="Print the retrieved chunks"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Answer a question grounded in the stored documents."""
    payload = _request("POST", "/answer", host=host, json={"query": q, "k": k}).json()
    typer.echo(payload["answer"])
    if show_context:
        typer.echo(f"\nRetrieved context ({len(payload['context'])} chunks):")
        for item in payload["context"]:
            typer.echo(f"- {item['file_name']} ({item['similarity']:.3f}): {item['content']}")


@files_app.command("list")
def list_files(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List ingested files."""
    _echo_json(_request("GET", "/files", host=host).json())


@files_app.command("remove")
def remove_file(
    file_id: str = typer.Argument(..., help="File identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Remove a file and its chunks."""
    _echo_json(_request("DELETE", f"/files/{file_id}", host=host).json())


@files_app.command("clear")
def clear_files(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Remove every file and chunk."""
    if not yes:
        typer.confirm("Delete all ingested files?", abort=True)
    _echo_json(_request("DELETE", "/files", host=host).json())


if __name__ == "__main__":
    app()
