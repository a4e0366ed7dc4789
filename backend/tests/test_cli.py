"""Tests for the command-line client."""

from __future__ import annotations

from typing import Any

import pytest
import requests
from typer.testing import CliRunner

from local_rag.cli.main import app

runner = CliRunner()


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = str(payload)

    def json(self) -> Any:
        return self._payload


@pytest.fixture
def fake_request(monkeypatch: pytest.MonkeyPatch):
    calls: list[dict[str, Any]] = []

    def install(response: FakeResponse | Exception):
        def fake(method, url, timeout=None, **kwargs):
            calls.append({"method": method, "url": url, **kwargs})
            if isinstance(response, Exception):
                raise response
            return response

        monkeypatch.setattr("local_rag.cli.main.requests.request", fake)
        return calls

    return install


def test_search_posts_query(fake_request) -> None:
    calls = fake_request(FakeResponse({"results": []}))
    result = runner.invoke(app, ["search", "vector stores", "--k", "3", "--host", "http://rag.test/"])
    assert result.exit_code == 0
    assert calls[0]["url"] == "http://rag.test/search"
    assert calls[0]["json"] == {"query": "vector stores", "k": 3}


def test_ask_prints_answer_and_context(fake_request) -> None:
    payload = {
        "answer": "Forty-two.",
        "context": [{"file_name": "guide.txt", "similarity": 0.91, "content": "The answer is 42."}],
    }
    fake_request(FakeResponse(payload))
    result = runner.invoke(app, ["ask", "What is the answer?", "--context"])
    assert result.exit_code == 0
    assert "Forty-two." in result.stdout
    assert "guide.txt (0.910)" in result.stdout


def test_ingest_uploads_file_contents(fake_request, tmp_path) -> None:
    local = tmp_path / "notes.md"
    local.write_bytes(b"# Notes\n\nretrieval")
    calls = fake_request(FakeResponse({"path": "notes.md", "status": "processed", "chunks": 1}))

    result = runner.invoke(app, ["ingest", str(local), "--timeout", "30", "--host", "http://rag.test"])

    assert result.exit_code == 0
    (call,) = calls
    assert call["url"] == "http://rag.test/ingest/upload"
    assert call["files"] == {"file": ("notes.md", b"# Notes\n\nretrieval")}
    assert call["data"] == {"timeout": "30.0"}
    assert '"processed": 1' in result.stdout


def test_ingest_reports_rejected_and_unreadable_files(fake_request, tmp_path) -> None:
    legacy = tmp_path / "old.doc"
    legacy.write_bytes(b"\xd0\xcf\x11\xe0")
    calls = fake_request(
        FakeResponse({"detail": "Legacy .doc files are not supported.", "error": "UnsupportedFormat"}, status_code=415)
    )

    result = runner.invoke(app, ["ingest", str(legacy), str(tmp_path / "missing.txt")])

    assert result.exit_code == 1
    assert len(calls) == 1
    assert "UnsupportedFormat" in result.stdout
    assert "Cannot read file" in result.stdout
    assert '"failed": 2' in result.stdout


def test_error_detail_is_reported(fake_request) -> None:
    fake_request(FakeResponse({"detail": "File 'x' not found"}, status_code=404))
    result = runner.invoke(app, ["files", "remove", "x"])
    assert result.exit_code == 1
    assert "File 'x' not found" in result.output


def test_unreachable_server(fake_request) -> None:
    fake_request(requests.ConnectionError("refused"))
    result = runner.invoke(app, ["files", "list"])
    assert result.exit_code == 1
    assert "Cannot reach" in result.output


def test_clear_requires_confirmation(fake_request) -> None:
    calls = fake_request(FakeResponse({"status": "ok", "deleted": 2}))
    result = runner.invoke(app, ["files", "clear"], input="n\n")
    assert result.exit_code == 1
    assert calls == []
    result = runner.invoke(app, ["files", "clear", "--yes"])
    assert result.exit_code == 0
    assert calls[0]["method"] == "DELETE"
