"""API integration tests."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from docx import Document
from fastapi.testclient import TestClient

from local_rag.app import create_app
from local_rag.core.config import Settings
from local_rag.providers import embedding_client as real_embedding_client

from conftest import FakeEmbedder

TOPICS = ("retrieval", "cooking", "astronomy")


def _topic_vector(text: str) -> list[float]:
    lowered = text.lower()
    vector = [1.0 if topic in lowered else 0.0 for topic in TOPICS]
    return vector if any(vector) else [0.1, 0.1, 0.1]


class FakeGenerator:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def __call__(self, messages):
        self.prompts.append(messages[-1]["content"])
        return "Grounded answer."


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, generator: FakeGenerator) -> TestClient:
    embedder = FakeEmbedder(vector_for=_topic_vector)

    def fake_embedding_client(config):
        if config.embedding_provider == "openrouter":
            # Real client, so a missing key still fails before any request.
            return real_embedding_client(config)
        return embedder

    monkeypatch.setattr("local_rag.api.routes_ingest.embedding_client", fake_embedding_client)
    monkeypatch.setattr("local_rag.api.routes_query.embedding_client", fake_embedding_client)
    monkeypatch.setattr("local_rag.api.routes_query.generation_client", lambda config: generator)

    settings = Settings(db_path=tmp_path / "api.db", chunk_size=200, chunk_overlap=20, log_json=False)
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_ingest_search_and_answer_flow(tmp_path: Path, client: TestClient, generator: FakeGenerator) -> None:
    paths = [
        _write(tmp_path, "rag.md", "# Notes\n\nThis document is about retrieval."),
        _write(tmp_path, "food.txt", "A short text about cooking pasta."),
    ]
    ingest_resp = client.post("/ingest", json={"paths": [str(path) for path in paths]})
    assert ingest_resp.status_code == 200
    ingest_data = ingest_resp.json()
    assert ingest_data["stats"] == {"processed": 2, "failed": 0, "chunks": 2}
    assert [item["status"] for item in ingest_data["results"]] == ["processed", "processed"]

    search_resp = client.post("/search", json={"query": "tell me about retrieval", "k": 1})
    assert search_resp.status_code == 200
    (top,) = search_resp.json()["results"]
    assert top["file_name"] == "rag.md"
    assert top["similarity"] == pytest.approx(1.0)

    answer_resp = client.post("/answer", json={"query": "what about retrieval?", "k": 2})
    assert answer_resp.status_code == 200
    answer_data = answer_resp.json()
    assert answer_data["answer"] == "Grounded answer."
    assert answer_data["context"][0]["file_name"] == "rag.md"
    assert "This document is about retrieval." in generator.prompts[-1]
    assert "what about retrieval?" in generator.prompts[-1]


def test_ingest_reports_failures_per_file(tmp_path: Path, client: TestClient) -> None:
    good = _write(tmp_path, "good.txt", "astronomy for beginners")
    legacy = tmp_path / "old.doc"
    legacy.write_bytes(b"\xd0\xcf\x11\xe0")
    empty = _write(tmp_path, "empty.txt", "   ")
    missing = tmp_path / "missing.txt"

    resp = client.post("/ingest", json={"paths": [str(good), str(legacy), str(empty), str(missing)]})
    assert resp.status_code == 200
    data = resp.json()
    assert data["stats"]["processed"] == 1
    assert data["stats"]["failed"] == 3
    errors = {Path(item["path"]).name: item for item in data["results"] if item["status"] == "error"}
    assert errors["old.doc"]["error"] == "UnsupportedFormat"
    assert "Legacy .doc" in errors["old.doc"]["detail"]
    assert errors["empty.txt"]["error"] == "EmptyDocument"
    assert errors["missing.txt"]["error"] == "OSError"
    assert [item["name"] for item in client.get("/files").json()] == ["good.txt"]


def test_ingest_text_and_list_chunks(client: TestClient) -> None:
    text = "cooking " * 60
    resp = client.post("/ingest/text", json={"name": "recipes", "text": text})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["status"] == "processed"
    file_id = payload["file"]["id"]

    chunks = client.get(f"/files/{file_id}/chunks").json()
    assert len(chunks) == payload["chunks"] == 3
    assert [chunk["ordinal"] for chunk in chunks] == [0, 1, 2]
    assert chunks[0]["content"] == text[:200]


def test_blank_text_is_unprocessable(client: TestClient) -> None:
    resp = client.post("/ingest/text", json={"name": "blank", "text": "  "})
    assert resp.status_code == 422
    assert resp.json()["error"] == "EmptyDocument"


def test_search_empty_store(client: TestClient) -> None:
    resp = client.post("/search", json={"query": "anything", "k": 3})
    assert resp.status_code == 200
    assert resp.json()["results"] == []


def test_answer_without_documents_uses_placeholder(client: TestClient, generator: FakeGenerator) -> None:
    resp = client.post("/answer", json={"query": "is anyone there?"})
    assert resp.status_code == 200
    assert resp.json()["context"] == []
    assert "No context provided." in generator.prompts[-1]


def test_openrouter_without_key_is_rejected(client: TestClient) -> None:
    resp = client.post(
        "/search",
        json={"query": "retrieval", "provider": {"embedding_provider": "openrouter"}},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "InvalidConfig"
    assert body["detail"] == "OpenRouter API key is required."


def test_request_validation(client: TestClient) -> None:
    assert client.post("/search", json={"query": "", "k": 3}).status_code == 422
    assert client.post("/search", json={"query": "ok", "k": 0}).status_code == 422
    assert client.post("/ingest", json={"paths": []}).status_code == 422


def test_chunks_of_unknown_file(client: TestClient) -> None:
    resp = client.get("/files/file_missing/chunks")
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


def test_delete_and_clear(tmp_path: Path, client: TestClient) -> None:
    first = client.post("/ingest/text", json={"name": "a", "text": "retrieval one"}).json()["file"]["id"]
    client.post("/ingest/text", json={"name": "b", "text": "retrieval two"})

    assert client.delete(f"/files/{first}").json() == {"status": "ok", "deleted": 1}
    assert client.delete(f"/files/{first}").json() == {"status": "noop", "deleted": 0}
    assert [item["name"] for item in client.get("/files").json()] == ["b"]

    assert client.delete("/files").json() == {"status": "ok", "deleted": 1}
    assert client.get("/files").json() == []
    assert client.post("/search", json={"query": "retrieval"}).json()["results"] == []


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "lrag_requests_total" in resp.text
    assert "lrag_index_chunks" in resp.text


def test_upload_ingests_file_bytes(client: TestClient) -> None:
    resp = client.post(
        "/ingest/upload",
        files={"file": ("notes.md", b"# Notes\n\nAll about retrieval.", "text/markdown")},
        data={"timeout": "30"},
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["status"] == "processed"
    assert payload["path"] == "notes.md"
    assert payload["chunks"] == 1
    assert payload["file"]["size_bytes"] == len(b"# Notes\n\nAll about retrieval.")

    (top,) = client.post("/search", json={"query": "retrieval", "k": 1}).json()["results"]
    assert top["file_name"] == "notes.md"


def test_upload_of_docx(client: TestClient) -> None:
    document = Document()
    document.add_paragraph("Astronomy club minutes")
    buffer = io.BytesIO()
    document.save(buffer)

    resp = client.post("/ingest/upload", files={"file": ("minutes.docx", buffer.getvalue())})
    assert resp.status_code == 200
    assert resp.json()["file"]["name"] == "minutes.docx"


def test_upload_rejects_legacy_doc(client: TestClient) -> None:
    resp = client.post("/ingest/upload", files={"file": ("old.doc", b"\xd0\xcf\x11\xe0")})
    assert resp.status_code == 415
    assert resp.json()["error"] == "UnsupportedFormat"
    assert client.get("/files").json() == []


def test_upload_requires_a_file(client: TestClient) -> None:
    assert client.post("/ingest/upload", data={"timeout": "5"}).status_code == 422
