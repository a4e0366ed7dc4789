"""Test fixtures for Local RAG."""

from __future__ import annotations

import os
import sys
import threading
from pathlib import Path
from typing import Callable, Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from local_rag.models.entities import File  # noqa: E402
from local_rag.store.vector_store import VectorStore  # noqa: E402
from local_rag.utils.time import utc_now  # noqa: E402


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate LRAG_* environment and the cached settings between tests."""
    for key in list(os.environ):
        if key.startswith("LRAG_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LRAG_DB_PATH", str(tmp_path / "rag.db"))
    monkeypatch.setenv("LRAG_CONFIG", str(tmp_path / "absent-config.yaml"))

    from local_rag.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store(tmp_path: Path) -> VectorStore:
    with VectorStore.from_path(tmp_path / "store.db") as vector_store:
        yield vector_store


class FakeEmbedder:
    """Deterministic embedder that records calls and can fail on demand."""

    def __init__(
        self,
        vector_for: Callable[[str], Sequence[float]] | None = None,
        fail_on: int | None = None,
    ) -> None:
        self.vector_for = vector_for or _default_vector
        self.fail_on = fail_on
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, text: str) -> list[float]:
        with self._lock:
            index = len(self.calls)
            self.calls.append(text)
        if self.fail_on is not None and index == self.fail_on:
            raise RuntimeError(f"embedding backend unavailable for call {index}")
        return list(self.vector_for(text))


def _default_vector(text: str) -> list[float]:
    return [float(len(text)), float(ord(text[0])) if text else 0.0, 1.0]


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


def make_file(name: str = "notes.txt", file_id: str | None = None, size_bytes: int = 42) -> File:
    return File(
        id=file_id or f"file_{name.replace('.', '_')}",
        name=name,
        size_bytes=size_bytes,
        processed_at=utc_now(),
    )
