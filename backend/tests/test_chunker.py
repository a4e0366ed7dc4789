"""Tests for chunker."""

import math

import pytest

from local_rag.core.errors import InvalidArgument, InvalidConfig
from local_rag.ingest.chunker import build_chunks, chunk_text

from conftest import make_file


def _reassemble(windows: list[str], overlap: int) -> str:
    if not windows:
        return ""
    return windows[0] + "".join(window[overlap:] for window in windows[1:])


def test_default_windows_are_500_with_100_overlap() -> None:
    text = "".join(chr(ord("a") + i % 26) for i in range(1000))
    windows = chunk_text(text)
    assert [len(window) for window in windows] == [500, 500, 200]
    assert windows[1] == text[400:900]
    assert windows[0][-100:] == windows[1][:100]


def test_empty_text_yields_no_chunks() -> None:
    assert chunk_text("") == []


def test_final_window_is_truncated_not_padded() -> None:
    windows = chunk_text("abcdefghij", size=4, overlap=1)
    assert windows == ["abcd", "defg", "ghij", "j"]


@pytest.mark.parametrize(
    ("length", "size", "overlap"),
    [(1, 5, 0), (9, 4, 1), (450, 500, 100), (1234, 100, 25), (73, 10, 9)],
)
def test_windows_cover_text_without_gaps(length: int, size: int, overlap: int) -> None:
    text = "".join(chr(ord("A") + i % 50) for i in range(length))
    windows = chunk_text(text, size=size, overlap=overlap)
    assert _reassemble(windows, overlap) == text
    assert len(windows) == math.ceil(length / (size - overlap))
    assert all(0 < len(window) <= size for window in windows)


def test_windows_count_code_points_not_bytes() -> None:
    text = "héllo wörld ünïcode ✓✓✓"
    windows = chunk_text(text, size=5, overlap=2)
    assert all(len(window) <= 5 for window in windows)
    assert _reassemble(windows, 2) == text


@pytest.mark.parametrize(("size", "overlap"), [(100, 100), (100, 150), (0, 0), (10, -1)])
def test_invalid_parameters_raise(size: int, overlap: int) -> None:
    with pytest.raises(InvalidConfig):
        chunk_text("some text", size=size, overlap=overlap)


def test_build_chunks_assigns_ordinals_and_file_reference() -> None:
    file = make_file("guide.md")
    chunks = build_chunks(file, ["one", "two"], [[1, 0], [0, 1]])
    assert [chunk.ordinal for chunk in chunks] == [0, 1]
    assert all(chunk.file_id == file.id and chunk.file_name == "guide.md" for chunk in chunks)
    assert chunks[1].vector == (0.0, 1.0)
    assert len({chunk.id for chunk in chunks}) == 2


def test_build_chunks_rejects_missing_vectors() -> None:
    with pytest.raises(InvalidArgument):
        build_chunks(make_file(), ["one", "two"], [[1.0, 0.0]])
