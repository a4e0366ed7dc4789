"""Plain-text extraction for uploaded files."""

from __future__ import annotations

import io
from pathlib import PurePath

import fitz
from docx import Document

from local_rag.core.errors import UnsupportedFormat

PAGE_SEPARATOR = "\n\n"
LEGACY_DOC_MESSAGE = "Legacy .doc files are not supported. Please save as .docx or .pdf first."


class BaseExtractor:
    """Common extractor interface."""

    suffixes: tuple[str, ...] = ()

    def can_extract(self, extension: str) -> bool:
        return extension in self.suffixes

    def extract(self, data: bytes) -> str:  # pragma: no cover - interface
        raise NotImplementedError


class PlainTextExtractor(BaseExtractor):
    suffixes = (".txt", ".md", ".text")

    def extract(self, data: bytes) -> str:
        return data.decode("utf-8", errors="replace")


class PDFExtractor(BaseExtractor):
    suffixes = (".pdf",)

    def extract(self, data: bytes) -> str:
        try:
            with fitz.open(stream=data, filetype="pdf") as doc:
                pages = [page.get_text("text") for page in doc]
        except Exception as exc:  # PyMuPDF raises FileDataError/RuntimeError for broken streams
            raise UnsupportedFormat(f"Could not read PDF: {exc}") from exc
        return PAGE_SEPARATOR.join(pages)


class DocxExtractor(BaseExtractor):
    suffixes = (".docx",)

    def extract(self, data: bytes) -> str:
        try:
            document = Document(io.BytesIO(data))
        except Exception as exc:  # python-docx raises zipfile/lxml/KeyError variants
            raise UnsupportedFormat(f"Could not read DOCX: {exc}") from exc
        return "\n".join(paragraph.text for paragraph in document.paragraphs)


class ExtractorRegistry:
    """Registry that selects an extractor by file extension."""

    def __init__(self) -> None:
        self._extractors: list[BaseExtractor] = [
            PlainTextExtractor(),
            PDFExtractor(),
            DocxExtractor(),
        ]

    def register(self, extractor: BaseExtractor) -> None:
        self._extractors.append(extractor)

    def for_extension(self, extension: str) -> BaseExtractor | None:
        for extractor in self._extractors:
            if extractor.can_extract(extension):
                return extractor
        return None

    def extract(self, data: bytes, extension: str) -> str:
        normalized = normalize_extension(extension)
        if normalized == ".doc":
            raise UnsupportedFormat(LEGACY_DOC_MESSAGE, extension=normalized)
        extractor = self.for_extension(normalized)
        if extractor is None:
            raise UnsupportedFormat(f"Unsupported file type: {normalized or '(none)'}", extension=normalized)
        return extractor.extract(data)


def normalize_extension(extension: str) -> str:
    value = extension.strip().lower()
    if value and not value.startswith("."):
        value = f".{value}"
    return value


def extension_of(name: str) -> str:
    return PurePath(name).suffix.lower()


_DEFAULT_REGISTRY = ExtractorRegistry()


def extract_text(data: bytes, extension: str) -> str:
    """Turn file bytes into plain text according to their extension."""
    return _DEFAULT_REGISTRY.extract(data, extension)


__all__ = [
    "ExtractorRegistry",
    "extract_text",
    "extension_of",
    "normalize_extension",
    "LEGACY_DOC_MESSAGE",
]
