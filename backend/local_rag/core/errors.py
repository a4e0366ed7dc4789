"""Error taxonomy shared by the store, orchestrators, and providers."""

from __future__ import annotations

from typing import Any


class RagError(Exception):
    """Base class for every error surfaced to callers."""

    status_code: int = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "error": type(self).__name__}
        if self.details:
            payload["context"] = self.details
        return payload


class InvalidConfig(RagError):
    """Chunking parameters or provider settings are unusable."""

    status_code = 400


class InvalidArgument(RagError):
    status_code = 400


class UnsupportedFormat(RagError):
    """File extension or container cannot be turned into text."""

    status_code = 415


class EmptyDocument(RagError):
    status_code = 422


class DuplicateId(RagError):
    status_code = 409


class NotFound(RagError):
    status_code = 404


class DimensionMismatch(RagError):
    """A vector does not match the store's established dimensionality."""

    status_code = 409


class ProviderError(RagError):
    """Embedding or generation backend failed or returned a malformed payload."""

    status_code = 502


class StorageError(RagError):
    status_code = 500


class OperationCancelled(RagError):
    """Caller cancelled the operation or its deadline elapsed."""

    status_code = 408


__all__ = [
    "RagError",
    "InvalidConfig",
    "InvalidArgument",
    "UnsupportedFormat",
    "EmptyDocument",
    "DuplicateId",
    "NotFound",
    "DimensionMismatch",
    "ProviderError",
    "StorageError",
    "OperationCancelled",
]
