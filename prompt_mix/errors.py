"""Exception types raised by the prompt mix library."""

from typing import Any, Dict, List, Optional


class PromptMixError(Exception):
    """Base class for library errors."""


class StorageWriteError(PromptMixError):
    """The storage slot file could not be written (disk full, quota, permissions)."""


class ImportValidationError(PromptMixError):
    """
    An import document was rejected.

    ``kind`` is one of ``parse`` (not JSON), ``format`` (neither accepted
    shape) or ``empty`` (a shape matched but produced no valid mixes).
    ``shape`` names the shape that matched, if any; ``errors`` lists the
    per-element field failures collected while validating.
    """

    MESSAGES = {
        "parse": "Failed to parse JSON file.",
        "format": "Invalid file format.",
        "empty": "No valid mixes found in the file.",
    }

    def __init__(
        self,
        kind: str,
        shape: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        detail: str = "",
    ) -> None:
        message = self.MESSAGES.get(kind, "Import failed.")
        super().__init__(message)
        self.kind = kind
        self.shape = shape
        self.errors = errors or []
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": str(self),
            "shape": self.shape,
            "errors": self.errors,
            "detail": self.detail,
        }
