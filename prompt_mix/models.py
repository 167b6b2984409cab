"""
Data Models for the Prompt Mix Library

A mix is an image URL plus the title and generation prompts used to make it.
Models serialize with the camelCase field names used by the on-disk slot and
by exported library documents.
"""

from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STORAGE_KEY = "prompt_mix_library_v1"
THEME_KEY = "theme"
LIBRARY_NAME_KEY = "prompt_mix_library_name"

EXPORT_VERSION = 1
DEFAULT_LIBRARY_NAME = "Library"
DEFAULT_IMAGE = "https://picsum.photos/400/300"


class SortOption(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    A_Z = "a-z"
    Z_A = "z-a"


class ViewMode(str, Enum):
    DETAILS = "details"
    GRID = "grid"
    LIST = "list"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


# ---------------------------------------------------------------------------
# Mix models
# ---------------------------------------------------------------------------

class MixFormData(BaseModel):
    """User-editable fields of a mix."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field("", description="Image location, treated as opaque text")
    title: str = Field(..., description="Display title")
    prompt: str = Field("", description="Positive generation prompt")
    negative_prompt: str = Field("", alias="negativePrompt", description="What to avoid")


class Mix(BaseModel):
    """A stored prompt mix."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., description="Unique mix identifier")
    url: str = Field("", description="Image location")
    title: str = Field(..., description="Display title")
    prompt: str = Field("", description="Positive generation prompt")
    negative_prompt: Optional[str] = Field(None, alias="negativePrompt")
    created_at: int = Field(..., alias="createdAt", description="Milliseconds since epoch")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        # Hand-edited documents sometimes carry numeric ids
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, dropping an unset negative prompt."""
        data = self.model_dump(by_alias=True)
        if data.get("negativePrompt") is None:
            data.pop("negativePrompt", None)
        return data

    def matches(self, needle: str) -> bool:
        """True if ``needle`` (already casefolded) occurs in any text field."""
        if needle in self.title.casefold() or needle in self.prompt.casefold():
            return True
        return bool(self.negative_prompt) and needle in self.negative_prompt.casefold()


# ---------------------------------------------------------------------------
# Import / export models
# ---------------------------------------------------------------------------

class ExportDocument(BaseModel):
    """Downloadable library document."""

    title: str = ""
    version: int = EXPORT_VERSION
    mixes: List[Mix] = Field(default_factory=list)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "version": self.version,
            "mixes": [m.to_json_dict() for m in self.mixes],
        }


class ExportResult(BaseModel):
    """A rendered export, ready to be offered as a file download."""

    filename: str
    content: bytes
    count: int = 0


class RejectedCandidate(BaseModel):
    """An import element that carried an id and title but failed validation."""

    index: int
    id: Optional[str] = None
    errors: List[str] = Field(default_factory=list)


class ParsedImport(BaseModel):
    """Validated candidates from an import document."""

    shape: str = Field(..., description="legacy-array or library-document")
    mixes: List[Mix] = Field(default_factory=list)
    title: Optional[str] = None
    version: Optional[int] = None
    skipped: int = Field(0, description="Elements lacking an id or a title")
    rejected: List[RejectedCandidate] = Field(default_factory=list)


class ImportSummary(BaseModel):
    """Outcome of a successful import."""

    added: int = 0
    duplicates: int = 0
    skipped: int = 0
    rejected: int = 0
    library_name: Optional[str] = None

    @property
    def message(self) -> str:
        return (
            f"Import Successful! Added {self.added} new mixes. "
            f"({self.duplicates} duplicates skipped)"
        )
