"""
Import / Export for the Prompt Mix Library

Export writes the whole library as one JSON document:

    {"title": "My Library", "version": 1, "mixes": [{...}, ...]}

Import accepts that document or the legacy bare array of mixes. Elements
without an ``id`` and a ``title`` are skipped; the rest are validated into
``Mix`` records, deduplicated by id against the store (and against earlier
elements of the same document) and merged in front of the existing mixes.
"""

import json
import re
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from .errors import ImportValidationError
from .models import (
    Mix,
    ExportDocument,
    ExportResult,
    ImportSummary,
    ParsedImport,
    RejectedCandidate,
    DEFAULT_LIBRARY_NAME,
)
from .store import MixStore

SHAPE_LEGACY_ARRAY = "legacy-array"
SHAPE_LIBRARY_DOCUMENT = "library-document"

_WHITESPACE_RUN = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def build_export_document(mixes: Sequence[Mix], library_name: str = "") -> ExportDocument:
    return ExportDocument(title=library_name, mixes=list(mixes))


def sanitize_library_name(library_name: str) -> str:
    """'My  Cool Library ' -> 'My-Cool-Library'; empty -> 'Library'."""
    return _WHITESPACE_RUN.sub("-", (library_name or "").strip()) or DEFAULT_LIBRARY_NAME


def export_filename(count: int, library_name: str, today: Optional[date] = None) -> str:
    """``{count}-{library name}-{YYYY-MM-DD}.json``."""
    today = today or datetime.now(timezone.utc).date()
    return f"{count}-{sanitize_library_name(library_name)}-{today.isoformat()}.json"


def export_library(store: MixStore, today: Optional[date] = None) -> ExportResult:
    """Render the store as a downloadable document."""
    mixes = store.mixes
    document = build_export_document(mixes, store.library_name)
    content = json.dumps(document.to_json_dict(), indent=2, ensure_ascii=False)
    filename = export_filename(len(mixes), store.library_name, today)
    logger.info(f"Exported {len(mixes)} mixes as {filename}")
    return ExportResult(filename=filename, content=content.encode("utf-8"), count=len(mixes))


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def _decode(raw: Union[str, bytes]) -> Any:
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8-sig")
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
        raise ImportValidationError("parse", detail=str(e)) from e


def _format_errors(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or 'mix'}: {err['msg']}"
        for err in exc.errors()
    ]


def parse_import(raw: Union[str, bytes], now: Optional[int] = None) -> ParsedImport:
    """
    Validate an import document into ``Mix`` candidates.

    Args:
        raw: Document text (or UTF-8 bytes).
        now: Timestamp (ms) given to candidates that carry no ``createdAt``.

    Raises:
        ImportValidationError: not JSON, neither accepted shape, or no valid mixes.
    """
    data = _decode(raw)

    title: Optional[str] = None
    version: Optional[int] = None
    if isinstance(data, list):
        shape = SHAPE_LEGACY_ARRAY
        elements = data
    elif isinstance(data, dict) and isinstance(data.get("mixes"), list):
        shape = SHAPE_LIBRARY_DOCUMENT
        elements = data["mixes"]
        if isinstance(data.get("title"), str) and data["title"]:
            title = data["title"]
        if isinstance(data.get("version"), int):
            version = data["version"]
    else:
        raise ImportValidationError("format", detail=f"top-level {type(data).__name__}")

    if now is None:
        now = int(datetime.now(timezone.utc).timestamp() * 1000)

    mixes: List[Mix] = []
    rejected: List[RejectedCandidate] = []
    skipped = 0
    for index, element in enumerate(elements):
        if not isinstance(element, dict) or not element.get("id") or not element.get("title"):
            skipped += 1
            continue
        candidate = dict(element)
        if "createdAt" not in candidate and "created_at" not in candidate:
            candidate["createdAt"] = now
        try:
            mixes.append(Mix.model_validate(candidate))
        except ValidationError as e:
            rejected.append(RejectedCandidate(
                index=index,
                id=str(element.get("id")),
                errors=_format_errors(e),
            ))

    if rejected:
        logger.warning(f"Import: {len(rejected)} mixes failed validation")
    if not mixes:
        raise ImportValidationError(
            "empty",
            shape=shape,
            errors=[r.model_dump() for r in rejected],
            detail=f"{skipped} elements without id/title",
        )

    return ParsedImport(
        shape=shape,
        mixes=mixes,
        title=title,
        version=version,
        skipped=skipped,
        rejected=rejected,
    )


def import_library(store: MixStore, raw: Union[str, bytes]) -> ImportSummary:
    """
    Parse ``raw`` and merge its new mixes into ``store``.

    On any ImportValidationError the store and library name are untouched.
    """
    parsed = parse_import(raw, now=store.clock())

    seen = store.ids()
    fresh: List[Mix] = []
    for mix in parsed.mixes:
        if mix.id in seen:
            continue
        seen.add(mix.id)
        fresh.append(mix)

    store.merge(fresh)
    if parsed.title:
        store.set_library_name(parsed.title)

    summary = ImportSummary(
        added=len(fresh),
        duplicates=len(parsed.mixes) - len(fresh),
        skipped=parsed.skipped,
        rejected=len(parsed.rejected),
        library_name=parsed.title,
    )
    logger.info(
        f"Imported {parsed.shape}: {summary.added} added, "
        f"{summary.duplicates} duplicates, {summary.skipped} skipped"
    )
    return summary
