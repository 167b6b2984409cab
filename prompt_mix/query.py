"""
Query Pipeline — derive the displayed list from the canonical one.

    process_mixes(store.mixes, query="sunset", sort="a-z")

Pure functions; the input list is never reordered in place.
"""

from typing import List, Optional, Sequence, Tuple, Union

from pyuca import Collator

from .models import Mix, SortOption

_COLLATOR: Optional[Collator] = None


def filter_mixes(mixes: Sequence[Mix], query: str = "") -> List[Mix]:
    """Case-insensitive substring match on title, prompt and negative prompt."""
    query = query or ""
    if not query.strip():
        return list(mixes)
    # Only the emptiness test trims; "red " still requires the trailing space.
    needle = query.casefold()
    return [m for m in mixes if m.matches(needle)]


def _collator() -> Collator:
    global _COLLATOR
    if _COLLATOR is None:
        # Loads the Unicode collation table once
        _COLLATOR = Collator()
    return _COLLATOR


def title_sort_key(title: str) -> Tuple[tuple, str, str]:
    """Unicode collation key with deterministic tie-breakers."""
    folded = title.casefold()
    return (_collator().sort_key(folded), folded, title)


def sort_mixes(mixes: Sequence[Mix], sort: Union[SortOption, str] = SortOption.NEWEST) -> List[Mix]:
    """Order mixes by ``sort``. Unknown options keep the input order."""
    try:
        option = SortOption(sort)
    except ValueError:
        return list(mixes)

    if option == SortOption.NEWEST:
        return sorted(mixes, key=lambda m: m.created_at, reverse=True)
    if option == SortOption.OLDEST:
        return sorted(mixes, key=lambda m: m.created_at)
    if option == SortOption.A_Z:
        return sorted(mixes, key=lambda m: title_sort_key(m.title))
    return sorted(mixes, key=lambda m: title_sort_key(m.title), reverse=True)


def process_mixes(
    mixes: Sequence[Mix],
    query: str = "",
    sort: Union[SortOption, str] = SortOption.NEWEST,
) -> List[Mix]:
    """Filter then sort."""
    return sort_mixes(filter_mixes(mixes, query), sort)
