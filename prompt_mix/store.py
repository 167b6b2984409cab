"""
Record Store for the Prompt Mix Library

Owns the canonical list of mixes, the library name and the theme preference.
Each lives in its own storage slot. The mix list is always persisted
wholesale: every mutation rewrites the full list.

Construct one store per session and pass it to whatever needs it:

    store = MixStore(LocalStorage(settings.storage_path))
    store.initialize()
"""

import json
import random
import time
import uuid
from typing import Callable, Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError

from .errors import StorageWriteError
from .models import (
    Mix,
    MixFormData,
    Theme,
    STORAGE_KEY,
    THEME_KEY,
    LIBRARY_NAME_KEY,
)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
    return int(time.time() * 1000)


def _to_base36(n: int) -> str:
    if n <= 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def fallback_id(timestamp_ms: Optional[int] = None) -> str:
    """Base-36 timestamp plus a base-36 random suffix."""
    ts = now_ms() if timestamp_ms is None else timestamp_ms
    return _to_base36(ts) + _to_base36(random.getrandbits(52))


def generate_id() -> str:
    """Random UUID string, or a timestamp-based id if no UUID source is usable."""
    try:
        return str(uuid.uuid4())
    except (NotImplementedError, OSError):
        # uuid4 needs os.urandom; some sandboxed interpreters lack it
        return fallback_id()


def seed_mixes(now: int) -> List[Mix]:
    """Starter records materialized into an empty library."""
    return [
        Mix(
            id="1",
            url="https://picsum.photos/id/1018/800/600",
            title="Mountain Cinematic",
            prompt=(
                "A cinematic wide shot of a mountain range at sunset, golden hour, "
                "volumetric lighting, photorealistic, 8k"
            ),
            negative_prompt="blur, haze, distortion, low quality, pixelated, text, watermark",
            created_at=now,
        ),
        Mix(
            id="2",
            url="https://picsum.photos/id/1015/800/600",
            title="River Valley Fantasy",
            prompt=(
                "Fantasy landscape, river flowing through a lush green valley, floating "
                "islands in the sky, dreamlike atmosphere, vivid colors"
            ),
            negative_prompt="darkness, horror, gloomy, industrial, modern buildings",
            created_at=now - 10000,
        ),
    ]


class MixStore:
    """
    Canonical mix list mirrored to a storage slot.

    ``storage`` is anything with ``get_item``/``set_item`` (see storage.py).
    ``clock`` returns milliseconds since epoch; ``id_factory`` returns new ids.
    Both are injectable so tests can pin them.
    """

    def __init__(
        self,
        storage,
        clock: Optional[Callable[[], int]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.storage = storage
        self.clock = clock or now_ms
        self.id_factory = id_factory or generate_id
        self._mixes: List[Mix] = []
        self._library_name = ""
        self._theme = Theme.LIGHT
        self._initialized = False

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def initialize(self) -> List[Mix]:
        """Load persisted state, seeding the library if it is empty."""
        loaded = self.load()
        if not loaded:
            loaded = seed_mixes(self.clock())
            self.save(loaded)
            logger.info(f"Seeded empty library with {len(loaded)} mixes")
        self._mixes = loaded
        self._library_name = self.storage.get_item(LIBRARY_NAME_KEY) or ""
        self._theme = self._load_theme()
        self._initialized = True
        logger.info(
            f"Mix store ready: {len(self._mixes)} mixes, "
            f"library '{self._library_name}', theme {self._theme.value}"
        )
        return self.mixes

    def _load_theme(self) -> Theme:
        raw = self.storage.get_item(THEME_KEY)
        try:
            return Theme(raw) if raw else Theme.LIGHT
        except ValueError:
            logger.warning(f"Ignoring unknown theme preference: {raw!r}")
            return Theme.LIGHT

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> List[Mix]:
        """
        Read the persisted list. Never raises.

        An unreadable slot yields []. Individual records that fail validation
        are dropped with a warning; the rest are kept.
        """
        try:
            stored = self.storage.get_item(STORAGE_KEY)
            if not stored:
                return []
            payload = json.loads(stored)
            if not isinstance(payload, list):
                raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
        except (ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Failed to load mixes: {e}")
            return []

        mixes: List[Mix] = []
        for index, item in enumerate(payload):
            try:
                mixes.append(Mix.model_validate(item))
            except ValidationError as e:
                record_id = item.get("id", "?") if isinstance(item, dict) else "?"
                logger.warning(
                    f"Dropping stored mix #{index} ({record_id}): "
                    f"{e.error_count()} validation errors"
                )
        return mixes

    def save(self, mixes: Iterable[Mix]) -> None:
        """Overwrite the slot with the full list. Write failures are logged only."""
        data = json.dumps([m.to_json_dict() for m in mixes], ensure_ascii=False)
        try:
            self.storage.set_item(STORAGE_KEY, data)
        except StorageWriteError as e:
            logger.error(f"Failed to save mixes: {e}")

    def _commit(self, mixes: List[Mix]) -> None:
        self._mixes = mixes
        self.save(mixes)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @property
    def mixes(self) -> List[Mix]:
        return list(self._mixes)

    def get(self, mix_id: str) -> Optional[Mix]:
        return next((m for m in self._mixes if m.id == mix_id), None)

    def ids(self) -> set:
        return {m.id for m in self._mixes}

    def __len__(self) -> int:
        return len(self._mixes)

    def __contains__(self, mix_id: object) -> bool:
        return any(m.id == mix_id for m in self._mixes)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, form: MixFormData) -> Mix:
        """Build a new mix with a fresh id and timestamp. Does not store it."""
        mix_id = self.id_factory()
        while mix_id in self:
            mix_id = self.id_factory()
        return Mix(
            id=mix_id,
            created_at=self.clock(),
            url=form.url,
            title=form.title,
            prompt=form.prompt,
            negative_prompt=form.negative_prompt,
        )

    def add(self, form: MixFormData) -> Mix:
        """Create a mix, put it at the front of the library and persist."""
        mix = self.create(form)
        self._commit([mix] + self._mixes)
        logger.debug(f"Added mix {mix.id} ('{mix.title}')")
        return mix

    def update(self, mix_id: str, form: MixFormData) -> Optional[Mix]:
        """Replace every field except id and created_at. None if no match."""
        current = self.get(mix_id)
        if current is None:
            logger.debug(f"Update ignored, no mix with id {mix_id}")
            return None
        updated = current.model_copy(update={
            "url": form.url,
            "title": form.title,
            "prompt": form.prompt,
            "negative_prompt": form.negative_prompt,
        })
        self._commit([updated if m.id == mix_id else m for m in self._mixes])
        logger.debug(f"Updated mix {mix_id}")
        return updated

    def delete(self, mix_id: str) -> bool:
        """Remove the mix with ``mix_id``. Returns False if there was none."""
        remaining = [m for m in self._mixes if m.id != mix_id]
        if len(remaining) == len(self._mixes):
            return False
        self._commit(remaining)
        logger.debug(f"Deleted mix {mix_id}")
        return True

    def merge(self, new_mixes: List[Mix]) -> None:
        """Prepend already-deduplicated imported mixes and persist."""
        self._commit(list(new_mixes) + self._mixes)

    # ------------------------------------------------------------------
    # Library metadata
    # ------------------------------------------------------------------

    @property
    def library_name(self) -> str:
        return self._library_name

    def set_library_name(self, name: str) -> None:
        self._library_name = name
        try:
            self.storage.set_item(LIBRARY_NAME_KEY, name)
        except StorageWriteError as e:
            logger.error(f"Failed to save library name: {e}")

    @property
    def theme(self) -> Theme:
        return self._theme

    def set_theme(self, theme: Theme) -> None:
        self._theme = Theme(theme)
        try:
            self.storage.set_item(THEME_KEY, self._theme.value)
        except StorageWriteError as e:
            logger.error(f"Failed to save theme: {e}")

    def toggle_theme(self) -> Theme:
        self.set_theme(Theme.DARK if self._theme == Theme.LIGHT else Theme.LIGHT)
        return self._theme

    def __repr__(self) -> str:
        status = f"{len(self._mixes)} mixes" if self._initialized else "not initialized"
        return f"MixStore({status}, storage={self.storage!r})"
