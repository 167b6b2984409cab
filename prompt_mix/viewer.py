"""
Viewer state for browsing mixes.

``LightboxState`` models the full-screen image viewer: wrap-around paging
through the displayed list, zoom between 1x and 5x, and panning while
zoomed. It holds no image data; surfaces render from its fields.
"""

from typing import Optional, Tuple, Union

from .models import DEFAULT_IMAGE, ViewMode

MIN_SCALE = 1.0
MAX_SCALE = 5.0
ZOOM_STEP = 0.5
WHEEL_FACTOR = 0.005

LAYOUT_CLASSES = {
    ViewMode.DETAILS: "gallery-details",
    ViewMode.GRID: "gallery-grid",
    ViewMode.LIST: "gallery-list",
}


def layout_class(view_mode: Union[ViewMode, str]) -> str:
    try:
        return LAYOUT_CLASSES[ViewMode(view_mode)]
    except ValueError:
        return LAYOUT_CLASSES[ViewMode.GRID]


def resolve_image_url(url: Optional[str], failed: bool = False) -> str:
    """Image to show for ``url``; the placeholder when missing or failed to load."""
    if failed or not url:
        return DEFAULT_IMAGE
    return url


class LightboxState:
    def __init__(self, count: int, index: int = 0) -> None:
        if count < 0:
            raise ValueError("count must be >= 0")
        self.count = count
        self.index = self._clamp(index)
        self.scale = MIN_SCALE
        self.position: Tuple[float, float] = (0.0, 0.0)
        self.dragging = False
        self._drag_origin: Tuple[float, float] = (0.0, 0.0)

    @property
    def is_open(self) -> bool:
        return 0 <= self.index < self.count

    @property
    def zoomed(self) -> bool:
        return self.scale > MIN_SCALE

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _clamp(self, index: int) -> int:
        if self.count == 0:
            return 0
        return max(0, min(index, self.count - 1))

    def go_to(self, index: int) -> int:
        """Show image ``index``, clamped to the list bounds."""
        self.index = self._clamp(index)
        self.reset_zoom()
        return self.index

    def next(self) -> int:
        if self.count == 0:
            return self.index
        return self.go_to((self.index + 1) % self.count)

    def prev(self) -> int:
        if self.count == 0:
            return self.index
        return self.go_to((self.index - 1 + self.count) % self.count)

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    def _set_scale(self, scale: float) -> float:
        self.scale = min(max(MIN_SCALE, scale), MAX_SCALE)
        if self.scale == MIN_SCALE:
            self.position = (0.0, 0.0)
        return self.scale

    def zoom_in(self) -> float:
        return self._set_scale(self.scale + ZOOM_STEP)

    def zoom_out(self) -> float:
        return self._set_scale(self.scale - ZOOM_STEP)

    def wheel(self, delta_y: float) -> float:
        """Scroll up (negative delta) zooms in."""
        return self._set_scale(self.scale - delta_y * WHEEL_FACTOR)

    def reset_zoom(self) -> None:
        self.scale = MIN_SCALE
        self.position = (0.0, 0.0)
        self.dragging = False

    # ------------------------------------------------------------------
    # Pan
    # ------------------------------------------------------------------

    def start_drag(self, x: float, y: float) -> bool:
        """Begin panning; only possible while zoomed."""
        if not self.zoomed:
            return False
        self.dragging = True
        self._drag_origin = (x - self.position[0], y - self.position[1])
        return True

    def drag(self, x: float, y: float) -> Tuple[float, float]:
        if self.dragging and self.zoomed:
            self.position = (x - self._drag_origin[0], y - self._drag_origin[1])
        return self.position

    def end_drag(self) -> None:
        self.dragging = False

    def caption(self, title: str) -> str:
        if self.zoomed:
            return f"{title} ({round(self.scale * 100)}%)"
        return title

    def __repr__(self) -> str:
        return f"LightboxState({self.index + 1}/{self.count}, scale={self.scale:.2f})"
