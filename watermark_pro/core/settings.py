"""
Watermark Settings Model
========================
Immutable description of a watermark: what to draw (text or image),
how to draw it (colour, opacity, size, rotation) and where (anchor or tiled).

A settings value is never edited in place. The UI derives a new value
for every change with ``settings.replace(field=value)`` and hands the
whole snapshot to the compositor, so a render in flight always sees a
consistent configuration.

Range notes (enforced by the UI sliders, not by this module):
- image_scale: 1-100, percent of the base image width
- font_size: 1-30, percent of the base image width
- opacity: (0, 1]
- rotation: -180..180 degrees, clockwise positive
- gap: 0-100, tiled spacing in base-width / 200 units
"""

from dataclasses import dataclass, field, replace as dc_replace
from enum import Enum
from typing import Optional, Tuple, Union

from PIL import Image


class WatermarkKind(str, Enum):
    """Which watermark content is active."""
    TEXT = "text"
    IMAGE = "image"


class Anchor(str, Enum):
    """
    The 9 single-position anchors.

    First letter is the vertical row (t/c/b), second the horizontal
    column (l/c/r).
    """
    TOP_LEFT = "tl"
    TOP_CENTER = "tc"
    TOP_RIGHT = "tr"
    CENTER_LEFT = "cl"
    CENTER = "cc"
    CENTER_RIGHT = "cr"
    BOTTOM_LEFT = "bl"
    BOTTOM_CENTER = "bc"
    BOTTOM_RIGHT = "br"

    @property
    def horizontal(self) -> str:
        """'left', 'center' or 'right'."""
        return {"l": "left", "c": "center", "r": "right"}[self.value[1]]

    @property
    def vertical(self) -> str:
        """'top', 'middle' or 'bottom'."""
        return {"t": "top", "c": "middle", "b": "bottom"}[self.value[0]]


ColorValue = Union[str, Tuple[int, int, int], Tuple[int, int, int, int]]


@dataclass(frozen=True)
class WatermarkSettings:
    """Snapshot of every watermark option used by one render."""
    kind: WatermarkKind = WatermarkKind.TEXT
    text: str = "© Watermark"
    watermark_image: Optional[Image.Image] = field(default=None, compare=False)
    image_scale: float = 15
    color: ColorValue = "#ffffff"
    opacity: float = 0.8
    font_size: float = 5
    rotation: int = 0
    tiled: bool = False
    anchor: Anchor = Anchor.BOTTOM_RIGHT
    gap: float = 20

    def replace(self, **changes) -> "WatermarkSettings":
        """Return a copy with the given fields replaced."""
        return dc_replace(self, **changes)

    @property
    def has_watermark_image(self) -> bool:
        return self.watermark_image is not None


DEFAULT_SETTINGS = WatermarkSettings()
