"""
Watermark Compositor V2.0
=========================
Draws a text or image watermark over a base image using PIL/Pillow.

Technical Notes:
- The render target is reset to the base image size and fully repainted
  on every render; nothing is carried between renders
- Rotation is applied through an explicit transform stack on the target
  (``with target.transformed(x, y, degrees): ...``) so no transform can
  leak from one tile into the next
- Rotated sprites are padded to a square around their pivot before
  rotating, which prevents clipping at any angle
- RGBA alpha compositing is used everywhere so the layer alpha scales
  linearly with the opacity setting

Layout modes:
- Single position: one instance aligned to one of 9 anchors, kept
  ``max(20px, 5% of width)`` away from the edges
- Tiled: brick-laid grid spanning ``[-diag, 2*diag)`` on both axes so
  rotated tiles never leave gaps in the corners; cells that cannot reach
  the canvas are skipped
"""

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

from .settings import Anchor, ColorValue, WatermarkKind, WatermarkSettings

logger = logging.getLogger(__name__)

# Affine matrix (a, b, c, d, e, f): world = (a*x + b*y + c, d*x + e*y + f)
Matrix = Tuple[float, float, float, float, float, float]
IDENTITY: Matrix = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)


def _composite_clipped(dst: Image.Image, src: Image.Image, x: int, y: int) -> None:
    """Alpha-composite ``src`` onto ``dst`` at (x, y), clipping at the edges."""
    left, top = max(x, 0), max(y, 0)
    right = min(x + src.width, dst.width)
    bottom = min(y + src.height, dst.height)
    if right <= left or bottom <= top:
        return

    region = src.crop((left - x, top - y, right - x, bottom - y))
    dst.alpha_composite(region, dest=(left, top))


def _apply_opacity(sprite: Image.Image, opacity: float) -> Image.Image:
    """Scale the alpha channel of an RGBA sprite (canvas-style global alpha)."""
    if opacity >= 1.0:
        return sprite

    rgba = np.asarray(sprite, dtype=np.float32).copy()
    rgba[..., 3] *= max(opacity, 0.0)
    return Image.fromarray(np.round(rgba).astype(np.uint8))


def resolve_color(color: ColorValue) -> Tuple[int, int, int, int]:
    """Convert '#rrggbb', CSS names, 'rgba(...)' or RGB(A) tuples to RGBA."""
    if isinstance(color, str):
        return ImageColor.getcolor(color, "RGBA")
    if len(color) == 3:
        return (*color, 255)
    return tuple(color)


class RenderTarget:
    """
    A drawing surface: an RGBA pixel buffer plus a transform stack.

    The compositor owns the target for the duration of a render; the
    caller reads it back afterwards with ``to_image()``.
    """

    def __init__(self, size: Tuple[int, int] = (1, 1)):
        self._image = Image.new("RGBA", size, (0, 0, 0, 0))
        self._stack: List[Matrix] = [IDENTITY]
        self._rotated_cache: Dict[Tuple[int, float], Tuple[Image.Image, int]] = {}

    @property
    def size(self) -> Tuple[int, int]:
        return self._image.size

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def matrix(self) -> Matrix:
        """The current (innermost) transform."""
        return self._stack[-1]

    def reset(self, size: Tuple[int, int]):
        """Replace the surface with a cleared one of ``size``."""
        surface = Image.new("RGBA", size, (0, 0, 0, 0))
        self._stack = [IDENTITY]
        self._rotated_cache = {}
        self._image = surface

    def draw_image(self, image: Image.Image, x: int = 0, y: int = 0):
        """Draw an image unscaled at (x, y) in surface coordinates."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        _composite_clipped(self._image, image, x, y)

    @contextmanager
    def transformed(self, dx: float, dy: float, degrees: float = 0.0) -> Iterator["RenderTarget"]:
        """
        Translate by (dx, dy), then rotate clockwise by ``degrees``.

        The transform is popped when the block exits, even on error.
        """
        a, b, c, d, e, f = self.matrix
        rad = math.radians(degrees)
        cos, sin = math.cos(rad), math.sin(rad)

        # M * T(dx, dy) * R(rad), y axis pointing down
        self._stack.append((
            a * cos + b * sin,
            -a * sin + b * cos,
            a * dx + b * dy + c,
            d * cos + e * sin,
            -d * sin + e * cos,
            d * dx + e * dy + f,
        ))
        try:
            yield self
        finally:
            self._stack.pop()

    def draw_sprite(self, sprite: Image.Image, pivot: Tuple[float, float]):
        """
        Draw ``sprite`` so that its ``pivot`` lands on the local origin.

        The current transform's rotation is applied around the pivot.
        """
        a, _, c, d, _, f = self.matrix
        degrees = math.degrees(math.atan2(d, a))
        px, py = pivot

        if abs(math.remainder(degrees, 360.0)) < 1e-9:
            _composite_clipped(self._image, sprite, round(c - px), round(f - py))
            return

        rotated, radius = self._rotate_sprite(sprite, pivot, degrees)
        _composite_clipped(self._image, rotated, round(c - radius), round(f - radius))

    def _rotate_sprite(
            self,
            sprite: Image.Image,
            pivot: Tuple[float, float],
            degrees: float
    ) -> Tuple[Image.Image, int]:
        """Rotate ``sprite`` around ``pivot``; the pivot ends at (radius, radius)."""
        key = (id(sprite), round(degrees, 6))
        cached = self._rotated_cache.get(key)
        if cached is not None:
            return cached

        px, py = pivot
        corners = [(0, 0), (sprite.width, 0), (0, sprite.height), (sprite.width, sprite.height)]
        radius = math.ceil(max(math.hypot(cx - px, cy - py) for cx, cy in corners)) + 1

        padded = Image.new("RGBA", (radius * 2, radius * 2), (0, 0, 0, 0))
        padded.paste(sprite, (round(radius - px), round(radius - py)))

        # PIL rotates counter-clockwise
        rotated = padded.rotate(-degrees, resample=Image.Resampling.BICUBIC)
        self._rotated_cache[key] = (rotated, radius)
        return rotated, radius

    def to_image(self) -> Image.Image:
        """Return a copy of the current pixels."""
        return self._image.copy()


@dataclass
class WatermarkContent:
    """
    A watermark instance ready to draw.

    ``origin`` is where the layout box's top-left corner sits inside the
    sprite; ``width``/``height`` describe the layout box used for alignment
    and ``footprint`` the size used for tile spacing.
    """
    sprite: Image.Image
    origin: Tuple[float, float]
    width: float
    height: float
    footprint: Tuple[float, float]

    _H_FRACTIONS = {"left": 0.0, "center": 0.5, "right": 1.0}
    _V_FRACTIONS = {"top": 0.0, "middle": 0.5, "bottom": 1.0}

    def pivot(self, horizontal: str = "center", vertical: str = "middle") -> Tuple[float, float]:
        """Sprite coordinates of the alignment point."""
        return (
            self.origin[0] + self._H_FRACTIONS[horizontal] * self.width,
            self.origin[1] + self._V_FRACTIONS[vertical] * self.height,
        )

    def reach(self, pivot: Tuple[float, float]) -> float:
        """Farthest sprite corner from ``pivot``, at any rotation."""
        px, py = pivot
        w, h = self.sprite.size
        return max(math.hypot(cx - px, cy - py) for cx, cy in ((0, 0), (w, 0), (0, h), (w, h)))


@dataclass(frozen=True)
class TileCell:
    x: float
    y: float
    row: int


@dataclass(frozen=True)
class TileGrid:
    """
    Brick-laid tile grid over ``[-diagonal, 2 * diagonal)`` on both axes.

    Spacing policy (tuned by eye, rotated tiles need the extra room):
        spacing_x = content_w + W * gap / 200 + content_h * HORIZONTAL_PADDING_FACTOR
        spacing_y = content_h * VERTICAL_SPACING_FACTOR + W * gap / 200

    ``cells()`` walks the full overscan lattice but only yields cells that
    matter on a ``canvas_width`` x ``canvas_height`` canvas: those whose
    centre lies within ``max(reach, spacing / 2)`` of it on each axis.
    ``reach`` is the farthest the sprite extends from a cell centre at any
    rotation, so every visible tile is kept, and every canvas point stays
    within half a spacing of a kept centre on each axis.

    Spacing is floored at MIN_SPACING and the number of kept cells is capped
    at ``max_tiles``; hitting the cap stops filling instead of raising.
    """
    spacing_x: float
    spacing_y: float
    diagonal: float
    canvas_width: int
    canvas_height: int
    reach: float = 0.0
    max_tiles: int = 250000

    HORIZONTAL_PADDING_FACTOR = 1.0
    VERTICAL_SPACING_FACTOR = 3.0
    GAP_DIVISOR = 200.0
    MIN_SPACING = 4.0

    @classmethod
    def for_content(
            cls,
            content_size: Tuple[float, float],
            canvas_size: Tuple[int, int],
            gap: float,
            max_tiles: int = 250000,
            reach: Optional[float] = None
    ) -> "TileGrid":
        content_w, content_h = content_size
        width, height = canvas_size
        gap_px = width * gap / cls.GAP_DIVISOR

        spacing_x = content_w + gap_px + content_h * cls.HORIZONTAL_PADDING_FACTOR
        spacing_y = content_h * cls.VERTICAL_SPACING_FACTOR + gap_px

        return cls(
            spacing_x=max(spacing_x, cls.MIN_SPACING),
            spacing_y=max(spacing_y, cls.MIN_SPACING),
            diagonal=math.sqrt(width ** 2 + height ** 2),
            canvas_width=width,
            canvas_height=height,
            reach=math.hypot(content_w, content_h) / 2 if reach is None else reach,
            max_tiles=max_tiles,
        )

    def row_offset(self, row: int) -> float:
        """Odd rows are shifted by half a tile."""
        return self.spacing_x / 2 if row % 2 else 0.0

    def cells(self) -> List[TileCell]:
        cells: List[TileCell] = []
        lower, upper = -self.diagonal, 2 * self.diagonal
        margin_x = max(self.reach, self.spacing_x / 2)
        margin_y = max(self.reach, self.spacing_y / 2)

        # Lattice points are lower + k * spacing; start just above the band
        j = max(0, math.floor((-margin_y - lower) / self.spacing_y))
        while True:
            y = lower + j * self.spacing_y
            if y >= upper or y > self.canvas_height + margin_y:
                break
            row = math.floor(y / self.spacing_y)
            offset = self.row_offset(row)

            i = max(0, math.floor((-margin_x - offset - lower) / self.spacing_x))
            while True:
                x = lower + i * self.spacing_x
                if x >= upper or x + offset > self.canvas_width + margin_x:
                    break
                if len(cells) >= self.max_tiles:
                    logger.warning(
                        "Tile cap reached (%d cells, spacing %.1fx%.1f); remaining tiles skipped",
                        self.max_tiles, self.spacing_x, self.spacing_y
                    )
                    return cells
                cells.append(TileCell(x + offset, y, row))
                i += 1
            j += 1

        return cells


class WatermarkCompositor:
    """
    Renders a base image plus a watermark layer onto a RenderTarget.

    The compositor keeps no per-render state apart from a font cache, so
    one instance can serve any number of renders.
    """

    INSET_MIN_PX = 20
    INSET_RATIO = 0.05
    # Counts drawn tiles, not the off-canvas part of the overscan
    MAX_TILES = 250000

    # Bold faces first; the regular faces are a last resort before Pillow's own
    FONT_CANDIDATES = (
        "msyhbd.ttc",  # Windows
        "arialbd.ttf",
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",  # macOS
        "/System/Library/Fonts/PingFang.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",  # Linux
        "DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    )

    def __init__(self, font_path: Optional[str] = None):
        """
        Initialize the compositor.

        Args:
            font_path: Optional path to a TTF/OTF font file. If None, the
                       first bold system font found is used.
        """
        self._font_path = font_path
        self._cached_fonts: Dict[int, ImageFont.FreeTypeFont] = {}

    def _get_font(self, size: int) -> ImageFont.FreeTypeFont:
        """Get or create a cached font object for the given pixel size."""
        if size not in self._cached_fonts:
            candidates = list(self.FONT_CANDIDATES)
            if self._font_path and Path(self._font_path).exists():
                candidates.insert(0, self._font_path)

            font = None
            for candidate in candidates:
                try:
                    font = ImageFont.truetype(candidate, size)
                    break
                except OSError:
                    continue

            if font is None:
                font = ImageFont.load_default(size)
            self._cached_fonts[size] = font

        return self._cached_fonts[size]

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @classmethod
    def inset(cls, base_width: int) -> float:
        """Margin between a single-position watermark and the canvas edge."""
        return max(cls.INSET_MIN_PX, base_width * cls.INSET_RATIO)

    @classmethod
    def anchor_point(cls, canvas_size: Tuple[int, int], anchor: Anchor) -> Tuple[float, float]:
        width, height = canvas_size
        inset = cls.inset(width)

        x = {"left": inset, "center": width / 2, "right": width - inset}[anchor.horizontal]
        y = {"top": inset, "middle": height / 2, "bottom": height - inset}[anchor.vertical]
        return x, y

    @staticmethod
    def font_px(base_width: int, font_size: float) -> int:
        """Font height in pixels for a ``font_size`` percentage."""
        return max(1, int(round(base_width * font_size / 100)))

    def measure_text(self, text: str, font_px: int) -> float:
        """Advance width of ``text`` at ``font_px``."""
        return self._get_font(font_px).getlength(text)

    # ------------------------------------------------------------------
    # Layer setup
    # ------------------------------------------------------------------

    def prepare_content(
            self,
            base_size: Tuple[int, int],
            settings: WatermarkSettings
    ) -> Optional[WatermarkContent]:
        """
        Build the watermark sprite with opacity applied.

        Returns None when there is nothing to draw: image mode without an
        image, or text mode with empty text.
        """
        base_width = base_size[0]

        if settings.kind == WatermarkKind.IMAGE:
            if settings.watermark_image is None:
                return None
            content = self._image_content(base_width, settings)
        else:
            if not settings.text:
                return None
            content = self._text_content(base_width, settings)

        content.sprite = _apply_opacity(content.sprite, settings.opacity)
        return content

    def _text_content(self, base_width: int, settings: WatermarkSettings) -> WatermarkContent:
        font_px = self.font_px(base_width, settings.font_size)
        font = self._get_font(font_px)

        # Layout box: advance width x (ascent + descent), origin at its top-left
        left, top, right, bottom = font.getbbox(settings.text, anchor="la")
        advance = font.getlength(settings.text)
        ascent, descent = font.getmetrics()

        sprite_w = max(1, math.ceil(right - left))
        sprite_h = max(1, math.ceil(bottom - top))
        sprite = Image.new("RGBA", (sprite_w, sprite_h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(sprite)
        draw.text((-left, -top), settings.text, font=font,
                  fill=resolve_color(settings.color), anchor="la")

        return WatermarkContent(
            sprite=sprite,
            origin=(-left, -top),
            width=advance,
            height=ascent + descent,
            footprint=(advance, font_px),
        )

    def _image_content(self, base_width: int, settings: WatermarkSettings) -> WatermarkContent:
        source = settings.watermark_image
        if source.mode != "RGBA":
            source = source.convert("RGBA")

        width = max(1, round(base_width * settings.image_scale / 100))
        height = max(1, round(width * source.height / source.width))
        sprite = source.resize((width, height), Image.Resampling.LANCZOS)

        return WatermarkContent(
            sprite=sprite,
            origin=(0.0, 0.0),
            width=width,
            height=height,
            footprint=(width, height),
        )

    def plan_tiles(self, base_size: Tuple[int, int], settings: WatermarkSettings) -> Optional[TileGrid]:
        """The tile grid a tiled render of ``settings`` would use."""
        content = self.prepare_content(base_size, settings)
        if content is None:
            return None
        return self._tile_grid(content, base_size, settings)

    def _tile_grid(self, content: WatermarkContent, canvas_size: Tuple[int, int],
                   settings: WatermarkSettings) -> TileGrid:
        return TileGrid.for_content(
            content.footprint, canvas_size, settings.gap, self.MAX_TILES,
            reach=content.reach(content.pivot("center", "middle")),
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(
            self,
            base_image: Image.Image,
            target: RenderTarget,
            settings: WatermarkSettings
    ) -> RenderTarget:
        """
        Repaint ``target`` with ``base_image`` and the watermark layer.

        Args:
            base_image: Decoded base image; it is only read.
            target: Surface to draw on; resized to the base image.
            settings: Watermark settings snapshot.

        Returns:
            The same target, for chaining.
        """
        target.reset(base_image.size)
        target.draw_image(base_image)

        content = self.prepare_content(base_image.size, settings)
        if content is None:
            return target

        if settings.tiled:
            self._draw_tiled(target, content, settings)
        else:
            self._draw_single(target, content, settings)

        return target

    def _draw_single(self, target: RenderTarget, content: WatermarkContent, settings: WatermarkSettings):
        anchor = Anchor(settings.anchor)
        x, y = self.anchor_point(target.size, anchor)
        pivot = content.pivot(anchor.horizontal, anchor.vertical)

        with target.transformed(x, y, settings.rotation):
            target.draw_sprite(content.sprite, pivot)

    def _draw_tiled(self, target: RenderTarget, content: WatermarkContent, settings: WatermarkSettings):
        grid = self._tile_grid(content, target.size, settings)
        pivot = content.pivot("center", "middle")

        for cell in grid.cells():
            with target.transformed(cell.x, cell.y, settings.rotation):
                target.draw_sprite(content.sprite, pivot)

    def composite(self, base_image: Image.Image, settings: WatermarkSettings) -> Image.Image:
        """Render into a fresh target and return the resulting RGBA image."""
        target = RenderTarget()
        self.render(base_image, target, settings)
        return target.to_image()
