"""
Test script for the core compositing logic.

Run with: python -m pytest tests/test_core.py -v
Or simply: python tests/test_core.py
"""

import dataclasses
import math
import re
import shutil
import sys
import tempfile
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from PIL import Image
import numpy as np
import pytest

from watermark_pro.core.compositor import IDENTITY, RenderTarget, TileGrid, WatermarkCompositor
from watermark_pro.core.image_io import (
    ImageLoadError, encode_png, export_filename, is_supported_image, load_image, save_png
)
from watermark_pro.core.settings import DEFAULT_SETTINGS, Anchor, WatermarkKind, WatermarkSettings
from watermark_pro.config import load_config
from watermark_pro.i18n import Language, tr


def create_solid_image(width: int, height: int, color=(0, 0, 0, 255)) -> Image.Image:
    """Create a solid RGBA image."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, :] = color
    return Image.fromarray(arr)


def create_gradient_image(width: int = 800, height: int = 600) -> Image.Image:
    """Create a simple test image with gradient."""
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[..., 0] = xs[np.newaxis, :].astype(np.uint8)
    arr[..., 1] = ys[:, np.newaxis].astype(np.uint8)
    arr[..., 2] = 128
    arr[..., 3] = 255
    return Image.fromarray(arr)


def create_asymmetric_logo(width: int = 200, height: int = 100) -> Image.Image:
    """Red left half, blue right half, green top-left corner."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, : width // 2] = (255, 0, 0, 255)
    arr[:, width // 2:] = (0, 0, 255, 255)
    arr[: height // 4, : width // 4] = (0, 255, 0, 255)
    return Image.fromarray(arr)


def image_settings(logo: Image.Image, **changes) -> WatermarkSettings:
    return DEFAULT_SETTINGS.replace(kind=WatermarkKind.IMAGE, watermark_image=logo, **{"opacity": 1.0, **changes})


# ============================================================
# Settings
# ============================================================

def test_settings_defaults_and_replace():
    """Settings are immutable snapshots; replace() derives new ones."""
    print("\n" + "=" * 50)
    print("Testing Settings Model")
    print("=" * 50)

    settings = WatermarkSettings()
    assert settings.kind == WatermarkKind.TEXT
    assert settings.text == "© Watermark"
    assert settings.image_scale == 15
    assert settings.color == "#ffffff"
    assert settings.opacity == 0.8
    assert settings.font_size == 5
    assert settings.rotation == 0
    assert settings.tiled is False
    assert settings.anchor == Anchor.BOTTOM_RIGHT
    assert settings.gap == 20
    assert not settings.has_watermark_image

    changed = settings.replace(text="Hello", rotation=45)
    assert changed.text == "Hello"
    assert changed.rotation == 45
    assert settings.text == "© Watermark", "replace() must not touch the original"
    assert settings.rotation == 0

    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.text = "mutated"

    print("✅ Settings tests passed!")


def test_anchor_alignment_names():
    assert Anchor.TOP_LEFT.horizontal == "left"
    assert Anchor.TOP_LEFT.vertical == "top"
    assert Anchor.CENTER.horizontal == "center"
    assert Anchor.CENTER.vertical == "middle"
    assert Anchor.BOTTOM_RIGHT.horizontal == "right"
    assert Anchor.BOTTOM_RIGHT.vertical == "bottom"
    assert Anchor("bc").horizontal == "center"
    assert len(list(Anchor)) == 9


# ============================================================
# Render target
# ============================================================

def test_transform_stack_is_scoped():
    """A transform never outlives its block, even when drawing fails."""
    target = RenderTarget((10, 10))
    assert target.matrix == IDENTITY

    with target.transformed(5, 5, 30):
        assert target.matrix != IDENTITY
        with target.transformed(1, 0):
            pass
    assert target.matrix == IDENTITY

    with pytest.raises(RuntimeError):
        with target.transformed(3, 4, 90):
            raise RuntimeError("draw failed")
    assert target.matrix == IDENTITY


def test_render_target_reset():
    target = RenderTarget((10, 10))
    target.draw_image(create_solid_image(10, 10, (255, 255, 255, 255)))
    target.reset((30, 20))

    assert target.size == (30, 20)
    assert target.to_image().getextrema()[3] == (0, 0), "Reset surface must be transparent"


# ============================================================
# Compositing
# ============================================================

def test_rendering_is_deterministic():
    """Same base image and settings produce identical pixels."""
    print("\n" + "=" * 50)
    print("Testing Deterministic Rendering")
    print("=" * 50)

    base = create_gradient_image(640, 480)
    for settings in (
            DEFAULT_SETTINGS,
            DEFAULT_SETTINGS.replace(tiled=True, rotation=-30),
            image_settings(create_asymmetric_logo(), rotation=45, opacity=0.6),
    ):
        first = WatermarkCompositor().composite(base, settings)
        second = WatermarkCompositor().composite(base, settings)
        assert first.size == base.size
        assert first.tobytes() == second.tobytes(), f"Non-deterministic render for {settings}"

    print("✅ Deterministic rendering passed!")


def test_single_position_inset():
    """Bottom-right watermark ends max(20px, 5% of width) from the edges."""
    print("\n" + "=" * 50)
    print("Testing Single-Position Inset")
    print("=" * 50)

    base = create_solid_image(1000, 800)
    logo = create_solid_image(150, 75, (255, 255, 255, 255))

    result = WatermarkCompositor().composite(base, image_settings(logo, anchor=Anchor.BOTTOM_RIGHT))
    red = np.asarray(result)[..., 0]
    ys, xs = np.nonzero(red)

    print(f"   Watermark box: x {xs.min()}..{xs.max()}, y {ys.min()}..{ys.max()}")
    assert xs.max() + 1 == 950, f"Right edge at {xs.max() + 1}, expected 950"
    assert ys.max() + 1 == 750, f"Bottom edge at {ys.max() + 1}, expected 750"
    assert xs.min() == 800 and ys.min() == 675

    print("✅ Inset test passed!")


def test_inset_has_minimum():
    assert WatermarkCompositor.inset(100) == 20
    assert WatermarkCompositor.inset(1000) == 50
    assert WatermarkCompositor.anchor_point((1000, 800), Anchor.TOP_LEFT) == (50, 50)
    assert WatermarkCompositor.anchor_point((1000, 800), Anchor.CENTER) == (500, 400)


def test_rotation_180_mirrors_centered_logo():
    """A centered logo rotated 180° is the point mirror of the unrotated one."""
    print("\n" + "=" * 50)
    print("Testing 180° Rotation")
    print("=" * 50)

    base = create_solid_image(1000, 800)
    logo = create_asymmetric_logo(200, 100)
    compositor = WatermarkCompositor()

    upright = np.asarray(compositor.composite(base, image_settings(logo, anchor=Anchor.CENTER)))
    flipped = np.asarray(compositor.composite(base, image_settings(logo, anchor=Anchor.CENTER, rotation=180)))

    assert np.array_equal(flipped, upright[::-1, ::-1]), "180° render is not a point mirror"
    # Sanity: the logo actually landed on the canvas
    assert upright[400, 450, 0] == 255 and upright[400, 550, 2] == 255

    print("✅ 180° rotation passed!")


def test_image_watermark_size_and_aspect():
    """Image width follows image_scale; height keeps the aspect ratio."""
    logo = create_solid_image(200, 100, (255, 255, 255, 255))
    settings = image_settings(logo, image_scale=25)

    content = WatermarkCompositor().prepare_content((1000, 800), settings)
    assert content is not None
    assert content.sprite.size == (250, 125)
    assert content.sprite.width / content.sprite.height == pytest.approx(200 / 100)


def test_opacity_scales_linearly():
    """Layer alpha scales linearly with opacity (solid white over black)."""
    print("\n" + "=" * 50)
    print("Testing Opacity")
    print("=" * 50)

    base = create_solid_image(1000, 800)
    logo = create_solid_image(100, 50, (255, 255, 255, 255))
    compositor = WatermarkCompositor()

    def center_value(opacity: float) -> int:
        settings = image_settings(logo, image_scale=10, anchor=Anchor.CENTER, opacity=opacity)
        return int(np.asarray(compositor.composite(base, settings))[400, 500, 0])

    full = center_value(1.0)
    tenth = center_value(0.1)
    half = center_value(0.5)
    print(f"   opacity 1.0 -> {full}, 0.5 -> {half}, 0.1 -> {tenth}")

    assert full == 255
    assert tenth / full == pytest.approx(0.1, abs=0.01)
    assert half / full == pytest.approx(0.5, abs=0.01)

    print("✅ Opacity test passed!")


def test_missing_image_renders_base_only():
    base = create_gradient_image(320, 240)
    settings = DEFAULT_SETTINGS.replace(kind=WatermarkKind.IMAGE, watermark_image=None)

    result = WatermarkCompositor().composite(base, settings)
    assert result.tobytes() == base.tobytes()


def test_empty_text_renders_base_only():
    base = create_gradient_image(320, 240)
    result = WatermarkCompositor().composite(base, DEFAULT_SETTINGS.replace(text=""))
    assert result.tobytes() == base.tobytes()


def test_text_watermark_changes_pixels():
    base = create_solid_image(640, 480)
    result = WatermarkCompositor().composite(base, DEFAULT_SETTINGS.replace(opacity=1.0, anchor=Anchor.CENTER))
    assert np.asarray(result)[..., 0].max() > 0, "Text watermark drew nothing"


# ============================================================
# Tiling
# ============================================================

def test_tile_spacing_regression():
    """1000x1000, font 5%, gap 20: spacing_y = 250, spacing_x = text + 100 + 50."""
    print("\n" + "=" * 50)
    print("Testing Tile Spacing")
    print("=" * 50)

    compositor = WatermarkCompositor()
    settings = DEFAULT_SETTINGS.replace(tiled=True)

    grid = compositor.plan_tiles((1000, 1000), settings)
    text_width = compositor.measure_text(settings.text, 50)

    print(f"   spacing_x={grid.spacing_x:.2f} spacing_y={grid.spacing_y:.2f}")
    assert grid.spacing_y == pytest.approx(250)
    assert grid.spacing_x == pytest.approx(text_width + 100 + 50)
    assert grid.diagonal == pytest.approx(1000 * 2 ** 0.5)

    print("✅ Tile spacing passed!")


def test_brick_offset_on_odd_rows():
    compositor = WatermarkCompositor()
    grid = compositor.plan_tiles((1000, 1000), DEFAULT_SETTINGS.replace(tiled=True))

    assert grid.row_offset(1) - grid.row_offset(0) == pytest.approx(grid.spacing_x / 2)
    assert grid.row_offset(2) == 0
    assert grid.row_offset(-1) == pytest.approx(grid.spacing_x / 2)

    parities = set()
    for cell in grid.cells():
        # Every cell sits on the overscan lattice, odd rows shifted
        column = (cell.x - grid.row_offset(cell.row) + grid.diagonal) / grid.spacing_x
        line = (cell.y + grid.diagonal) / grid.spacing_y
        assert column == pytest.approx(round(column), abs=1e-6)
        assert line == pytest.approx(round(line), abs=1e-6)
        parities.add(cell.row % 2)
    assert parities == {0, 1}


def test_tiles_cover_canvas_at_any_rotation():
    """Every quadrant gets watermark pixels at 0, 45, 90 and 180 degrees."""
    print("\n" + "=" * 50)
    print("Testing Tiled Coverage")
    print("=" * 50)

    base = create_solid_image(800, 600)
    compositor = WatermarkCompositor()

    for rotation in (0, 45, 90, 180):
        settings = DEFAULT_SETTINGS.replace(tiled=True, opacity=1.0, rotation=rotation)
        red = np.asarray(compositor.composite(base, settings))[..., 0]
        quadrants = [red[:300, :400], red[:300, 400:], red[300:, :400], red[300:, 400:]]
        for index, quadrant in enumerate(quadrants):
            assert quadrant.max() > 0, f"Quadrant {index} empty at {rotation}°"
        print(f"   {rotation}°: all quadrants covered")

    print("✅ Tiled coverage passed!")


def assert_tile_centres_cover(grid: TileGrid, width: int, height: int, samples: int = 11):
    """Every sampled canvas point, corners included, is within half a spacing of a centre."""
    cells = grid.cells()
    xs = np.array([cell.x for cell in cells])
    ys = np.array([cell.y for cell in cells])

    for px in np.linspace(0, width, samples):
        for py in np.linspace(0, height, samples):
            near = ((np.abs(xs - px) <= grid.spacing_x / 2 + 1e-6)
                    & (np.abs(ys - py) <= grid.spacing_y / 2 + 1e-6))
            assert near.any(), f"No tile centre near ({px:.0f}, {py:.0f})"


def test_tile_centres_cover_canvas():
    """Tile centres leave no point farther than half a spacing away, at any rotation."""
    print("\n" + "=" * 50)
    print("Testing Tile Centre Coverage")
    print("=" * 50)

    compositor = WatermarkCompositor()

    for rotation in (0, 45, 90, 180):
        settings = DEFAULT_SETTINGS.replace(tiled=True, rotation=rotation)
        grid = compositor.plan_tiles((1000, 1000), settings)
        # Rows are closer than columns here, so spacing_x / 2 bounds both axes
        assert grid.spacing_y <= grid.spacing_x
        assert_tile_centres_cover(grid, 1000, 1000)
        print(f"   {rotation}°: {len(grid.cells())} tiles")

    thin_text = DEFAULT_SETTINGS.replace(tiled=True, text="|", font_size=1, gap=0)
    wide_logo = image_settings(create_solid_image(400, 20, (255, 255, 255, 255)),
                               tiled=True, image_scale=1, gap=0)
    for settings in (thin_text, wide_logo):
        for rotation in (0, 45):
            grid = compositor.plan_tiles((2000, 2000), settings.replace(rotation=rotation))
            assert len(grid.cells()) < compositor.MAX_TILES
            assert_tile_centres_cover(grid, 2000, 2000)

    print("✅ Tile centre coverage passed!")


def lit_extent(image: Image.Image):
    """(first row, last row, first column, last column) with any red."""
    red = np.asarray(image)[..., 0]
    rows = np.nonzero(red.any(axis=1))[0]
    cols = np.nonzero(red.any(axis=0))[0]
    assert len(rows) > 0, "Nothing was drawn"
    return rows.min(), rows.max(), cols.min(), cols.max()


def test_small_tiles_reach_every_edge():
    """Tiny in-range content still tiles the whole canvas."""
    print("\n" + "=" * 50)
    print("Testing Small Tiled Content")
    print("=" * 50)

    base = create_solid_image(2000, 2000)
    compositor = WatermarkCompositor()

    thin_text = DEFAULT_SETTINGS.replace(tiled=True, text="|", font_size=1, gap=0, opacity=1.0)
    top, bottom, left, right = lit_extent(compositor.composite(base, thin_text))
    print(f"   thin text: rows {top}..{bottom}, cols {left}..{right}")
    assert top <= 100 and bottom >= 1900
    assert left <= 100 and right >= 1900

    logo = create_solid_image(400, 20, (255, 255, 255, 255))
    wide_logo = image_settings(logo, tiled=True, image_scale=1, gap=0)
    top, bottom, left, right = lit_extent(compositor.composite(base, wide_logo))
    print(f"   wide logo: rows {top}..{bottom}, cols {left}..{right}")
    assert top <= 20 and bottom >= 1980
    assert left <= 20 and right >= 1980

    print("✅ Small tiled content passed!")


def test_tile_spacing_floor_and_cap():
    grid = TileGrid.for_content((0, 0), (10, 10), gap=0)
    assert grid.spacing_x == TileGrid.MIN_SPACING
    assert grid.spacing_y == TileGrid.MIN_SPACING

    capped = TileGrid(spacing_x=4, spacing_y=4, diagonal=math.hypot(1000, 1000),
                      canvas_width=1000, canvas_height=1000, max_tiles=100)
    assert len(capped.cells()) == 100


def test_off_canvas_tiles_are_skipped():
    """Only cells that can touch the canvas are produced."""
    grid = WatermarkCompositor().plan_tiles((1000, 1000), DEFAULT_SETTINGS.replace(tiled=True))
    margin_x = max(grid.reach, grid.spacing_x / 2) + grid.spacing_x
    margin_y = max(grid.reach, grid.spacing_y / 2) + grid.spacing_y

    for cell in grid.cells():
        assert -margin_x <= cell.x <= 1000 + margin_x
        assert -margin_y <= cell.y <= 1000 + margin_y


# ============================================================
# Image I/O
# ============================================================

def test_image_io():
    """Load, encode and save helpers."""
    print("\n" + "=" * 50)
    print("Testing Image I/O")
    print("=" * 50)

    temp_dir = Path(tempfile.mkdtemp())
    try:
        assert is_supported_image("Holiday.JPG")
        assert is_supported_image(Path("scan.tiff"))
        assert not is_supported_image("notes.txt")

        source = temp_dir / "photo.jpg"
        Image.fromarray(np.full((60, 80, 3), 200, dtype=np.uint8)).save(source)

        loaded = load_image(source)
        assert loaded.mode == "RGBA"
        assert loaded.size == (80, 60)

        with pytest.raises(FileNotFoundError):
            load_image(temp_dir / "missing.png")

        garbage = temp_dir / "broken.png"
        garbage.write_bytes(b"not an image")
        with pytest.raises(ImageLoadError):
            load_image(garbage)

        assert export_filename(1700000000000) == "watermarked-1700000000000.png"
        assert re.fullmatch(r"watermarked-\d{13}\.png", export_filename())

        assert encode_png(loaded).startswith(b"\x89PNG")

        translucent = create_solid_image(8, 8, (255, 0, 0, 128))
        saved = save_png(translucent, temp_dir / "out", "result.png")
        assert saved == temp_dir / "out" / "result.png"
        with Image.open(saved) as reopened:
            assert reopened.format == "PNG"
            assert reopened.convert("RGBA").getpixel((0, 0)) == (255, 0, 0, 128)

        print("✅ Image I/O passed!")

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


# ============================================================
# Config / translations
# ============================================================

def test_load_config():
    defaults = load_config({})
    assert defaults.api_key == ""
    assert defaults.ai_timeout_ms == 15000
    assert defaults.preview_max_size == 1200
    assert defaults.language == Language.EN

    config = load_config({
        "API_KEY": "fallback-key",
        "WATERMARK_AI_TIMEOUT_MS": "5000",
        "WATERMARK_PREVIEW_MAX": "not-a-number",
        "WATERMARK_LANGUAGE": "zh",
    })
    assert config.api_key == "fallback-key"
    assert config.ai_timeout_ms == 5000
    assert config.preview_max_size == 1200
    assert config.language == Language.ZH

    assert load_config({"GEMINI_API_KEY": "primary", "API_KEY": "other"}).api_key == "primary"
    assert load_config({"WATERMARK_LANGUAGE": "fr"}).language == Language.EN


def test_translations():
    assert tr("download", Language.EN) == "Download"
    assert tr("download", Language.ZH) != tr("download", Language.EN)
    assert tr("no_such_key", Language.ZH) == "no_such_key"
    assert tr("export_done", Language.EN, path="out.png") == "Saved out.png"


def main():
    """Run all tests."""
    print("🧪 Watermark Pro Core Module Tests")
    print("=" * 50)

    tests = [
        ("Settings", test_settings_defaults_and_replace),
        ("Anchors", test_anchor_alignment_names),
        ("Transform Stack", test_transform_stack_is_scoped),
        ("Target Reset", test_render_target_reset),
        ("Deterministic", test_rendering_is_deterministic),
        ("Inset", test_single_position_inset),
        ("Inset Minimum", test_inset_has_minimum),
        ("Rotation 180", test_rotation_180_mirrors_centered_logo),
        ("Image Size", test_image_watermark_size_and_aspect),
        ("Opacity", test_opacity_scales_linearly),
        ("Missing Image", test_missing_image_renders_base_only),
        ("Empty Text", test_empty_text_renders_base_only),
        ("Text Drawn", test_text_watermark_changes_pixels),
        ("Tile Spacing", test_tile_spacing_regression),
        ("Brick Offset", test_brick_offset_on_odd_rows),
        ("Tile Coverage", test_tiles_cover_canvas_at_any_rotation),
        ("Tile Centre Coverage", test_tile_centres_cover_canvas),
        ("Small Tiled Content", test_small_tiles_reach_every_edge),
        ("Spacing Floor / Cap", test_tile_spacing_floor_and_cap),
        ("Off-Canvas Skip", test_off_canvas_tiles_are_skipped),
        ("Image I/O", test_image_io),
        ("Config", test_load_config),
        ("Translations", test_translations),
    ]

    results = []
    for name, test in tests:
        try:
            test()
            results.append((name, True))
        except Exception as e:
            print(f"❌ {name} failed: {e}")
            import traceback
            traceback.print_exc()
            results.append((name, False))

    # Summary
    print("\n" + "=" * 50)
    print("Test Summary")
    print("=" * 50)

    passed = sum(1 for _, r in results if r)
    total = len(results)

    for name, result in results:
        status = "✅ PASS" if result else "❌ FAIL"
        print(f"  {name}: {status}")

    print(f"\nTotal: {passed}/{total} tests passed")

    return passed == total


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
