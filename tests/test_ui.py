"""
Test script for the settings panel and main window wiring.

Run with: python -m pytest tests/test_ui.py -v
"""

import os
import sys
from pathlib import Path

# Headless Qt for CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from PIL import Image
import numpy as np

from PyQt6.QtWidgets import QApplication

from main import WatermarkController
from watermark_pro.config import AppConfig
from watermark_pro.core.settings import Anchor, WatermarkKind
from watermark_pro.i18n import Language, tr
from watermark_pro.ui import ControlPanel, MainWindow

_app = None


def get_app():
    """Get or create QApplication instance."""
    global _app
    if _app is None:
        _app = QApplication.instance() or QApplication(sys.argv)
    return _app


def test_controls_emit_new_settings():
    """Each control change emits a fresh settings snapshot."""
    get_app()
    panel = ControlPanel()
    emitted = []
    panel.settings_changed.connect(emitted.append)
    original = panel.settings()

    panel.text_input.setText("Hello")
    panel.opacity_spin.setValue(50)
    panel.rotation_spin.setValue(-45)
    panel.tiled_check.setChecked(True)
    panel.mode_image.click()

    latest = panel.settings()
    assert emitted[-1] is latest
    assert latest.text == "Hello"
    assert latest.opacity == 0.5
    assert latest.rotation == -45
    assert latest.tiled is True
    assert latest.kind == WatermarkKind.IMAGE

    assert original.text != "Hello", "Earlier snapshots must stay untouched"


def test_anchor_grid_updates_settings():
    get_app()
    panel = ControlPanel()
    panel.anchor_grid.anchor_changed.emit(Anchor.TOP_LEFT)
    assert panel.settings().anchor == Anchor.TOP_LEFT


def test_watermark_image_install_and_remove():
    get_app()
    panel = ControlPanel()
    logo = Image.fromarray(np.full((40, 80, 4), 255, dtype=np.uint8))

    panel.set_watermark_image(logo)
    assert panel.settings().watermark_image is logo

    panel.set_watermark_image(None)
    assert not panel.settings().has_watermark_image


def test_suggestion_chips_fill_text():
    get_app()
    panel = ControlPanel()

    panel.set_generating(True)
    assert not panel.suggest_btn.isEnabled()
    panel.set_generating(False)
    assert panel.suggest_btn.isEnabled()

    panel.set_suggestions(["Alpine", "© Studio"])
    assert len(panel._suggestion_buttons) == 2

    panel._suggestion_buttons[1].click()
    assert panel.text_input.text() == "© Studio"
    assert panel.settings().text == "© Studio"

    panel.set_suggestions([])
    assert panel._suggestion_buttons == []


def test_suggestions_for_replaced_image_are_dropped():
    get_app()
    controller = WatermarkController(MainWindow(), AppConfig())
    panel = controller.panel
    old_image = Image.fromarray(np.zeros((10, 10, 4), dtype=np.uint8))
    new_image = Image.fromarray(np.full((10, 10, 4), 255, dtype=np.uint8))

    # Base image swapped while the request was in flight
    controller._suggestion_source = old_image
    controller._base_image = new_image
    controller._on_suggestions_ready(["Alpine"])
    assert panel._suggestion_buttons == []
    assert panel.suggest_btn.isEnabled()

    controller._suggestion_source = new_image
    controller._on_suggestions_ready(["Alpine"])
    assert [button.text() for button in panel._suggestion_buttons] == ["Alpine"]


def test_language_switch():
    get_app()
    window = MainWindow(language=Language.EN)
    changes = []
    window.control_panel.language_changed.connect(changes.append)

    window.control_panel.lang_zh.click()
    assert changes == [Language.ZH]
    assert window.language == Language.ZH
    assert window.download_btn.text() == tr("download", Language.ZH)


def test_main_window_pages():
    get_app()
    window = MainWindow()

    assert window.content_stack.currentIndex() == MainWindow.PAGE_DROP
    assert window.download_btn.isHidden()

    window.set_image_loaded(True)
    assert window.content_stack.currentIndex() == MainWindow.PAGE_PREVIEW
    assert not window.download_btn.isHidden()
