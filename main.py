"""
Watermark Pro - Main Entry Point
================================
A desktop application that overlays a text or image watermark onto a
photo and exports the result as PNG.

Usage:
    python main.py

Architecture:
    - Model: watermark_pro/core/ (settings, compositor, image I/O, suggestions)
    - View: watermark_pro/ui/ (PyQt6 interface)
    - Controller: This file (signal/slot connections)

Environment:
    GEMINI_API_KEY (or API_KEY): enables AI text suggestions
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from PIL import Image
from PyQt6.QtWidgets import QApplication

from watermark_pro.config import AppConfig, load_config
from watermark_pro.core import ImageLoadError, SuggestionClient, WatermarkSettings, load_image
from watermark_pro.i18n import Language, tr
from watermark_pro.ui import MainWindow
from watermark_pro.workers import (
    ExportWorker, ExportConfig, ExportResult,
    RenderManager, RenderConfig, SuggestionWorker
)

logger = logging.getLogger(__name__)


class WatermarkController:
    """
    Connects UI signals to the workers.

    Responsibilities:
    - Load the base image and the watermark image
    - Re-render the preview on every settings change
    - Run exports and AI suggestion requests off the UI thread
    - Report errors to the user
    """

    def __init__(self, main_window: MainWindow, config: AppConfig):
        self.window = main_window
        self.panel = main_window.control_panel
        self.config = config

        self._base_image: Optional[Image.Image] = None
        self._output_dir = Path.home() / "Pictures"

        self._render_manager = RenderManager(debounce_ms=config.preview_debounce_ms, parent=main_window)
        self._suggestion_client = SuggestionClient(
            api_key=config.api_key,
            model=config.ai_model,
            timeout_ms=config.ai_timeout_ms,
        )

        # Worker references (to prevent garbage collection)
        self._export_worker: Optional[ExportWorker] = None
        self._suggestion_worker: Optional[SuggestionWorker] = None
        self._suggestion_source: Optional[Image.Image] = None

        self._connect_signals()

    def _connect_signals(self):
        self.window.drop_zone.file_dropped.connect(self._on_base_image_chosen)
        self.window.download_btn.clicked.connect(self._on_download)

        self.panel.settings_changed.connect(self._on_settings_changed)
        self.panel.watermark_image_chosen.connect(self._on_watermark_image_chosen)
        self.panel.suggest_requested.connect(self._on_suggest_requested)

        self._render_manager.render_started.connect(
            lambda: self.window.show_message(tr("rendering", self.language), 0)
        )
        self._render_manager.render_updated.connect(self._on_render_updated)
        self._render_manager.render_error.connect(self.window.preview_canvas.set_error)

    @property
    def language(self) -> Language:
        return self.panel.language()

    # ===== Images =====

    def _load(self, path: Path) -> Optional[Image.Image]:
        try:
            return load_image(path)
        except (FileNotFoundError, ImageLoadError) as e:
            logger.warning("Could not load %s: %s", path, e)
            self.window.show_error(tr("load_failed", self.language), str(e))
            return None

    def _on_base_image_chosen(self, path: Path):
        image = self._load(path)
        if image is None:
            return

        self._base_image = image
        self._output_dir = path.parent
        self._render_manager.clear_cache()
        self.panel.set_suggestions([])
        self.window.set_image_loaded(True)
        self._request_render()

    def _on_watermark_image_chosen(self, path: Path):
        image = self._load(path)
        if image is not None:
            self.panel.set_watermark_image(image)

    # ===== Preview =====

    def _on_settings_changed(self, settings: WatermarkSettings):
        self._request_render(settings)

    def _request_render(self, settings: Optional[WatermarkSettings] = None):
        # No base image yet: the upload prompt is showing, nothing to render
        if self._base_image is None:
            return

        self._render_manager.request_render(RenderConfig(
            base_image=self._base_image,
            settings=settings or self.panel.settings(),
            max_preview_size=self.config.preview_max_size,
        ))

    def _on_render_updated(self, pixmap):
        self.window.preview_canvas.set_preview(pixmap)
        self.window.show_message(tr("preview_ready", self.language))

    # ===== Export =====

    def _on_download(self):
        if self._base_image is None or self._export_worker is not None:
            return

        output_dir = self.window.ask_output_directory(self._output_dir)
        if output_dir is None:
            return
        self._output_dir = output_dir

        self._export_worker = ExportWorker(ExportConfig(
            base_image=self._base_image,
            settings=self.panel.settings(),
            output_dir=output_dir,
        ))
        self._export_worker.finished_export.connect(self._on_export_finished)
        self.window.download_btn.setEnabled(False)
        self._export_worker.start()

    def _on_export_finished(self, result: ExportResult):
        self.window.download_btn.setEnabled(True)

        if result.success:
            self.window.show_message(tr("export_done", self.language, path=result.output_path), 5000)
        else:
            self.window.show_error(tr("export_failed", self.language), result.error_message)

        if self._export_worker:
            self._export_worker.deleteLater()
            self._export_worker = None

    # ===== AI suggestions =====

    def _on_suggest_requested(self):
        if self._base_image is None or self._suggestion_worker is not None:
            return

        self.panel.set_generating(True)
        self._suggestion_source = self._base_image
        self._suggestion_worker = SuggestionWorker(
            self._suggestion_client, self._base_image, self.language
        )
        self._suggestion_worker.suggestions_ready.connect(self._on_suggestions_ready)
        self._suggestion_worker.start()

    def _on_suggestions_ready(self, suggestions: list):
        self.panel.set_generating(False)

        # Results for an image that has since been replaced are dropped
        if self._suggestion_source is self._base_image:
            self.panel.set_suggestions(suggestions)
        self._suggestion_source = None

        if self._suggestion_worker:
            self._suggestion_worker.deleteLater()
            self._suggestion_worker = None


def main():
    """Application entry point."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s")
    config = load_config()

    app = QApplication(sys.argv)
    app.setApplicationName("Watermark Pro AI")
    app.setApplicationVersion("1.0.0")

    window = MainWindow(language=config.language)
    controller = WatermarkController(window, config)

    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
