"""
Export Worker - Async Full-Resolution Export
============================================
QThread worker that renders the watermark on the original base image
and writes it as PNG.

Naming Convention:
- watermarked-<unix-timestamp-ms>.png
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PIL import Image
from PyQt6.QtCore import QThread, pyqtSignal

from ..core.compositor import RenderTarget, WatermarkCompositor
from ..core.image_io import export_filename, save_png
from ..core.settings import WatermarkSettings

logger = logging.getLogger(__name__)


@dataclass
class ExportConfig:
    """Everything needed to export one watermarked image."""
    base_image: Image.Image
    settings: WatermarkSettings
    output_dir: Path = field(default_factory=lambda: Path.cwd() / "output")
    filename: Optional[str] = None  # Defaults to watermarked-<ms>.png


@dataclass
class ExportResult:
    """Result of an export."""
    output_path: Optional[Path] = None
    success: bool = False
    error_message: str = ""


class ExportWorker(QThread):
    """
    Worker thread for exporting the composited image.

    Signals:
        finished_export(ExportResult): Emitted when the export is done
        error(str): Emitted on errors
    """

    finished_export = pyqtSignal(object)  # ExportResult
    error = pyqtSignal(str)

    def __init__(self, config: ExportConfig, parent=None):
        super().__init__(parent)
        self.config = config

    def run(self):
        result = ExportResult()

        try:
            target = RenderTarget()
            WatermarkCompositor().render(self.config.base_image, target, self.config.settings)

            filename = self.config.filename or export_filename()
            result.output_path = save_png(target.to_image(), self.config.output_dir, filename)
            result.success = True

        except OSError as e:
            result.error_message = str(e)
            self.error.emit(str(e))

        except Exception as e:
            result.error_message = f"Export failed: {e}"
            self.error.emit(result.error_message)
            logger.exception("Export failed")

        self.finished_export.emit(result)
