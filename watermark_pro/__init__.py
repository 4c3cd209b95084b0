"""
Watermark Pro Application Package
=================================
A desktop tool that overlays a visible text or image watermark onto a
photo, with optional AI-suggested watermark text.

Modules:
    - core: Pure compositing logic (no UI dependencies)
    - workers: QThread workers for async processing
    - ui: PyQt6 user interface components

Usage:
    from watermark_pro.core import WatermarkCompositor, WatermarkSettings
    from watermark_pro.workers import RenderManager, ExportWorker
    from watermark_pro.ui import MainWindow
"""

__version__ = "1.0.0"
__app_name__ = "Watermark Pro AI"

# Core exports
from .core import (
    WatermarkCompositor, WatermarkSettings, WatermarkKind, Anchor,
    DEFAULT_SETTINGS, SuggestionClient
)
# UI exports
from .ui import MainWindow, ControlPanel, DragDropLabel, PreviewCanvas
# Worker exports
from .workers import (
    RenderManager, RenderConfig, ExportWorker, ExportConfig, ExportResult,
    SuggestionWorker
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Core
    "WatermarkCompositor",
    "WatermarkSettings",
    "WatermarkKind",
    "Anchor",
    "DEFAULT_SETTINGS",
    "SuggestionClient",

    # Workers
    "RenderManager",
    "RenderConfig",
    "ExportWorker",
    "ExportConfig",
    "ExportResult",
    "SuggestionWorker",

    # UI
    "MainWindow",
    "ControlPanel",
    "DragDropLabel",
    "PreviewCanvas",
]
