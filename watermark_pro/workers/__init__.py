"""
Workers Module - Async Thread Management
========================================
Contains QThread workers that keep the UI responsive.

Components:
- RenderWorker: Preview rendering with debounce (via RenderManager)
- ExportWorker: Full-resolution render and PNG export
- SuggestionWorker: AI watermark text suggestions
"""

from .export_worker import ExportWorker, ExportConfig, ExportResult
from .render_worker import (
    RenderWorker, RenderConfig, RenderDebouncer, RenderManager,
    pil_image_to_qimage, pil_image_to_qpixmap, get_proxy, clear_proxy_cache
)
from .suggestion_worker import SuggestionWorker

__all__ = [
    # Export
    "ExportWorker",
    "ExportConfig",
    "ExportResult",
    # Render
    "RenderWorker",
    "RenderConfig",
    "RenderDebouncer",
    "RenderManager",
    "pil_image_to_qimage",
    "pil_image_to_qpixmap",
    "get_proxy",
    "clear_proxy_cache",
    # Suggestions
    "SuggestionWorker",
]
