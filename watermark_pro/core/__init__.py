"""
Core Module - Pure Algorithm Logic
==================================
This module contains no UI dependencies.
Settings, compositing, image I/O and the suggestion client live here.
"""

from .compositor import RenderTarget, TileGrid, WatermarkCompositor, WatermarkContent
from .image_io import ImageLoadError, encode_png, export_filename, load_image, save_png
from .settings import DEFAULT_SETTINGS, Anchor, WatermarkKind, WatermarkSettings
from .suggestions import SuggestionClient, fallback_suggestions

__all__ = [
    "WatermarkCompositor",
    "RenderTarget",
    "TileGrid",
    "WatermarkContent",
    "WatermarkSettings",
    "WatermarkKind",
    "Anchor",
    "DEFAULT_SETTINGS",
    "ImageLoadError",
    "load_image",
    "encode_png",
    "export_filename",
    "save_png",
    "SuggestionClient",
    "fallback_suggestions",
]
