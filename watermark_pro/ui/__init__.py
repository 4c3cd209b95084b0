"""
UI Module - User Interface Components
=====================================
Contains all PyQt6 UI components for Watermark Pro.

Architecture:
- widgets.py: Reusable UI components
- control_panel.py: Watermark settings sidebar
- main_window.py: Main application window
"""

from .control_panel import ControlPanel
from .main_window import MainWindow
from .widgets import AnchorGrid, ColorButton, DragDropLabel, PreviewCanvas

__all__ = [
    "AnchorGrid",
    "ColorButton",
    "DragDropLabel",
    "PreviewCanvas",
    "ControlPanel",
    "MainWindow",
]
