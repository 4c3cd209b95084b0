"""
Main Window
===========

┌───────────────────────────────────────────────┬──────────────┐
│ ◆ Watermark Pro AI   [Change Image] [Download]│              │
│                                               │   CONTROL    │
│        DROP ZONE  /  PREVIEW CANVAS           │    PANEL     │
│                                               │              │
└───────────────────────────────────────────────┴──────────────┘

The drop zone is shown until a base image is loaded; the preview canvas
takes its place afterwards.
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QStatusBar, QMessageBox, QLabel, QPushButton, QStackedWidget, QFileDialog
)

from ..i18n import Language, tr
from .control_panel import ControlPanel
from .widgets import DragDropLabel, PreviewCanvas


class MainWindow(QMainWindow):
    """Top-level window: preview area on the left, controls on the right."""

    APP_NAME = "Watermark Pro AI"

    PAGE_DROP = 0
    PAGE_PREVIEW = 1

    def __init__(self, language: Language = Language.EN, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._language = language

        self._setup_window()
        self._setup_ui()
        self._setup_statusbar()
        self._connect_signals()
        self._retranslate()
        self.set_image_loaded(False)

    def _setup_window(self):
        self.setWindowTitle(self.APP_NAME)
        self.setMinimumSize(1100, 700)
        self.resize(1360, 840)

    def _setup_ui(self):
        central = QWidget()
        central.setObjectName("centralContainer")
        self.setCentralWidget(central)

        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # === PREVIEW AREA ===
        preview_area = QWidget()
        preview_layout = QVBoxLayout(preview_area)
        preview_layout.setContentsMargins(24, 16, 24, 24)
        preview_layout.setSpacing(12)

        header = QHBoxLayout()
        title_col = QVBoxLayout()
        self.title_label = QLabel()
        self.title_label.setObjectName("appTitle")
        self.subtitle_label = QLabel()
        self.subtitle_label.setObjectName("appSubtitle")
        title_col.addWidget(self.title_label)
        title_col.addWidget(self.subtitle_label)
        header.addLayout(title_col)
        header.addStretch()

        self.change_image_btn = QPushButton()
        self.download_btn = QPushButton()
        self.download_btn.setObjectName("primaryButton")
        header.addWidget(self.change_image_btn)
        header.addWidget(self.download_btn)
        preview_layout.addLayout(header)

        self.content_stack = QStackedWidget()
        self.drop_zone = DragDropLabel(self._language)
        self.preview_canvas = PreviewCanvas()
        self.content_stack.addWidget(self.drop_zone)
        self.content_stack.addWidget(self.preview_canvas)
        preview_layout.addWidget(self.content_stack, 1)

        main_layout.addWidget(preview_area, 1)

        # === CONTROL PANEL ===
        self.control_panel = ControlPanel(language=self._language)
        main_layout.addWidget(self.control_panel)

    def _setup_statusbar(self):
        self.statusbar = QStatusBar()
        self.setStatusBar(self.statusbar)
        self.status_label = QLabel("")
        self.statusbar.addWidget(self.status_label)

    def _connect_signals(self):
        self.change_image_btn.clicked.connect(self.drop_zone.open_file_dialog)
        self.control_panel.language_changed.connect(self.set_language)

    def _retranslate(self):
        self.title_label.setText(tr("app_title", self._language))
        self.subtitle_label.setText(tr("app_subtitle", self._language))
        self.change_image_btn.setText(tr("change_image", self._language))
        self.download_btn.setText(tr("download", self._language))
        self.drop_zone.set_language(self._language)

    # === Public API ===

    @property
    def language(self) -> Language:
        return self._language

    def set_language(self, language: Language):
        self._language = language
        self._retranslate()

    def set_image_loaded(self, loaded: bool):
        """Switch between the upload prompt and the preview."""
        self.content_stack.setCurrentIndex(self.PAGE_PREVIEW if loaded else self.PAGE_DROP)
        self.change_image_btn.setVisible(loaded)
        self.download_btn.setVisible(loaded)

    def ask_output_directory(self, start: Path) -> Optional[Path]:
        directory = QFileDialog.getExistingDirectory(self, tr("download", self._language), str(start))
        return Path(directory) if directory else None

    def show_message(self, message: str, timeout: int = 3000):
        """Show a message in the status bar."""
        self.status_label.setText(message)
        if timeout > 0:
            QTimer.singleShot(timeout, lambda: self.status_label.setText(""))

    def show_error(self, title: str, message: str):
        QMessageBox.critical(self, title, message)

    def show_info(self, title: str, message: str):
        QMessageBox.information(self, title, message)
