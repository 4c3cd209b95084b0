"""
Control Panel
=============
Sidebar with every watermark option.

The panel owns the current WatermarkSettings snapshot. Each control edit
derives a new snapshot with ``settings.replace(...)`` and emits it through
``settings_changed``; nothing else mutates settings.

Layout:
┌──────────────────────────┐
│ Customize       [EN|中文] │
│ [  Text  |  Image  ]     │
│ Text + AI / Logo upload  │
│ Size / Colour / Opacity  │
│ Rotation                 │
│ Layout: tiled + gap      │
│         or anchor grid   │
└──────────────────────────┘
"""

from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QSpinBox,
    QPushButton, QFileDialog, QFrame, QScrollArea, QCheckBox, QButtonGroup
)

from ..core.settings import DEFAULT_SETTINGS, Anchor, WatermarkKind, WatermarkSettings
from ..i18n import Language, tr
from ..workers.render_worker import pil_image_to_qpixmap
from .widgets import AnchorGrid, ColorButton, NoWheelSlider, image_file_filter


class ControlPanel(QFrame):
    """
    Watermark settings sidebar.

    Signals:
        settings_changed(WatermarkSettings): New snapshot after any edit
        suggest_requested(): "AI Suggest" clicked
        watermark_image_chosen(Path): A logo file was picked
        language_changed(Language): UI language switched
    """

    settings_changed = pyqtSignal(object)
    suggest_requested = pyqtSignal()
    watermark_image_chosen = pyqtSignal(object)
    language_changed = pyqtSignal(object)

    def __init__(self, settings: WatermarkSettings = DEFAULT_SETTINGS,
                 language: Language = Language.EN, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._settings = settings
        self._language = language
        self._field_labels: List[Tuple[QLabel, str]] = []
        self._suggestion_buttons: List[QPushButton] = []

        self.setObjectName("controlPanel")
        self.setMinimumWidth(320)
        self.setMaximumWidth(400)

        self._setup_ui()
        self._connect_signals()
        self._sync_visibility()

    # ========================================================================
    # UI SETUP
    # ========================================================================

    def _setup_ui(self):
        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setFrameShape(QFrame.Shape.NoFrame)

        content = QWidget()
        layout = QVBoxLayout(content)
        layout.setContentsMargins(20, 20, 20, 20)
        layout.setSpacing(16)

        # Header with language switch
        header = QHBoxLayout()
        self.title_label = self._label("customize", object_name="panelHeader")
        header.addWidget(self.title_label)
        header.addStretch()
        self.lang_en = QPushButton("EN")
        self.lang_zh = QPushButton("中文")
        self._lang_group = QButtonGroup(self)
        for button in (self.lang_en, self.lang_zh):
            button.setCheckable(True)
            button.setFixedWidth(48)
            self._lang_group.addButton(button)
            header.addWidget(button)
        (self.lang_zh if self._language == Language.ZH else self.lang_en).setChecked(True)
        layout.addLayout(header)

        # Mode toggle
        mode_row = QHBoxLayout()
        self.mode_text = QPushButton()
        self.mode_image = QPushButton()
        self._mode_group = QButtonGroup(self)
        for button in (self.mode_text, self.mode_image):
            button.setCheckable(True)
            button.setMinimumHeight(36)
            self._mode_group.addButton(button)
            mode_row.addWidget(button)
        (self.mode_image if self._settings.kind == WatermarkKind.IMAGE else self.mode_text).setChecked(True)
        layout.addLayout(mode_row)

        # Text mode section
        self.text_section = QWidget()
        text_layout = QVBoxLayout(self.text_section)
        text_layout.setContentsMargins(0, 0, 0, 0)
        text_layout.setSpacing(8)
        text_layout.addWidget(self._label("watermark_text"))

        text_row = QHBoxLayout()
        self.text_input = QLineEdit(self._settings.text)
        text_row.addWidget(self.text_input, 1)
        self.suggest_btn = QPushButton()
        self.suggest_btn.setObjectName("suggestButton")
        text_row.addWidget(self.suggest_btn)
        text_layout.addLayout(text_row)

        self.suggestions_label = self._label("suggestions")
        self.suggestions_label.setVisible(False)
        text_layout.addWidget(self.suggestions_label)
        self.suggestions_box = QVBoxLayout()
        self.suggestions_box.setSpacing(4)
        text_layout.addLayout(self.suggestions_box)
        layout.addWidget(self.text_section)

        # Image mode section
        self.image_section = QWidget()
        image_layout = QVBoxLayout(self.image_section)
        image_layout.setContentsMargins(0, 0, 0, 0)
        image_layout.setSpacing(8)
        image_layout.addWidget(self._label("watermark_image"))

        logo_row = QHBoxLayout()
        self.logo_preview = QLabel()
        self.logo_preview.setFixedSize(56, 56)
        self.logo_preview.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.logo_preview.setObjectName("logoPreview")
        logo_row.addWidget(self.logo_preview)
        self.upload_logo_btn = QPushButton()
        logo_row.addWidget(self.upload_logo_btn, 1)
        self.remove_logo_btn = QPushButton()
        logo_row.addWidget(self.remove_logo_btn)
        image_layout.addLayout(logo_row)

        scale_widget, self.scale_slider, self.scale_spin = self._create_slider(
            "image_scale", 1, 100, int(self._settings.image_scale), " %"
        )
        image_layout.addWidget(scale_widget)
        layout.addWidget(self.image_section)

        # Text styling
        self.style_section = QWidget()
        style_layout = QVBoxLayout(self.style_section)
        style_layout.setContentsMargins(0, 0, 0, 0)
        style_layout.setSpacing(12)

        size_widget, self.font_size_slider, self.font_size_spin = self._create_slider(
            "font_size", 1, 30, int(self._settings.font_size), " %"
        )
        style_layout.addWidget(size_widget)

        color_row = QHBoxLayout()
        color_row.addWidget(self._label("color"))
        self.color_button = ColorButton(str(self._settings.color))
        self.color_button.setFixedWidth(80)
        color_row.addStretch()
        color_row.addWidget(self.color_button)
        style_layout.addLayout(color_row)
        layout.addWidget(self.style_section)

        opacity_widget, self.opacity_slider, self.opacity_spin = self._create_slider(
            "opacity", 1, 100, int(round(self._settings.opacity * 100)), " %"
        )
        layout.addWidget(opacity_widget)

        rotation_widget, self.rotation_slider, self.rotation_spin = self._create_slider(
            "rotation", -180, 180, int(self._settings.rotation), "°"
        )
        layout.addWidget(rotation_widget)

        # Layout: tiled or anchored
        layout.addWidget(self._label("layout"))
        self.tiled_check = QCheckBox()
        self.tiled_check.setChecked(self._settings.tiled)
        layout.addWidget(self.tiled_check)

        gap_widget, self.gap_slider, self.gap_spin = self._create_slider(
            "gap", 0, 100, int(self._settings.gap), ""
        )
        self.gap_widget = gap_widget
        layout.addWidget(gap_widget)

        self.position_section = QWidget()
        position_layout = QVBoxLayout(self.position_section)
        position_layout.setContentsMargins(0, 0, 0, 0)
        position_layout.addWidget(self._label("position"))
        self.anchor_grid = AnchorGrid(Anchor(self._settings.anchor))
        position_layout.addWidget(self.anchor_grid, alignment=Qt.AlignmentFlag.AlignLeft)
        layout.addWidget(self.position_section)

        layout.addStretch()
        scroll.setWidget(content)
        outer.addWidget(scroll)

        self._retranslate()

    def _label(self, key: str, object_name: str = "fieldLabel") -> QLabel:
        label = QLabel(tr(key, self._language))
        label.setObjectName(object_name)
        self._field_labels.append((label, key))
        return label

    def _create_slider(self, key: str, min_val: int, max_val: int,
                       default: int, suffix: str) -> tuple:
        """Create a labelled slider with a synced spin box."""
        widget = QWidget()
        layout = QVBoxLayout(widget)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(6)
        layout.addWidget(self._label(key))

        row = QHBoxLayout()
        row.setSpacing(10)

        slider = NoWheelSlider(Qt.Orientation.Horizontal)
        slider.setRange(min_val, max_val)
        slider.setValue(default)
        row.addWidget(slider, 1)

        spin = QSpinBox()
        spin.setRange(min_val, max_val)
        spin.setValue(default)
        spin.setSuffix(suffix)
        spin.setFixedWidth(80)
        row.addWidget(spin)

        layout.addLayout(row)

        slider.valueChanged.connect(spin.setValue)
        spin.valueChanged.connect(slider.setValue)

        return widget, slider, spin

    def _retranslate(self):
        for label, key in self._field_labels:
            label.setText(tr(key, self._language))

        self.mode_text.setText(tr("mode_text", self._language))
        self.mode_image.setText(tr("mode_image", self._language))
        self.text_input.setPlaceholderText(tr("text_placeholder", self._language))
        self.upload_logo_btn.setText(tr("upload_logo", self._language))
        self.remove_logo_btn.setText(tr("remove_logo", self._language))
        self.tiled_check.setText(tr("tiled", self._language))
        self.color_button.set_dialog_title(tr("pick_color", self._language))
        self.anchor_grid.set_language(self._language)
        self.set_generating(not self.suggest_btn.isEnabled())

    # ========================================================================
    # SIGNAL CONNECTIONS
    # ========================================================================

    def _connect_signals(self):
        """
        Every control funnels into ``_update``.

        Spin boxes are used (not sliders) since the two are cross-connected
        and the spin fires once per final value.
        """
        self.mode_text.clicked.connect(lambda: self._update(kind=WatermarkKind.TEXT))
        self.mode_image.clicked.connect(lambda: self._update(kind=WatermarkKind.IMAGE))
        self.text_input.textChanged.connect(lambda text: self._update(text=text))
        self.suggest_btn.clicked.connect(self.suggest_requested.emit)

        self.upload_logo_btn.clicked.connect(self._choose_logo)
        self.remove_logo_btn.clicked.connect(lambda: self.set_watermark_image(None))

        self.scale_spin.valueChanged.connect(lambda v: self._update(image_scale=v))
        self.font_size_spin.valueChanged.connect(lambda v: self._update(font_size=v))
        self.opacity_spin.valueChanged.connect(lambda v: self._update(opacity=v / 100))
        self.rotation_spin.valueChanged.connect(lambda v: self._update(rotation=v))
        self.gap_spin.valueChanged.connect(lambda v: self._update(gap=v))
        self.color_button.color_changed.connect(lambda c: self._update(color=c))
        self.tiled_check.toggled.connect(lambda checked: self._update(tiled=checked))
        self.anchor_grid.anchor_changed.connect(lambda a: self._update(anchor=a))

        self.lang_en.clicked.connect(lambda: self.set_language(Language.EN))
        self.lang_zh.clicked.connect(lambda: self.set_language(Language.ZH))

    def _update(self, **changes):
        self._settings = self._settings.replace(**changes)
        self._sync_visibility()
        self.settings_changed.emit(self._settings)

    def _sync_visibility(self):
        is_text = self._settings.kind == WatermarkKind.TEXT
        self.text_section.setVisible(is_text)
        self.style_section.setVisible(is_text)
        self.image_section.setVisible(not is_text)
        self.remove_logo_btn.setEnabled(self._settings.has_watermark_image)

        self.gap_widget.setVisible(self._settings.tiled)
        self.position_section.setVisible(not self._settings.tiled)

    def _choose_logo(self):
        path, _ = QFileDialog.getOpenFileName(
            self, tr("upload_logo", self._language), "", image_file_filter(self._language)
        )
        if path:
            self.watermark_image_chosen.emit(Path(path))

    def _on_suggestion_clicked(self, text: str):
        self.text_input.setText(text)

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def settings(self) -> WatermarkSettings:
        return self._settings

    def language(self) -> Language:
        return self._language

    def set_language(self, language: Language):
        if language == self._language:
            return
        self._language = language
        self._retranslate()
        self.language_changed.emit(language)

    def set_watermark_image(self, image: Optional[Image.Image]):
        """Install (or remove with None) the decoded logo image."""
        if image is None:
            self.logo_preview.clear()
        else:
            thumb = image.copy()
            thumb.thumbnail((56, 56))
            self.logo_preview.setPixmap(pil_image_to_qpixmap(thumb))
        self._update(watermark_image=image)

    def set_generating(self, is_generating: bool):
        """Busy state of the AI button; disables re-triggering."""
        self.suggest_btn.setEnabled(not is_generating)
        self.suggest_btn.setText(tr("ai_thinking" if is_generating else "ai_suggest", self._language))

    def set_suggestions(self, suggestions: List[str]):
        for button in self._suggestion_buttons:
            self.suggestions_box.removeWidget(button)
            button.deleteLater()
        self._suggestion_buttons = []

        for text in suggestions:
            button = QPushButton(text)
            button.setObjectName("suggestionChip")
            button.clicked.connect(lambda _checked=False, t=text: self._on_suggestion_clicked(t))
            self.suggestions_box.addWidget(button)
            self._suggestion_buttons.append(button)

        self.suggestions_label.setVisible(bool(suggestions))
