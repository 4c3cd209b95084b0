"""
Reusable UI Widgets
===================
Custom widgets used across the application.

Key Components:
- DragDropLabel: Drag-and-drop / click-to-browse upload zone
- PreviewCanvas: Composited preview on a transparency checkerboard
- ColorButton: Colour swatch that opens a colour picker
- AnchorGrid: 3x3 grid of single-position anchors
- NoWheelSlider: Slider that ignores stray wheel events
"""

from pathlib import Path
from typing import Dict, List, Optional

from PyQt6.QtCore import Qt, pyqtSignal, QRectF
from PyQt6.QtGui import (
    QDragEnterEvent, QDropEvent, QPixmap, QColor,
    QPainter, QPainterPath, QBrush, QPen, QFont, QWheelEvent
)
from PyQt6.QtWidgets import (
    QLabel, QWidget, QGridLayout, QPushButton, QButtonGroup,
    QFileDialog, QSizePolicy, QSlider, QColorDialog
)

from ..core.image_io import SUPPORTED_FORMATS, is_supported_image
from ..core.settings import Anchor
from ..i18n import Language, tr


class NoWheelSlider(QSlider):
    """Slider that ignores wheel events unless explicitly focused."""

    def __init__(self, orientation=Qt.Orientation.Horizontal, parent=None):
        super().__init__(orientation, parent)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def wheelEvent(self, event: QWheelEvent):
        if self.hasFocus():
            super().wheelEvent(event)
        else:
            event.ignore()


def image_file_filter(language: Language = Language.EN) -> str:
    formats = " ".join(f"*{fmt}" for fmt in sorted(SUPPORTED_FORMATS))
    return f"{tr('choose_image', language)} ({formats})"


class DragDropLabel(QLabel):
    """
    A drop zone that accepts one image file.

    Displays an upload prompt with visual feedback while a file is
    dragged over it. Clicking opens a file dialog.

    Signals:
        file_dropped(Path): Emitted with the chosen image path.
    """

    file_dropped = pyqtSignal(object)  # Path

    ACCENT_COLOR = "#6366F1"
    BORDER_COLOR = "#3F3F46"
    TEXT_COLOR = "#A1A1AA"

    def __init__(self, language: Language = Language.EN, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._language = language
        self._is_dragging = False

        self.setAcceptDrops(True)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setMinimumSize(320, 200)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setObjectName("dragDropLabel")
        self.setCursor(Qt.CursorShape.PointingHandCursor)

    def set_language(self, language: Language):
        self._language = language
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        rect = self.rect()
        margin = 24

        path = QPainterPath()
        path.addRoundedRect(QRectF(rect).adjusted(margin, margin, -margin, -margin), 16, 16)
        fill = QColor(99, 102, 241, 25) if self._is_dragging else QColor(24, 24, 27, 128)
        painter.fillPath(path, QBrush(fill))

        pen = QPen(QColor(self.ACCENT_COLOR if self._is_dragging else self.BORDER_COLOR))
        pen.setStyle(Qt.PenStyle.DashLine)
        pen.setWidth(2)
        painter.setPen(pen)
        painter.drawPath(path)

        center_y = rect.height() / 2
        font = QFont()

        font.setPointSize(14)
        font.setWeight(QFont.Weight.DemiBold)
        painter.setFont(font)
        painter.setPen(QColor("#FFFFFF"))
        painter.drawText(QRectF(0, center_y - 40, rect.width(), 24),
                         Qt.AlignmentFlag.AlignCenter, tr("upload_title", self._language))

        font.setPointSize(10)
        font.setWeight(QFont.Weight.Normal)
        painter.setFont(font)
        painter.setPen(QColor(self.TEXT_COLOR))
        painter.drawText(QRectF(0, center_y - 8, rect.width(), 20),
                         Qt.AlignmentFlag.AlignCenter, tr("upload_hint", self._language))
        painter.drawText(QRectF(0, center_y + 16, rect.width(), 20),
                         Qt.AlignmentFlag.AlignCenter, tr("supported_formats", self._language))

        painter.end()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.open_file_dialog()
        super().mousePressEvent(event)

    def open_file_dialog(self):
        path, _ = QFileDialog.getOpenFileName(
            self, tr("choose_image", self._language), "", image_file_filter(self._language)
        )
        if path:
            self.file_dropped.emit(Path(path))

    @staticmethod
    def _first_image(event) -> Optional[Path]:
        for url in event.mimeData().urls():
            if url.isLocalFile():
                path = Path(url.toLocalFile())
                if is_supported_image(path):
                    return path
        return None

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls() and self._first_image(event) is not None:
            event.acceptProposedAction()
            self._is_dragging = True
            self.update()
            return
        event.ignore()

    def dragLeaveEvent(self, event):
        self._is_dragging = False
        self.update()
        super().dragLeaveEvent(event)

    def dropEvent(self, event: QDropEvent):
        self._is_dragging = False
        self.update()

        path = self._first_image(event)
        if path is not None:
            self.file_dropped.emit(path)
            event.acceptProposedAction()


class PreviewCanvas(QWidget):
    """
    Preview widget with a transparency checkerboard behind the image,
    so transparent watermark pixels stay visible.
    """

    GRID_LIGHT = QColor("#27272A")
    GRID_DARK = QColor("#18181B")
    GRID_SIZE = 12

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._pixmap: Optional[QPixmap] = None
        self._error_message: Optional[str] = None

        self.setObjectName("previewCanvas")
        self.setMinimumSize(400, 400)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

    def set_preview(self, pixmap: QPixmap):
        self._pixmap = pixmap
        self._error_message = None
        self.update()

    def set_error(self, message: str):
        self._error_message = message
        self.update()

    def clear(self):
        self._pixmap = None
        self._error_message = None
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        rect = self.rect()

        for y in range(0, rect.height(), self.GRID_SIZE):
            for x in range(0, rect.width(), self.GRID_SIZE):
                is_light = ((x // self.GRID_SIZE) + (y // self.GRID_SIZE)) % 2 == 0
                painter.fillRect(x, y, self.GRID_SIZE, self.GRID_SIZE,
                                 self.GRID_LIGHT if is_light else self.GRID_DARK)

        if self._pixmap and not self._pixmap.isNull():
            # Scale to fit while maintaining aspect ratio
            scaled = self._pixmap.scaled(
                rect.width() - 32,
                rect.height() - 32,
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation
            )
            x = (rect.width() - scaled.width()) // 2
            y = (rect.height() - scaled.height()) // 2
            painter.fillRect(QRectF(x + 4, y + 4, scaled.width(), scaled.height()), QColor(0, 0, 0, 80))
            painter.drawPixmap(x, y, scaled)

        if self._error_message:
            painter.setPen(QPen(QColor("#F87171")))
            painter.drawText(QRectF(rect).adjusted(0, 0, 0, -12),
                             Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
                             f"✕ {self._error_message}")

        painter.end()


class ColorButton(QPushButton):
    """
    A button that shows and allows selecting a color.

    Signals:
        color_changed(str): Emitted with the new colour as '#rrggbb'.
    """

    color_changed = pyqtSignal(str)

    def __init__(self, initial_color: str = "#ffffff", parent: Optional[QWidget] = None):
        super().__init__(parent)

        self._color = initial_color
        self._dialog_title = tr("pick_color")
        self.setFixedHeight(32)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.clicked.connect(self._open_color_dialog)
        self._update_style()

    def _update_style(self):
        color = QColor(self._color)
        luminance = (0.299 * color.red() + 0.587 * color.green() + 0.114 * color.blue()) / 255
        border_color = "#3F3F46" if luminance > 0.5 else "#71717A"

        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color};
                border: 2px solid {border_color};
                border-radius: 6px;
            }}
            QPushButton:hover {{
                border-color: #6366F1;
            }}
        """)

    def set_dialog_title(self, title: str):
        self._dialog_title = title

    def _open_color_dialog(self):
        color = QColorDialog.getColor(QColor(self._color), self, self._dialog_title)
        if color.isValid():
            self.set_color(color.name())
            self.color_changed.emit(self._color)

    def get_color(self) -> str:
        return self._color

    def set_color(self, color: str):
        self._color = color
        self._update_style()


class AnchorGrid(QWidget):
    """
    3x3 grid of checkable buttons, one per anchor.

    Signals:
        anchor_changed(Anchor): Emitted when another cell is picked.
    """

    anchor_changed = pyqtSignal(object)  # Anchor

    def __init__(self, anchor: Anchor = Anchor.BOTTOM_RIGHT, parent: Optional[QWidget] = None):
        super().__init__(parent)

        layout = QGridLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        self._group = QButtonGroup(self)
        self._group.setExclusive(True)
        self._buttons: Dict[Anchor, QPushButton] = {}

        anchors: List[Anchor] = list(Anchor)
        for index, cell in enumerate(anchors):
            button = QPushButton()
            button.setCheckable(True)
            button.setFixedSize(40, 32)
            button.setObjectName("anchorCell")
            button.setToolTip(tr(cell.value))
            self._group.addButton(button, index)
            self._buttons[cell] = button
            layout.addWidget(button, index // 3, index % 3)

        self._buttons[anchor].setChecked(True)
        self._group.idClicked.connect(lambda index: self.anchor_changed.emit(anchors[index]))

    def set_language(self, language: Language):
        for cell, button in self._buttons.items():
            button.setToolTip(tr(cell.value, language))

    def anchor(self) -> Anchor:
        for cell, button in self._buttons.items():
            if button.isChecked():
                return cell
        return Anchor.BOTTOM_RIGHT

    def set_anchor(self, anchor: Anchor):
        self._buttons[anchor].setChecked(True)
