"""
Render Worker - Debounced Preview Rendering
===========================================

Every settings change re-renders the whole watermark, and slider drags
fire dozens of changes per second. This module keeps the UI responsive:

- Rendering runs on a QThread, one worker at a time
- A debouncer collapses bursts of requests into the last one
- Previews render on a downscaled "proxy" of the base image

All size-like settings are percentages of the base width, so the proxy
render needs no parameter scaling. The export path (ExportWorker) always
renders the full-resolution image.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from PIL import Image
from PyQt6.QtCore import QThread, pyqtSignal, QTimer, QObject, QMutex, QMutexLocker
from PyQt6.QtGui import QImage, QPixmap

from ..core.compositor import RenderTarget, WatermarkCompositor
from ..core.settings import WatermarkSettings

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """One preview request: a base image plus a settings snapshot."""
    base_image: Image.Image
    settings: WatermarkSettings
    max_preview_size: int = 1200  # Maximum proxy dimension


# Proxy cache: id(source) -> (source, proxy). The source is kept to make
# sure the id still refers to the same image.
_proxy_cache: Dict[int, Tuple[Image.Image, Image.Image]] = {}
_proxy_cache_lock = QMutex()

MAX_PROXY_CACHE_SIZE = 4


def get_proxy(image: Image.Image, max_size: int) -> Image.Image:
    """
    Return a copy of ``image`` downscaled so its longest edge is ``max_size``.

    Images already within ``max_size`` are returned as-is. Proxies are
    cached per source image.
    """
    if max(image.size) <= max_size:
        return image

    key = id(image)
    with QMutexLocker(_proxy_cache_lock):
        cached = _proxy_cache.get(key)
        if cached is not None and cached[0] is image and max(cached[1].size) == max_size:
            return cached[1]

    proxy = image.copy()
    proxy.thumbnail((max_size, max_size), Image.Resampling.BILINEAR)

    with QMutexLocker(_proxy_cache_lock):
        if len(_proxy_cache) >= MAX_PROXY_CACHE_SIZE:
            oldest_key = next(iter(_proxy_cache))
            del _proxy_cache[oldest_key]
        _proxy_cache[key] = (image, proxy)

    return proxy


def clear_proxy_cache():
    """Clear the proxy cache (call when the base image is replaced)."""
    with QMutexLocker(_proxy_cache_lock):
        _proxy_cache.clear()


def pil_image_to_qimage(pil_image: Image.Image) -> QImage:
    """
    Convert PIL Image to QImage.

    The QImage is copied so it owns its pixel data once the PIL buffer
    is garbage collected. Unlike QPixmap, QImage is safe to build off
    the GUI thread.
    """
    if pil_image.mode != "RGBA":
        pil_image = pil_image.convert("RGBA")

    data = pil_image.tobytes("raw", "RGBA")
    qimage = QImage(
        data,
        pil_image.width,
        pil_image.height,
        pil_image.width * 4,  # bytes per line
        QImage.Format.Format_RGBA8888
    )
    return qimage.copy()


def pil_image_to_qpixmap(pil_image: Image.Image) -> QPixmap:
    """Convert PIL Image to QPixmap (GUI thread only)."""
    return QPixmap.fromImage(pil_image_to_qimage(pil_image))


class RenderWorker(QThread):
    """
    Worker thread that renders one preview.

    Signals:
        render_ready(QImage): Emitted when the preview is complete
        render_error(str): Emitted on error
    """

    render_ready = pyqtSignal(object)
    render_error = pyqtSignal(str)

    def __init__(self, config: RenderConfig, compositor: Optional[WatermarkCompositor] = None, parent=None):
        super().__init__(parent)
        self.config = config
        self._compositor = compositor or WatermarkCompositor()
        self._is_cancelled = False

    def cancel(self):
        """Request cancellation of this worker."""
        self._is_cancelled = True

    def run(self):
        try:
            if self._is_cancelled:
                return

            proxy = get_proxy(self.config.base_image, self.config.max_preview_size)

            if self._is_cancelled:
                return

            target = RenderTarget()
            self._compositor.render(proxy, target, self.config.settings)

            if self._is_cancelled:
                return

            self.render_ready.emit(pil_image_to_qimage(target.to_image()))

        except Exception as e:
            if not self._is_cancelled:
                logger.exception("Preview render failed")
                self.render_error.emit(f"Preview failed: {e}")


class RenderDebouncer(QObject):
    """
    Collapses rapid render requests into the last one.

    Each request restarts a single-shot timer; only the config pending
    when the timer fires is emitted.
    """

    render_requested = pyqtSignal(object)

    def __init__(self, delay_ms: int = 50, parent=None):
        super().__init__(parent)
        self._delay_ms = delay_ms
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._pending_config: Optional[RenderConfig] = None
        self._mutex = QMutex()

    def request_render(self, config: RenderConfig):
        with QMutexLocker(self._mutex):
            self._pending_config = config
            self._timer.stop()
            self._timer.start(self._delay_ms)

    def cancel(self):
        with QMutexLocker(self._mutex):
            self._timer.stop()
            self._pending_config = None

    def _on_timeout(self):
        with QMutexLocker(self._mutex):
            config, self._pending_config = self._pending_config, None
        if config is not None:
            self.render_requested.emit(config)


class RenderManager(QObject):
    """
    High-level preview controller.

    Debounces requests, keeps at most one worker alive and forwards its
    signals.

    USAGE:
        manager = RenderManager(debounce_ms=50)
        manager.render_updated.connect(on_preview_ready)
        manager.request_render(config)
    """

    render_updated = pyqtSignal(object)  # QPixmap
    render_error = pyqtSignal(str)
    render_started = pyqtSignal()

    def __init__(self, debounce_ms: int = 50, parent=None):
        super().__init__(parent)
        self._compositor = WatermarkCompositor()

        self._debouncer = RenderDebouncer(debounce_ms, self)
        self._debouncer.render_requested.connect(self._start_worker)

        self._current_worker: Optional[RenderWorker] = None
        self._mutex = QMutex()

    def request_render(self, config: RenderConfig):
        self._debouncer.request_render(config)

    def cancel(self):
        """Cancel all pending and in-progress preview work."""
        self._debouncer.cancel()
        self._cancel_current_worker()

    def clear_cache(self):
        clear_proxy_cache()

    def _cancel_current_worker(self):
        with QMutexLocker(self._mutex):
            worker, self._current_worker = self._current_worker, None

        if worker is None:
            return

        worker.cancel()
        try:
            worker.render_ready.disconnect()
            worker.render_error.disconnect()
            worker.finished.disconnect()
        except (TypeError, RuntimeError):
            pass  # Already disconnected

        # Let the render finish in the background; results are ignored
        if worker.isFinished():
            worker.deleteLater()
        else:
            worker.finished.connect(worker.deleteLater)

    def _start_worker(self, config: RenderConfig):
        self._cancel_current_worker()
        self.render_started.emit()

        worker = RenderWorker(config, self._compositor)
        worker.render_ready.connect(self._on_render_ready)
        worker.render_error.connect(self.render_error.emit)
        worker.finished.connect(self._on_worker_finished)

        with QMutexLocker(self._mutex):
            self._current_worker = worker
        worker.start()

    def _on_render_ready(self, qimage: QImage):
        # Queued into the GUI thread, where QPixmap may be created
        self.render_updated.emit(QPixmap.fromImage(qimage))

    def _on_worker_finished(self):
        with QMutexLocker(self._mutex):
            worker, self._current_worker = self._current_worker, None
        if worker is not None:
            worker.deleteLater()
