"""Fullscreen PyQt6 window showing slideshow frames."""

from __future__ import annotations

import logging
import threading

from PIL import Image
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QCloseEvent, QColor, QImage, QKeyEvent, QPainter, QPaintEvent, QPixmap
from PyQt6.QtWidgets import QApplication, QWidget

from photo_frame.display.base import Display, ShutdownRequested
from photo_frame.models import Frame
from photo_frame.slideshow.controller import AmbientControl


logger = logging.getLogger(__name__)


def pil_to_qimage(pil_image: Image.Image) -> QImage:
    """Convert a PIL Image to a QImage that owns its pixel data."""
    rgb = pil_image if pil_image.mode == "RGB" else pil_image.convert("RGB")
    qimage = QImage(
        rgb.tobytes("raw", "RGB"),
        rgb.width, rgb.height,
        3 * rgb.width,
        QImage.Format.Format_RGB888,
    )
    # The constructor borrows the bytes buffer; copy() detaches from it
    return qimage.copy()


class FrameWidget(QWidget):
    """Paints the latest frame. Lives on the GUI thread."""

    frame_ready = pyqtSignal(QImage)
    standby_changed = pyqtSignal(bool)
    engine_finished = pyqtSignal()

    def __init__(self, shutdown: threading.Event, control: AmbientControl | None = None):
        super().__init__()
        self.setWindowTitle("Photo Frame")
        self.setStyleSheet("background-color: black;")
        self.setCursor(Qt.CursorShape.BlankCursor)
        self._shutdown = shutdown
        self._control = control
        self._pixmap: QPixmap | None = None
        self._standby = False
        self.frame_ready.connect(self._on_frame)
        self.standby_changed.connect(self._on_standby)
        self.engine_finished.connect(self.close)

    def _on_frame(self, qimage: QImage) -> None:
        self._pixmap = QPixmap.fromImage(qimage)
        self._pixmap.setDevicePixelRatio(self.devicePixelRatioF())
        self.update()

    def _on_standby(self, enabled: bool) -> None:
        self._standby = enabled
        self.update()

    def paintEvent(self, event: QPaintEvent) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(0, 0, 0))
        if self._pixmap is not None and not self._standby:
            size = self._pixmap.deviceIndependentSize()
            x = round((self.width() - size.width()) / 2)
            y = round((self.height() - size.height()) / 2)
            painter.drawPixmap(x, y, self._pixmap)
        painter.end()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key = event.key()
        if key in (Qt.Key.Key_Escape, Qt.Key.Key_Q):
            logger.info("Quit key pressed")
            self._shutdown.set()
            self.close()
        elif key == Qt.Key.Key_Space and self._control is not None:
            self._control.toggle_pause()
        elif key == Qt.Key.Key_S and self._control is not None:
            self._control.request_standby()
        else:
            super().keyPressEvent(event)

    def closeEvent(self, event: QCloseEvent) -> None:
        self._shutdown.set()
        super().closeEvent(event)


class QtDisplay(Display):
    """Display driver backed by a Qt window.

    Construct and ``show`` it on the GUI thread; ``present``,
    ``poll_events`` and ``set_standby`` may then be called from the engine
    thread, frames cross over through queued signals.
    """

    def __init__(
        self,
        size: tuple[int, int] | None = None,
        fullscreen: bool = True,
        control: AmbientControl | None = None,
    ):
        self._shutdown = threading.Event()
        self.widget = FrameWidget(self._shutdown, control)
        self.fullscreen = fullscreen
        if size is None:
            screen = QApplication.primaryScreen()
            geometry = screen.geometry()
            ratio = screen.devicePixelRatio()
            size = (round(geometry.width() * ratio), round(geometry.height() * ratio))
        self._size = size
        logger.info(f"Display size {size[0]}x{size[1]}")

    def show(self) -> None:
        if self.fullscreen:
            self.widget.showFullScreen()
        else:
            self.widget.resize(*self._size)
            self.widget.show()

    def size(self) -> tuple[int, int]:
        return self._size

    def present(self, frame: Frame) -> None:
        self.widget.frame_ready.emit(pil_to_qimage(frame.image))

    def poll_events(self) -> ShutdownRequested | None:
        if self._shutdown.is_set():
            return ShutdownRequested()
        return None

    def set_standby(self, enabled: bool) -> None:
        self.widget.standby_changed.emit(enabled)

    def close(self) -> None:
        """Close the window from any thread."""
        self.widget.engine_finished.emit()
