# -*- coding: utf-8 -*-
import argparse
import io
import os
import sys
from pathlib import Path
from typing import Callable, List, NoReturn, Optional, Sequence


def _handle_qt_import_error(exc: ImportError) -> NoReturn:
    """Exit with a helpful message when the Qt bindings cannot be imported."""

    details = str(exc)
    message_lines = [
        "Unable to start Lily Galaxy: importing PyQt5 failed.",
        "Check that PyQt5 is installed and that the OpenGL system libraries are available.",
    ]
    if "libGL.so.1" in details:
        message_lines.append("Hint: the system library libGL.so.1 is missing. Install the Mesa/OpenGL packages.")
    message_lines.append(f"Original error: {details}")
    raise SystemExit("\n".join(message_lines)) from exc


try:
    from PyQt5 import QtCore, QtGui, QtWidgets
    from PyQt5.QtCore import Qt
except ImportError as exc:  # pragma: no cover - environment dependent
    _handle_qt_import_error(exc)

from .config import merge_config
from .view import mount_flower_scene, mount_text_scene

ROOT = Path(__file__).resolve().parents[1]


class _DebugSilencer(io.TextIOBase):
    """Stream wrapper filtering the verbose debug lines."""

    def __init__(self, stream: io.TextIOBase, marker: str) -> None:
        super().__init__()
        self._stream = stream
        self._marker = marker
        self._buffer: str = ""

    def write(self, text: str) -> int:  # type: ignore[override]
        self._buffer += text
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            self._emit(line + "\n")
        return len(text)

    def flush(self) -> None:  # type: ignore[override]
        if self._buffer:
            self._emit(self._buffer)
            self._buffer = ""
        self._stream.flush()

    def _emit(self, chunk: str) -> None:
        if self._marker not in chunk:
            self._stream.write(chunk)

    def __getattr__(self, name):
        return getattr(self._stream, name)


def _install_debug_silencer(marker: str = "[Lily][DEBUG]") -> None:
    if marker and not isinstance(sys.stdout, _DebugSilencer):
        sys.stdout = _DebugSilencer(sys.stdout, marker)
    if marker and not isinstance(sys.stderr, _DebugSilencer):
        sys.stderr = _DebugSilencer(sys.stderr, marker)


def _install_excepthook() -> None:
    """Write unhandled exceptions from the GUI loop to ``run_exception.txt``."""

    def _write_unhandled(exc_type, exc_value, exc_tb):
        try:
            import traceback as _tb

            with (ROOT / "run_exception.txt").open("w", encoding="utf-8") as f:
                _tb.print_exception(exc_type, exc_value, exc_tb, file=f)
        except OSError:
            pass
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = _write_unhandled


class GalaxyWindow(QtWidgets.QMainWindow):
    """Two stacked full-height sections: particle text above, lily field below.

    The first click anywhere scrolls smoothly down to the flowers.
    """

    def __init__(self, scenes: Sequence[str], config: Optional[dict] = None, backend: Optional[str] = None):
        super().__init__(None)
        self.setWindowTitle("Lily Galaxy")
        self._config = merge_config(config)
        self._backend = backend
        self._clicked = False
        self._teardowns: List[Callable[[], None]] = []
        self._views: List[QtWidgets.QWidget] = []
        self._sections: List[QtWidgets.QWidget] = []

        self.scroll = QtWidgets.QScrollArea(self)
        self.scroll.setWidgetResizable(True)
        self.scroll.setFrameShape(QtWidgets.QFrame.NoFrame)
        self.scroll.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.scroll.setStyleSheet("background: black;")
        content = QtWidgets.QWidget()
        lay = QtWidgets.QVBoxLayout(content)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(0)
        self.scroll.setWidget(content)
        self.setCentralWidget(self.scroll)

        screen = QtGui.QGuiApplication.primaryScreen()
        if screen is not None:
            geometry = screen.availableGeometry()
            self.resize(int(geometry.width() * 0.8), int(geometry.height() * 0.8))

        for name in scenes:
            section = QtWidgets.QWidget(content)
            section.setMinimumHeight(max(200, self.height()))
            lay.addWidget(section)
            self._sections.append(section)
            mount = mount_text_scene if name == "text" else mount_flower_scene
            teardown = mount(section, config=self._config, force_backend=self._backend)
            view = getattr(teardown, "view", None)
            if view is not None:
                view.installEventFilter(self)
                self._views.append(view)
            self._teardowns.append(teardown)

        self._scroll_anim = QtCore.QPropertyAnimation(self.scroll.verticalScrollBar(), b"value", self)
        self._scroll_anim.setDuration(1200)
        self._scroll_anim.setEasingCurve(QtCore.QEasingCurve.InOutCubic)
        QtWidgets.QShortcut(Qt.Key_Escape, self, activated=self.close)

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        height = max(200, self.scroll.viewport().height())
        for section in self._sections:
            section.setMinimumHeight(height)
            section.setMaximumHeight(height)

    def eventFilter(self, watched: QtCore.QObject, event: QtCore.QEvent) -> bool:
        if event.type() == QtCore.QEvent.MouseButtonPress:
            self.scroll_to_flowers()
        return super().eventFilter(watched, event)

    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        self.scroll_to_flowers()
        super().mousePressEvent(event)

    def scroll_to_flowers(self) -> None:
        if self._clicked:
            return
        self._clicked = True
        bar = self.scroll.verticalScrollBar()
        self._scroll_anim.stop()
        self._scroll_anim.setStartValue(bar.value())
        self._scroll_anim.setEndValue(bar.maximum())
        self._scroll_anim.start()

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # type: ignore[override]
        views, self._views = self._views, []
        for view in views:
            view.removeEventFilter(self)
        teardowns, self._teardowns = self._teardowns, []
        for teardown in teardowns:
            teardown()
        super().closeEvent(event)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="lilygalaxy", description="Animated particle lilies.")
    parser.add_argument("--scene", choices=("galaxy", "flowers", "text"), default="galaxy")
    parser.add_argument("--backend", choices=("auto", "opengl", "raster"), default="auto")
    parser.add_argument("--debug", action="store_true", help="keep [Lily][DEBUG] lines visible")
    parser.add_argument("--quit-after", type=int, default=0, metavar="MS", help="close the window after MS milliseconds")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the application and return the exit code."""

    args = _parse_args(argv)
    debug = args.debug or os.environ.get("LILY_DEBUG", "").strip().lower() in {"1", "true", "yes"}
    if not debug:
        _install_debug_silencer()
    _install_excepthook()

    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_EnableHighDpiScaling, True)
    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_UseHighDpiPixmaps, True)
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication(sys.argv[:1])

    scenes = {"galaxy": ("text", "flowers"), "flowers": ("flowers",), "text": ("text",)}[args.scene]
    window = GalaxyWindow(scenes, backend=args.backend)
    window.show()
    if args.quit_after > 0:
        QtCore.QTimer.singleShot(args.quit_after, window.close)
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
