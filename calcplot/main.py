# -*- coding: utf-8 -*-
import argparse
import logging
import sys
from typing import List, NoReturn, Optional


def _handle_qt_import_error(exc: ImportError) -> NoReturn:
    """Exit with a helpful message when the Qt bindings cannot be imported."""

    details = str(exc)
    message_lines = [
        "Unable to start calcplot: importing PyQt5 failed.",
        "Check that PyQt5 is installed and that the required OpenGL libraries are available.",
    ]
    if "libGL.so.1" in details:
        message_lines.append(
            "Hint: the system library libGL.so.1 is missing. Install the Mesa/OpenGL packages for your platform."
        )
    message_lines.append(f"Original error: {details}")
    raise SystemExit("\n".join(message_lines)) from exc


try:
    from PyQt5 import QtCore, QtWidgets, QtGui
    from PyQt5.QtCore import Qt
except ImportError as exc:  # pragma: no cover - environment dependent
    _handle_qt_import_error(exc)

from .control.control_window import ControlWindow
from .logging_config import setup_logging
from .view import PlotViewWidget

logger = logging.getLogger(__name__)


class ViewWindow(QtWidgets.QMainWindow):
    def __init__(self, force_backend: Optional[str] = None):
        super().__init__(None)
        self.setWindowTitle("calcplot")
        self.view = PlotViewWidget(self, force_backend=force_backend)
        self.setCentralWidget(self.view)
        QtWidgets.QShortcut(Qt.Key_Escape, self, activated=self.close)

    def set_transparent(self, enabled: bool):
        enabled = bool(enabled)
        self.setAttribute(Qt.WA_NoSystemBackground, enabled)
        self.setAttribute(Qt.WA_TranslucentBackground, enabled)
        self.view.set_transparent(enabled)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="calcplot", description="Interactive 2D/3D function plotter.")
    parser.add_argument("expression", nargs="?", help="expression to plot on start-up")
    parser.add_argument("--backend", choices=("auto", "opengl", "raster"), default="auto")
    parser.add_argument("--2d", dest="flat", action="store_true", help="start in the 2D view")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--log-file", default=None, help="also write the log to this file")
    return parser.parse_known_args(argv)[0]


def main(argv: Optional[List[str]] = None) -> int:
    """Start the application and return its exit code."""

    args = _parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(logging.DEBUG if args.debug else logging.INFO, args.log_file)

    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_EnableHighDpiScaling, True)
    QtWidgets.QApplication.setAttribute(QtCore.Qt.AA_UseHighDpiPixmaps, True)
    app = QtWidgets.QApplication(sys.argv[:1])

    view_win = ViewWindow(force_backend=args.backend)
    control_win = ControlWindow(app, view_win)
    logger.info("View backend: %s", getattr(view_win.view, "backend_name", "unknown"))

    startup = {}
    if args.expression:
        startup["plot"] = {"expression": args.expression}
    if args.flat:
        startup.setdefault("plot", {})["dimension"] = "2d"
    if startup:
        control_win.tab_plot.set_defaults(startup)
        control_win.on_delta(startup)

    screen = QtGui.QGuiApplication.primaryScreen()
    if screen is not None:
        geo = screen.availableGeometry()
        view_w = max(320, geo.width() * 2 // 3)
        view_win.setGeometry(geo.left(), geo.top(), view_w, geo.height())
        control_win.setGeometry(geo.left() + view_w, geo.top(), geo.width() - view_w, geo.height())

    view_win.show()
    control_win.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
