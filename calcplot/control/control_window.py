import copy
import logging

from PyQt5 import QtWidgets, QtCore, QtGui

from ..expression import InvalidExpressionError
from ..scene import PlotRequest
from .config import DEFAULTS, merge_state
from .plot_tab import PlotTab
from .view_tab import ViewTab

logger = logging.getLogger(__name__)

WINDOW_TITLE = "calcplot - Control"


class ControlWindow(QtWidgets.QMainWindow):
    """Tabs editing the plot state; every change is pushed to the view window."""

    def __init__(self, app: QtWidgets.QApplication, view_win):
        super().__init__(None)
        self.setWindowTitle(WINDOW_TITLE)
        self.view_win = view_win
        self.state = copy.deepcopy(DEFAULTS)

        self._apply_theme()

        toolbar = QtWidgets.QToolBar("Main")
        toolbar.setMovable(False)
        toolbar.setFloatable(False)
        toolbar.setIconSize(QtCore.QSize(18, 18))
        self.addToolBar(QtCore.Qt.TopToolBarArea, toolbar)

        style = self.style()
        act_quit = QtWidgets.QAction(style.standardIcon(QtWidgets.QStyle.SP_TitleBarCloseButton), "Quit", self)
        act_quit.setShortcut(QtGui.QKeySequence("Ctrl+Q"))
        act_quit.setShortcutContext(QtCore.Qt.ApplicationShortcut)
        act_quit.triggered.connect(app.quit)
        self.addAction(act_quit)
        toolbar.addAction(act_quit)

        act_reset = QtWidgets.QAction(style.standardIcon(QtWidgets.QStyle.SP_BrowserReload), "Reset view", self)
        act_reset.setShortcut(QtGui.QKeySequence("Ctrl+R"))
        act_reset.setShortcutContext(QtCore.Qt.ApplicationShortcut)
        act_reset.triggered.connect(self.reset_view)
        self.addAction(act_reset)
        toolbar.addAction(act_reset)

        status = QtWidgets.QStatusBar()
        status.setObjectName("StatusBar")
        status.setSizeGripEnabled(False)
        self.setStatusBar(status)

        self.tabs = QtWidgets.QTabWidget()
        self.tabs.setObjectName("ControlTabs")
        self.tabs.setDocumentMode(True)

        self.tab_plot = PlotTab()
        self.tab_view = ViewTab()
        self.tabs.addTab(self._wrap_scrollable_tab(self.tab_plot), "Plot")
        self.tabs.addTab(self._wrap_scrollable_tab(self.tab_view), "View")
        self.setCentralWidget(self.tabs)

        self.tab_plot.changed.connect(self.on_delta)
        self.tab_plot.submitted.connect(self.on_submit)
        self.tab_view.changed.connect(self.on_delta)
        self.tab_view.reset_requested.connect(self.reset_view)
        self.tabs.currentChanged.connect(self._sync_view_tab)

        self.push_params()

    # ------------------------------------------------------------------ state
    def on_delta(self, delta: dict):
        merge_state(self.state, delta)
        self.push_params(delta)

    def on_submit(self, expression: str):
        field = self.state["field"]
        try:
            request = PlotRequest.from_expression(expression, convention=field.get("unitConvention"), strict=True)
        except InvalidExpressionError as exc:
            detail = f": {exc.issues[0]}" if exc.issues else ""
            self.statusBar().showMessage(f"{exc}{detail}", 5000)
            return
        message = f"Plotting {request.field_type.value} '{request.expression}'"
        if request.issues:
            message = f"{message} (read leniently: {request.issues[0]})"
        self.statusBar().showMessage(message, 5000 if request.issues else 3000)
        self.on_delta({"plot": {"expression": request.expression}})

    def push_params(self, delta=None):
        view = getattr(self.view_win, "view", None)
        if view is None:
            return
        view.set_params(delta if delta is not None else self.state)
        error = getattr(view, "error", None)
        if error:
            self.statusBar().showMessage(error, 5000)

    def reset_view(self):
        view = getattr(self.view_win, "view", None)
        if view is None:
            return
        view.reset_view()
        self._sync_view_tab()
        self.statusBar().showMessage("View reset", 2000)

    def _sync_view_tab(self, *a):
        view = getattr(self.view_win, "view", None)
        if view is None:
            return
        current = view.engine.view_config()
        merge_state(self.state, current)
        self.tab_view.set_defaults(self.state)

    # ------------------------------------------------------------------ look
    def _wrap_scrollable_tab(self, widget: QtWidgets.QWidget) -> QtWidgets.QScrollArea:
        scroll = QtWidgets.QScrollArea()
        scroll.setWidget(widget)
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(QtCore.Qt.ScrollBarAlwaysOff)
        scroll.setVerticalScrollBarPolicy(QtCore.Qt.ScrollBarAsNeeded)
        scroll.setFrameShape(QtWidgets.QFrame.NoFrame)
        return scroll

    def _apply_theme(self):
        accent = "#536dfe"
        accent_rgb = "83, 109, 254"
        parts = [
            "QMainWindow {",
            "    background-color: #15151f;",
            "    color: #f5f6ff;",
            "}",
            "QToolBar {",
            "    background: #1d1d29;",
            "    border: none;",
            "    border-bottom: 1px solid rgba(255, 255, 255, 0.08);",
            "    padding: 8px 8px;",
            "    spacing: 6px;",
            "}",
            "QToolButton {",
            "    color: #f5f6ff;",
            "    border-radius: 8px;",
            "    padding: 6px 12px;",
            "}",
            "QToolButton:hover {",
            f"    background: rgba({accent_rgb}, 0.14);",
            "}",
            "QLabel, QCheckBox, QGroupBox {",
            "    color: #f5f6ff;",
            "}",
            "QComboBox {",
            "    background: #ffffff;",
            "    border: 1px solid rgba(0, 0, 0, 0.15);",
            "    border-radius: 8px;",
            "    padding: 4px 10px;",
            "    color: #15151f;",
            "    min-height: 28px;",
            "}",
            "QLineEdit, QDoubleSpinBox {",
            "    background: #1f1f2d;",
            "    border: 1px solid rgba(255, 255, 255, 0.08);",
            "    border-radius: 8px;",
            "    padding: 4px 8px;",
            "    color: #f5f6ff;",
            "}",
            "QLineEdit:hover, QDoubleSpinBox:hover {",
            f"    border: 1px solid {accent};",
            "}",
            "QPushButton {",
            f"    background: {accent};",
            "    color: #ffffff;",
            "    border-radius: 8px;",
            "    padding: 6px 14px;",
            "}",
            "QStatusBar {",
            "    background: #1d1d29;",
            "    border-top: 1px solid rgba(255, 255, 255, 0.08);",
            "    color: #c8c9d1;",
            "}",
            "QStatusBar::item { border: none; }",
            "QScrollArea, QScrollArea > QWidget > QWidget { background: #15151f; }",
        ]
        self.setStyleSheet("\n".join(parts))
