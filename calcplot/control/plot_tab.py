from PyQt5 import QtWidgets, QtCore

from .config import DEFAULTS, DIMENSIONS, PLOT_MODES, SURFACE_MODES, TOOLTIPS, UNIT_CONVENTIONS
from .widgets import mk_combo, row, set_combo


class PlotTab(QtWidgets.QWidget):
    """Expression input and the choices that decide how it is drawn.

    The expression is only pushed on submit (Return or the Plot button) so the
    control window can validate it first; every other widget emits a delta
    immediately.
    """

    changed = QtCore.pyqtSignal(dict)
    submitted = QtCore.pyqtSignal(str)

    def __init__(self):
        super().__init__()
        d = DEFAULTS["plot"]
        f = DEFAULTS["field"]
        fl = QtWidgets.QFormLayout(self)

        self.ed_expression = QtWidgets.QLineEdit(d["expression"])
        self.ed_expression.setPlaceholderText("sin(x)*cos(y), x^2, y*i - x*j ...")
        self.ed_expression.setClearButtonEnabled(True)
        self.btn_plot = QtWidgets.QPushButton("Plot")
        expr_row = QtWidgets.QWidget()
        h = QtWidgets.QHBoxLayout(expr_row); h.setContentsMargins(0, 0, 0, 0); h.setSpacing(6)
        h.addWidget(self.ed_expression, 1); h.addWidget(self.btn_plot)

        self.cb_dimension = mk_combo(DIMENSIONS, d["dimension"])
        self.cb_plotMode = mk_combo(PLOT_MODES, d["plotMode"])
        self.cb_surfaceMode = mk_combo(SURFACE_MODES, f["surfaceMode"])
        self.cb_convention = mk_combo(UNIT_CONVENTIONS, f["unitConvention"])
        self.chk_contour = QtWidgets.QCheckBox(); self.chk_contour.setChecked(d["showContour"])
        self.chk_colorbar = QtWidgets.QCheckBox(); self.chk_colorbar.setChecked(d["showColorbar"])

        row(fl, "Expression", expr_row, TOOLTIPS["plot.expression"])
        row(fl, "Dimension", self.cb_dimension, TOOLTIPS["plot.dimension"], lambda: self.cb_dimension.setCurrentIndex(self.cb_dimension.findData(d["dimension"])))
        row(fl, "Plot mode", self.cb_plotMode, TOOLTIPS["plot.plotMode"], lambda: self.cb_plotMode.setCurrentIndex(self.cb_plotMode.findData(d["plotMode"])))
        row(fl, "Surface mode", self.cb_surfaceMode, TOOLTIPS["field.surfaceMode"], lambda: self.cb_surfaceMode.setCurrentIndex(self.cb_surfaceMode.findData(f["surfaceMode"])))
        row(fl, "Unit vectors", self.cb_convention, TOOLTIPS["field.unitConvention"], lambda: self.cb_convention.setCurrentIndex(self.cb_convention.findData(f["unitConvention"])))
        row(fl, "Contours", self.chk_contour, TOOLTIPS["plot.showContour"], lambda: self.chk_contour.setChecked(d["showContour"]))
        row(fl, "Colorbar", self.chk_colorbar, TOOLTIPS["plot.showColorbar"], lambda: self.chk_colorbar.setChecked(d["showColorbar"]))

        self.ed_expression.returnPressed.connect(self._submit)
        self.btn_plot.clicked.connect(self._submit)
        for cb in [self.cb_dimension, self.cb_plotMode, self.cb_surfaceMode, self.cb_convention]:
            cb.currentIndexChanged.connect(self.emit_delta)
        for chk in [self.chk_contour, self.chk_colorbar]:
            chk.stateChanged.connect(self.emit_delta)

    def _submit(self, *a):
        self.submitted.emit(self.ed_expression.text())

    def emit_delta(self, *a):
        payload = self.collect()
        # unsubmitted text stays in the editor
        payload["plot"].pop("expression")
        self.changed.emit(payload)

    def collect(self):
        return {
            "plot": dict(
                expression=self.ed_expression.text().strip(),
                dimension=self.cb_dimension.currentData(),
                plotMode=self.cb_plotMode.currentData(),
                showContour=self.chk_contour.isChecked(),
                showColorbar=self.chk_colorbar.isChecked(),
            ),
            "field": dict(
                surfaceMode=self.cb_surfaceMode.currentData(),
                unitConvention=self.cb_convention.currentData(),
            ),
        }

    def set_defaults(self, cfg):
        cfg = cfg or {}
        plot = dict(DEFAULTS["plot"]); plot.update(cfg.get("plot", {}))
        field = dict(DEFAULTS["field"]); field.update(cfg.get("field", {}))
        with QtCore.QSignalBlocker(self.ed_expression):
            self.ed_expression.setText(str(plot["expression"]))
        set_combo(self.cb_dimension, plot["dimension"])
        set_combo(self.cb_plotMode, plot["plotMode"])
        set_combo(self.cb_surfaceMode, field["surfaceMode"])
        set_combo(self.cb_convention, field["unitConvention"])
        for chk, value in [(self.chk_contour, plot["showContour"]), (self.chk_colorbar, plot["showColorbar"])]:
            with QtCore.QSignalBlocker(chk):
                chk.setChecked(bool(value))
