from PyQt5 import QtWidgets, QtCore

from .config import DEFAULTS, TOOLTIPS, ZOOM_AXES
from .widgets import mk_combo, mk_double, row, set_combo


class ViewTab(QtWidgets.QWidget):
    changed = QtCore.pyqtSignal(dict)
    reset_requested = QtCore.pyqtSignal()

    def __init__(self):
        super().__init__()
        d3 = DEFAULTS["view3d"]
        d2 = DEFAULTS["view2d"]
        outer = QtWidgets.QVBoxLayout(self)

        box3d = QtWidgets.QGroupBox("3D view")
        fl = QtWidgets.QFormLayout(box3d)
        self.sp_rotationX = mk_double(-1.47, 1.47, d3["rotationX"], 0.05)
        self.sp_rotationZ = mk_double(-6.29, 6.29, d3["rotationZ"], 0.05)
        self.sp_rangeX = mk_double(d3["minRange"], d3["maxRange"], d3["rangeX"], 0.5)
        self.sp_rangeY = mk_double(d3["minRange"], d3["maxRange"], d3["rangeY"], 0.5)
        self.sp_rangeZ = mk_double(0.01, 1000.0, d3["rangeZ"], 0.5)
        self.sp_focal = mk_double(100.0, 5000.0, d3["focalLength"], 50.0, 0)
        self.cb_zoom3d = mk_combo(ZOOM_AXES, d3["zoomAxis"])

        row(fl, "Elevation (rad)", self.sp_rotationX, TOOLTIPS["view3d.rotationX"], lambda: self.sp_rotationX.setValue(d3["rotationX"]))
        row(fl, "Azimuth (rad)", self.sp_rotationZ, TOOLTIPS["view3d.rotationZ"], lambda: self.sp_rotationZ.setValue(d3["rotationZ"]))
        row(fl, "Range x", self.sp_rangeX, TOOLTIPS["view3d.rangeX"], lambda: self.sp_rangeX.setValue(d3["rangeX"]))
        row(fl, "Range y", self.sp_rangeY, TOOLTIPS["view3d.rangeY"], lambda: self.sp_rangeY.setValue(d3["rangeY"]))
        row(fl, "Range z", self.sp_rangeZ, TOOLTIPS["view3d.rangeZ"], lambda: self.sp_rangeZ.setValue(d3["rangeZ"]))
        row(fl, "Focal length", self.sp_focal, TOOLTIPS["view3d.focalLength"], lambda: self.sp_focal.setValue(d3["focalLength"]))
        row(fl, "Wheel zoom axis", self.cb_zoom3d, TOOLTIPS["view3d.zoomAxis"], lambda: self.cb_zoom3d.setCurrentIndex(self.cb_zoom3d.findData(d3["zoomAxis"])))
        outer.addWidget(box3d)

        box2d = QtWidgets.QGroupBox("2D view")
        fl2 = QtWidgets.QFormLayout(box2d)
        self.sp_xMin = mk_double(-1e6, 1e6, d2["xMin"], 0.5)
        self.sp_xMax = mk_double(-1e6, 1e6, d2["xMax"], 0.5)
        self.sp_yMin = mk_double(-1e6, 1e6, d2["yMin"], 0.5)
        self.sp_yMax = mk_double(-1e6, 1e6, d2["yMax"], 0.5)
        self.cb_zoom2d = mk_combo(ZOOM_AXES[:3], d2["zoomAxis"])
        row(fl2, "x min", self.sp_xMin, "Left edge of the 2D window.", lambda: self.sp_xMin.setValue(d2["xMin"]))
        row(fl2, "x max", self.sp_xMax, "Right edge of the 2D window.", lambda: self.sp_xMax.setValue(d2["xMax"]))
        row(fl2, "y min", self.sp_yMin, "Bottom edge of the 2D window.", lambda: self.sp_yMin.setValue(d2["yMin"]))
        row(fl2, "y max", self.sp_yMax, "Top edge of the 2D window.", lambda: self.sp_yMax.setValue(d2["yMax"]))
        row(fl2, "Wheel zoom axis", self.cb_zoom2d, TOOLTIPS["view2d.zoomAxis"], lambda: self.cb_zoom2d.setCurrentIndex(self.cb_zoom2d.findData(d2["zoomAxis"])))
        outer.addWidget(box2d)

        self.chk_transparent = QtWidgets.QCheckBox("Transparent background")
        self.chk_transparent.setChecked(DEFAULTS["system"]["transparent"])
        self.chk_transparent.setToolTip(TOOLTIPS["system.transparent"])
        outer.addWidget(self.chk_transparent)

        self.btn_reset = QtWidgets.QPushButton("Reset view")
        outer.addWidget(self.btn_reset)
        outer.addStretch(1)

        self._spins3d = [self.sp_rotationX, self.sp_rotationZ, self.sp_rangeX, self.sp_rangeY, self.sp_rangeZ, self.sp_focal]
        self._spins2d = [self.sp_xMin, self.sp_xMax, self.sp_yMin, self.sp_yMax]
        for w in self._spins3d + self._spins2d:
            w.valueChanged.connect(self.emit_delta)
        for cb in [self.cb_zoom3d, self.cb_zoom2d]:
            cb.currentIndexChanged.connect(self.emit_delta)
        self.chk_transparent.stateChanged.connect(self.emit_delta)
        self.btn_reset.clicked.connect(self.reset_requested.emit)

    def emit_delta(self, *a):
        self.changed.emit(self.collect())

    def collect(self):
        x_min, x_max = sorted((self.sp_xMin.value(), self.sp_xMax.value()))
        y_min, y_max = sorted((self.sp_yMin.value(), self.sp_yMax.value()))
        if x_max == x_min:
            x_max = x_min + 1.0
        if y_max == y_min:
            y_max = y_min + 1.0
        return {
            "view3d": dict(
                rotationX=self.sp_rotationX.value(),
                rotationZ=self.sp_rotationZ.value(),
                rangeX=self.sp_rangeX.value(),
                rangeY=self.sp_rangeY.value(),
                rangeZ=self.sp_rangeZ.value(),
                focalLength=self.sp_focal.value(),
                zoomAxis=self.cb_zoom3d.currentData(),
            ),
            "view2d": dict(xMin=x_min, xMax=x_max, yMin=y_min, yMax=y_max, zoomAxis=self.cb_zoom2d.currentData()),
            "system": dict(transparent=self.chk_transparent.isChecked()),
        }

    def set_defaults(self, cfg):
        """Refresh the widgets from a view state without emitting deltas."""

        cfg = cfg or {}
        v3 = dict(DEFAULTS["view3d"]); v3.update(cfg.get("view3d", {}))
        v2 = dict(DEFAULTS["view2d"]); v2.update(cfg.get("view2d", {}))
        mappings = [
            (self.sp_rotationX, v3["rotationX"]),
            (self.sp_rotationZ, v3["rotationZ"]),
            (self.sp_rangeX, v3["rangeX"]),
            (self.sp_rangeY, v3["rangeY"]),
            (self.sp_rangeZ, v3["rangeZ"]),
            (self.sp_focal, v3["focalLength"]),
            (self.sp_xMin, v2["xMin"]),
            (self.sp_xMax, v2["xMax"]),
            (self.sp_yMin, v2["yMin"]),
            (self.sp_yMax, v2["yMax"]),
        ]
        for widget, value in mappings:
            with QtCore.QSignalBlocker(widget):
                widget.setValue(float(value))
        set_combo(self.cb_zoom3d, v3["zoomAxis"])
        set_combo(self.cb_zoom2d, v2["zoomAxis"])
