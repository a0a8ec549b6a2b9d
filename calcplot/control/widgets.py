from PyQt5 import QtWidgets, QtCore


def mk_info(text: str) -> QtWidgets.QToolButton:
    b = QtWidgets.QToolButton(); b.setText("i"); b.setCursor(QtCore.Qt.PointingHandCursor)
    b.setToolTipDuration(0); b.setToolTip(text); b.setFixedSize(20, 20)
    b.setStyleSheet("QToolButton{border:1px solid #7aa7c7;border-radius:10px;font-weight:bold;padding:0;color:#2b6ea8;background:#e6f2fb;}QToolButton:hover{background:#d8ecfa;}")
    return b


def mk_reset(cb) -> QtWidgets.QToolButton:
    b = QtWidgets.QToolButton(); b.setText("↺"); b.setCursor(QtCore.Qt.PointingHandCursor)
    b.setToolTip("Reset"); b.setFixedSize(22, 22)
    b.setStyleSheet("QToolButton{border:1px solid #9aa5b1;border-radius:11px;padding:0;background:#f2f4f7;color:#2b2b2b;font-weight:bold;}QToolButton:hover{background:#e9edf2;}")
    b.clicked.connect(lambda checked=False, _cb=cb: _cb())
    return b


def row(form: QtWidgets.QFormLayout, label: str, widget: QtWidgets.QWidget, tip: str, reset_cb=None):
    h = QtWidgets.QHBoxLayout(); h.setContentsMargins(0, 0, 0, 0); h.setSpacing(6)
    h.addWidget(widget, 1)
    if reset_cb: h.addWidget(mk_reset(reset_cb), 0)
    h.addWidget(mk_info(tip), 0)
    w = QtWidgets.QWidget(); w.setLayout(h)
    lbl = QtWidgets.QLabel(label)
    lbl.setObjectName("FormLabel")
    form.addRow(lbl, w)
    w._form_label = lbl  # type: ignore[attr-defined]
    return w


def mk_combo(values, current: str) -> QtWidgets.QComboBox:
    cb = QtWidgets.QComboBox()
    for value in values:
        cb.addItem(value, value)
    index = cb.findData(current)
    cb.setCurrentIndex(max(0, index))
    return cb


def set_combo(cb: QtWidgets.QComboBox, value: str) -> None:
    index = cb.findData(value)
    if index != -1:
        with QtCore.QSignalBlocker(cb):
            cb.setCurrentIndex(index)


def mk_double(minimum: float, maximum: float, value: float, step: float = 0.1, decimals: int = 2) -> QtWidgets.QDoubleSpinBox:
    sp = QtWidgets.QDoubleSpinBox()
    sp.setRange(minimum, maximum); sp.setSingleStep(step); sp.setDecimals(decimals); sp.setValue(value)
    return sp
