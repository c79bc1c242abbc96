"""Dialog windows for radio selection, scanner settings and about/help.

Defines modal dialogs used by the GUI. This module should not perform radio
I/O beyond the Pluto connection probe.
"""

from __future__ import annotations

from typing import Optional

from pyqtgraph.Qt import QtCore, QtWidgets

from sdr_panadapter import __version__
from sdr_panadapter.radio.factory import RADIO_KINDS
from sdr_panadapter.radio.pluto import probe_pluto
from sdr_panadapter.scanner import INTERVAL_MAX_MS, INTERVAL_MIN_MS, ScannerConfig


def _mhz_spin(value_hz: float, maximum_mhz: float = 6000.0) -> QtWidgets.QDoubleSpinBox:
    spin = QtWidgets.QDoubleSpinBox()
    spin.setDecimals(3)
    spin.setRange(0.0, maximum_mhz)
    spin.setSuffix(" MHz")
    spin.setValue(value_hz / 1e6)
    spin.setAlignment(QtCore.Qt.AlignRight)
    return spin


class RadioDialog(QtWidgets.QDialog):
    def __init__(
        self,
        parent: QtWidgets.QWidget,
        radio: str,
        uri: str,
        device_index: int,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Radio Settings")

        layout = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()

        self.radio_cb = QtWidgets.QComboBox()
        self.radio_cb.addItems(list(RADIO_KINDS))
        self.radio_cb.setCurrentText(radio)
        form.addRow("Radio", self.radio_cb)

        self.uri_edit = QtWidgets.QLineEdit(uri)
        self.uri_edit.setPlaceholderText("ip:192.168.2.1")
        form.addRow("Pluto URI", self.uri_edit)

        self.index_spin = QtWidgets.QSpinBox()
        self.index_spin.setRange(0, 16)
        self.index_spin.setValue(int(device_index))
        form.addRow("RTL-SDR index", self.index_spin)
        layout.addLayout(form)

        self.test_btn = QtWidgets.QPushButton("Test Pluto Connection")
        layout.addWidget(self.test_btn)

        buttons = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.Save | QtWidgets.QDialogButtonBox.Cancel
        )
        layout.addWidget(buttons)

        self.radio_cb.currentTextChanged.connect(self._on_radio_changed)
        self.test_btn.clicked.connect(self._test_connection)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        self._on_radio_changed(self.radio_cb.currentText())

    @property
    def radio(self) -> str:
        return self.radio_cb.currentText()

    @property
    def uri(self) -> str:
        return self.uri_edit.text().strip()

    @property
    def device_index(self) -> int:
        return int(self.index_spin.value())

    def _on_radio_changed(self, radio: str) -> None:
        self.uri_edit.setEnabled(radio == "pluto")
        self.test_btn.setEnabled(radio == "pluto")
        self.index_spin.setEnabled(radio == "rtlsdr")

    def _test_connection(self) -> None:
        ok, err = probe_pluto(self.uri)
        if ok:
            QtWidgets.QMessageBox.information(self, "Connection", "Pluto SDR connected.")
        else:
            QtWidgets.QMessageBox.warning(
                self,
                "Connection",
                f"Failed to connect: {err or 'unknown error'}",
            )


class ScannerDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, config: ScannerConfig) -> None:
        super().__init__(parent)
        self.setWindowTitle("Scanner")
        self._config = config

        layout = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()

        self.enabled_cb = QtWidgets.QCheckBox("Scan while receiving")
        self.enabled_cb.setChecked(config.enabled)
        self.start_spin = _mhz_spin(config.start_hz)
        self.end_spin = _mhz_spin(config.end_hz)
        self.step_spin = QtWidgets.QDoubleSpinBox()
        self.step_spin.setDecimals(1)
        self.step_spin.setRange(0.1, 10_000.0)
        self.step_spin.setSuffix(" kHz")
        self.step_spin.setValue(config.step_hz / 1e3)
        self.interval_spin = QtWidgets.QSpinBox()
        self.interval_spin.setRange(INTERVAL_MIN_MS, INTERVAL_MAX_MS)
        self.interval_spin.setSingleStep(100)
        self.interval_spin.setSuffix(" ms")
        self.interval_spin.setValue(config.interval_ms)

        form.addRow(self.enabled_cb)
        form.addRow("Start", self.start_spin)
        form.addRow("End", self.end_spin)
        form.addRow("Step", self.step_spin)
        form.addRow("Dwell", self.interval_spin)
        layout.addLayout(form)

        buttons = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.Save | QtWidgets.QDialogButtonBox.Cancel
        )
        layout.addWidget(buttons)
        buttons.accepted.connect(self._on_save)
        buttons.rejected.connect(self.reject)

    def updates(self) -> dict:
        return {
            "enabled": self.enabled_cb.isChecked(),
            "start_hz": self.start_spin.value() * 1e6,
            "end_hz": self.end_spin.value() * 1e6,
            "step_hz": self.step_spin.value() * 1e3,
            "interval_ms": int(self.interval_spin.value()),
        }

    def _on_save(self) -> None:
        values = self.updates()
        if values["end_hz"] <= values["start_hz"]:
            QtWidgets.QMessageBox.warning(self, "Scanner", "End must be above start.")
            return
        self.accept()


class AboutDialog(QtWidgets.QDialog):
    def __init__(self, parent: Optional[QtWidgets.QWidget]) -> None:
        super().__init__(parent)
        self.setWindowTitle("About")
        layout = QtWidgets.QVBoxLayout(self)

        version_label = QtWidgets.QLabel(f"SDR Panadapter v{__version__}")
        version_label.setStyleSheet("font-weight: 600;")
        help_label = QtWidgets.QLabel(
            "Click to tune, drag to pan, double-click to center.\n"
            "Wheel tunes in 10 kHz steps, Shift+wheel in 100 Hz steps,\n"
            "Ctrl+wheel zooms about the pointer."
        )

        layout.addWidget(version_label)
        layout.addWidget(help_label)

        buttons = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Close)
        buttons.rejected.connect(self.reject)
        buttons.accepted.connect(self.accept)
        layout.addWidget(buttons)
