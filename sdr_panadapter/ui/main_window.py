"""Qt main window for the SDR panadapter.

Builds the toolbar, the three stacked canvases and the status bar, and wires
them to an Engine. This module must not implement rendering maths or radio
I/O beyond delegating to the engine.
"""

from typing import Optional

import pyqtgraph as pg
from pyqtgraph.Qt import QtCore, QtWidgets

from sdr_panadapter.config import PanadapterConfig
from sdr_panadapter.engine import Engine
from sdr_panadapter.modes import MODES
from sdr_panadapter.protocol import EngineErrorFrame, EngineFrame, EngineStatusFrame
from sdr_panadapter.render_loop import RenderResult, View
from sdr_panadapter.ui.dialogs import AboutDialog, RadioDialog, ScannerDialog
from sdr_panadapter.ui.widgets import QtScheduler, SpectrumCanvas, WaterfallCanvas
from sdr_panadapter.view.units import format_frequency, format_span
from sdr_panadapter.viewport import DB_CLAMP_MAX, DB_CLAMP_MIN


# Zoom slider works in tenths so 1.0x..100.0x maps to integer ticks.
ZOOM_SLIDER_SCALE = 10


class PanadapterWindow(QtWidgets.QMainWindow):
    # Engine frames can come from a radio reader thread; hop to the GUI thread.
    frame_received = QtCore.Signal(object)

    def __init__(self, cfg: PanadapterConfig, engine: Optional[Engine] = None):
        super().__init__()
        self.cfg = cfg
        self.setWindowTitle("SDR Panadapter")
        self.resize(1200, 800)

        pg.setConfigOptions(antialias=False)

        self.engine = engine or Engine(cfg, QtScheduler(self))

        self._build_ui()
        self._wire_events()
        self._sync_controls()

        self.engine.subscribe(self._forward_frame)
        self.engine.subscribe_render(self.on_render)
        self._update_connection_ui(self.engine.status())

    def closeEvent(self, event):
        self.engine.unsubscribe(self._forward_frame)
        self.engine.unsubscribe_render(self.on_render)
        self.engine.disconnect()
        super().closeEvent(event)

    def _build_ui(self):
        self._build_menu()
        cw = QtWidgets.QWidget()
        self.setCentralWidget(cw)
        layout = QtWidgets.QVBoxLayout(cw)
        layout.setSpacing(6)

        tool_layout = QtWidgets.QHBoxLayout()
        self.connect_btn = QtWidgets.QPushButton("Connect")
        self.play_btn = QtWidgets.QPushButton("Start")
        self.rate_btn = QtWidgets.QPushButton()
        self.rate_btn.setToolTip("Cycle sample rate")
        tool_layout.addWidget(self.connect_btn)
        tool_layout.addWidget(self.play_btn)
        tool_layout.addWidget(self.rate_btn)

        tool_layout.addWidget(QtWidgets.QLabel("Freq (MHz)"))
        self.freq_edit = QtWidgets.QLineEdit()
        self.freq_edit.setFixedWidth(100)
        self.freq_edit.setAlignment(QtCore.Qt.AlignRight)
        tool_layout.addWidget(self.freq_edit)
        self.set_btn = QtWidgets.QPushButton("Set")
        tool_layout.addWidget(self.set_btn)

        step_khz = self.cfg.button_step_hz / 1e3
        self.step_down_btn = QtWidgets.QToolButton()
        self.step_down_btn.setText(f"-{step_khz:g}k")
        self.step_down_btn.setAutoRepeat(True)
        self.step_down_btn.setAutoRepeatDelay(300)
        self.step_down_btn.setAutoRepeatInterval(120)
        self.step_up_btn = QtWidgets.QToolButton()
        self.step_up_btn.setText(f"+{step_khz:g}k")
        self.step_up_btn.setAutoRepeat(True)
        self.step_up_btn.setAutoRepeatDelay(300)
        self.step_up_btn.setAutoRepeatInterval(120)
        self.reset_btn = QtWidgets.QPushButton(f"{self.cfg.home_frequency_hz / 1e6:.1f} MHz")
        self.reset_btn.setToolTip("Reset frequency")
        tool_layout.addWidget(self.step_down_btn)
        tool_layout.addWidget(self.step_up_btn)
        tool_layout.addWidget(self.reset_btn)

        self.scan_btn = QtWidgets.QPushButton("Scan")
        self.scan_btn.setCheckable(True)
        tool_layout.addWidget(self.scan_btn)

        self.preset_cb = QtWidgets.QComboBox()
        self.preset_cb.addItem("Presets")
        for preset in self.engine.presets():
            self.preset_cb.addItem(preset.label)
        tool_layout.addWidget(self.preset_cb)

        self.bookmark_cb = QtWidgets.QComboBox()
        self.bookmark_cb.addItem("Bookmarks")
        for bookmark in self.engine.bookmarks():
            self.bookmark_cb.addItem(bookmark.name)
        tool_layout.addWidget(self.bookmark_cb)

        self.mode_cb = QtWidgets.QComboBox()
        self.mode_cb.addItems(list(MODES))
        tool_layout.addWidget(self.mode_cb)
        tool_layout.addStretch(1)
        layout.addLayout(tool_layout)

        slider_layout = QtWidgets.QGridLayout()
        slider_layout.setHorizontalSpacing(8)
        self.zoom_slider = self._slider(
            int(self.cfg.zoom_min * ZOOM_SLIDER_SCALE), int(self.cfg.zoom_max * ZOOM_SLIDER_SCALE)
        )
        self.zoom_label = QtWidgets.QLabel()
        self.contrast_min_slider = self._slider(int(DB_CLAMP_MIN), int(DB_CLAMP_MAX))
        self.contrast_max_slider = self._slider(int(DB_CLAMP_MIN), int(DB_CLAMP_MAX))
        self.range_min_slider = self._slider(int(DB_CLAMP_MIN), int(DB_CLAMP_MAX))
        self.range_max_slider = self._slider(int(DB_CLAMP_MIN), int(DB_CLAMP_MAX))
        self.contrast_label = QtWidgets.QLabel()
        self.range_label = QtWidgets.QLabel()

        slider_layout.addWidget(QtWidgets.QLabel("Zoom"), 0, 0)
        slider_layout.addWidget(self.zoom_slider, 0, 1, 1, 2)
        slider_layout.addWidget(self.zoom_label, 0, 3)
        slider_layout.addWidget(QtWidgets.QLabel("Contrast"), 1, 0)
        slider_layout.addWidget(self.contrast_min_slider, 1, 1)
        slider_layout.addWidget(self.contrast_max_slider, 1, 2)
        slider_layout.addWidget(self.contrast_label, 1, 3)
        slider_layout.addWidget(QtWidgets.QLabel("Range"), 2, 0)
        slider_layout.addWidget(self.range_min_slider, 2, 1)
        slider_layout.addWidget(self.range_max_slider, 2, 2)
        slider_layout.addWidget(self.range_label, 2, 3)
        layout.addLayout(slider_layout)

        splitter = QtWidgets.QSplitter(QtCore.Qt.Vertical)
        self.spectrum_canvas = SpectrumCanvas(self.engine, View.SPECTRUM)
        self.waterfall_canvas = WaterfallCanvas(self.engine)
        self.if_canvas = SpectrumCanvas(self.engine, View.IF)
        splitter.addWidget(self.spectrum_canvas)
        splitter.addWidget(self.waterfall_canvas)
        splitter.addWidget(self.if_canvas)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 3)
        splitter.setStretchFactor(2, 2)
        layout.addWidget(splitter, 1)

        self.status_label = QtWidgets.QLabel()
        self.scanner_label = QtWidgets.QLabel()
        self.rate_label = QtWidgets.QLabel()
        self.statusBar().addWidget(self.status_label, 1)
        self.statusBar().addPermanentWidget(self.scanner_label)
        self.statusBar().addPermanentWidget(self.rate_label)

    @staticmethod
    def _slider(minimum: int, maximum: int) -> QtWidgets.QSlider:
        slider = QtWidgets.QSlider(QtCore.Qt.Horizontal)
        slider.setRange(minimum, maximum)
        return slider

    def _build_menu(self):
        menu = self.menuBar()

        file_menu = menu.addMenu("File")
        self.radio_settings_action = QtWidgets.QAction("Radio Settings...", self)
        self.connect_action = QtWidgets.QAction("Connect", self)
        self.disconnect_action = QtWidgets.QAction("Disconnect", self)
        self.reconnect_action = QtWidgets.QAction("Reconnect", self)
        self.exit_action = QtWidgets.QAction("Exit", self)
        file_menu.addAction(self.radio_settings_action)
        file_menu.addAction(self.connect_action)
        file_menu.addAction(self.disconnect_action)
        file_menu.addAction(self.reconnect_action)
        file_menu.addSeparator()
        file_menu.addAction(self.exit_action)

        tools_menu = menu.addMenu("Tools")
        self.scanner_action = QtWidgets.QAction("Scanner...", self)
        self.cycle_rate_action = QtWidgets.QAction("Cycle Sample Rate", self)
        tools_menu.addAction(self.scanner_action)
        tools_menu.addAction(self.cycle_rate_action)

        help_menu = menu.addMenu("Help")
        self.about_action = QtWidgets.QAction("About", self)
        help_menu.addAction(self.about_action)

    def _wire_events(self):
        self.frame_received.connect(self.on_engine_frame)

        self.connect_btn.clicked.connect(self.on_connect_toggle)
        self.play_btn.clicked.connect(self.on_play_toggle)
        self.rate_btn.clicked.connect(self.on_cycle_rate)
        self.set_btn.clicked.connect(self.on_set_frequency)
        self.freq_edit.returnPressed.connect(self.on_set_frequency)
        self.step_down_btn.clicked.connect(lambda: self.engine.step_down())
        self.step_up_btn.clicked.connect(lambda: self.engine.step_up())
        self.reset_btn.clicked.connect(lambda: self.engine.reset_frequency())
        self.scan_btn.toggled.connect(self.on_scan_toggled)
        self.preset_cb.activated.connect(self.on_preset_selected)
        self.bookmark_cb.activated.connect(self.on_bookmark_selected)
        self.mode_cb.currentTextChanged.connect(self.on_mode_changed)

        self.zoom_slider.valueChanged.connect(self.on_zoom_slider)
        self.contrast_min_slider.valueChanged.connect(self.on_contrast_slider)
        self.contrast_max_slider.valueChanged.connect(self.on_contrast_slider)
        self.range_min_slider.valueChanged.connect(self.on_range_slider)
        self.range_max_slider.valueChanged.connect(self.on_range_slider)

        self.radio_settings_action.triggered.connect(self.on_open_radio_settings)
        self.connect_action.triggered.connect(lambda: self.engine.connect())
        self.disconnect_action.triggered.connect(self.engine.disconnect)
        self.reconnect_action.triggered.connect(lambda: self.engine.reconnect())
        self.exit_action.triggered.connect(self.close)
        self.scanner_action.triggered.connect(self.on_open_scanner)
        self.cycle_rate_action.triggered.connect(self.on_cycle_rate)
        self.about_action.triggered.connect(self.on_open_about)

    # -- engine output --------------------------------------------------------

    def _forward_frame(self, frame: EngineFrame) -> None:
        self.frame_received.emit(frame)

    def on_render(self, result: RenderResult) -> None:
        self.spectrum_canvas.set_result(result)
        self.waterfall_canvas.set_result(result)
        self.if_canvas.set_result(result)

    def on_engine_frame(self, frame: EngineFrame) -> None:
        if isinstance(frame, EngineStatusFrame):
            self._update_connection_ui(frame)
            self._sync_controls()
        elif isinstance(frame, EngineErrorFrame):
            self.statusBar().showMessage(f"{frame.error_code}: {frame.message}", 8000)

    def _update_connection_ui(self, status: EngineStatusFrame) -> None:
        self.connect_btn.setText("Disconnect" if status.connected else "Connect")
        self.play_btn.setText("Stop" if status.receiving else "Start")
        self.connect_action.setEnabled(not status.connected)
        self.disconnect_action.setEnabled(status.connected)
        self.status_label.setText(
            f"{status.radio} | {status.message or ''} | "
            f"{format_frequency(status.center_hz)} | span {format_span(status.span_hz)}"
        )
        if status.scanner_enabled:
            self.scanner_label.setText(
                f"Scanner {status.scanner_state} @ {status.scanner_current_hz / 1e6:.3f} MHz"
            )
        else:
            self.scanner_label.setText("Scanner off")
        self.rate_label.setText(f"{status.frames_rendered} frames, {status.frames_invalid} dropped")

    def _sync_controls(self) -> None:
        state = self.engine.state
        widgets = (
            self.zoom_slider,
            self.contrast_min_slider,
            self.contrast_max_slider,
            self.range_min_slider,
            self.range_max_slider,
            self.mode_cb,
            self.scan_btn,
        )
        for widget in widgets:
            widget.blockSignals(True)
        try:
            self.zoom_slider.setValue(int(round(state.zoom_factor * ZOOM_SLIDER_SCALE)))
            self.contrast_min_slider.setValue(int(round(state.contrast_range.min)))
            self.contrast_max_slider.setValue(int(round(state.contrast_range.max)))
            self.range_min_slider.setValue(int(round(state.display_range.min)))
            self.range_max_slider.setValue(int(round(state.display_range.max)))
            self.mode_cb.setCurrentText(self.engine.demod_mode)
            self.scan_btn.setChecked(self.engine.scanner.config.enabled)
        finally:
            for widget in widgets:
                widget.blockSignals(False)

        self.zoom_label.setText(f"{state.zoom_factor:.1f}x")
        self.contrast_label.setText(
            f"{state.contrast_range.min:.0f}..{state.contrast_range.max:.0f} dB"
        )
        self.range_label.setText(f"{state.display_range.min:.0f}..{state.display_range.max:.0f} dB")
        self.rate_btn.setText(f"{state.sample_rate_hz / 1e6:.3f} MS/s")
        if not self.freq_edit.hasFocus():
            self.freq_edit.setText(f"{state.center_frequency_hz / 1e6:.6f}")

    # -- handlers -------------------------------------------------------------

    def on_connect_toggle(self):
        if self.engine.connected:
            self.engine.disconnect()
        elif not self.engine.connect():
            self._show_last_error("Radio Connection")

    def on_play_toggle(self):
        if self.engine.is_receiving():
            self.engine.stop_receiving()
        elif not self.engine.start_receiving():
            self._show_last_error("Radio Connection")

    def on_cycle_rate(self):
        self.engine.cycle_sample_rate()

    def on_set_frequency(self):
        text = self.freq_edit.text().strip()
        try:
            mhz = float(text)
        except ValueError:
            self.statusBar().showMessage(f"Invalid frequency: {text!r}", 5000)
            return
        self.engine.tune(mhz * 1e6)
        self.freq_edit.clearFocus()

    def on_scan_toggled(self, checked: bool):
        self.engine.set_scanner_enabled(checked)

    def on_preset_selected(self, index: int):
        # Index 0 is the placeholder entry.
        if index > 0:
            self.engine.tune_preset(index - 1)
        self.preset_cb.setCurrentIndex(0)

    def on_bookmark_selected(self, index: int):
        if index > 0:
            self.engine.tune_bookmark(self.bookmark_cb.itemText(index))
        self.bookmark_cb.setCurrentIndex(0)

    def on_mode_changed(self, mode: str):
        self.engine.set_demod_mode(mode)

    def on_zoom_slider(self, value: int):
        self.engine.set_zoom(value / ZOOM_SLIDER_SCALE)

    def on_contrast_slider(self, _value: int):
        self.engine.set_contrast(self.contrast_min_slider.value(), self.contrast_max_slider.value())

    def on_range_slider(self, _value: int):
        self.engine.set_display_range(self.range_min_slider.value(), self.range_max_slider.value())

    def on_open_radio_settings(self):
        dlg = RadioDialog(self, self.cfg.radio, self.cfg.uri, self.cfg.device_index)
        if dlg.exec() != QtWidgets.QDialog.Accepted:
            return
        was_receiving = self.engine.is_receiving()
        self.engine.disconnect()
        self.cfg.device_index = dlg.device_index
        if not self.engine.connect(radio=dlg.radio, uri=dlg.uri):
            self._show_last_error("Radio Connection")
            return
        if was_receiving:
            self.engine.start_receiving()

    def on_open_scanner(self):
        dlg = ScannerDialog(self, self.engine.scanner.config)
        if dlg.exec() == QtWidgets.QDialog.Accepted:
            self.engine.configure_scanner(**dlg.updates())

    def on_open_about(self):
        AboutDialog(self).exec()

    def _show_last_error(self, title: str) -> None:
        error = self.engine.last_error
        message = error.message if error is not None else "Unknown error"
        QtWidgets.QMessageBox.warning(self, title, message)
