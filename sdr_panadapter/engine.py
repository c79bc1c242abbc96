"""Headless engine for radio lifecycle, navigation and frame streaming.

Hosts (the Qt window, the HTTP server) drive everything through Engine: they
report surface sizes, forward pointer input and receive status, plot,
waterfall and error frames through ``subscribe``. This module must not import
UI classes.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from sdr_panadapter.config import Bookmark, PanadapterConfig, Preset
from sdr_panadapter.modes import MODES, mode_bandwidth
from sdr_panadapter.protocol import (
    EngineErrorFrame,
    EngineFrame,
    EnginePlotFrame,
    EngineStatusFrame,
    EngineWaterfallFrame,
    PlotLabel,
    PlotMarker,
)
from sdr_panadapter.radio.base import Radio
from sdr_panadapter.radio.factory import open_radio
from sdr_panadapter.render_loop import RenderLoop, RenderResult, View, if_axis
from sdr_panadapter.scanner import ScannerConfig, ScannerEngine
from sdr_panadapter.scheduling import Scheduler
from sdr_panadapter.view.axis import FrequencyAxis
from sdr_panadapter.view.plot import MAJOR_DIVISIONS, MINOR_DIVISIONS, PlotScene
from sdr_panadapter.viewport import ViewportController, ViewportState


logger = logging.getLogger(__name__)

FrameCallback = Callable[[EngineFrame], None]
RadioFactory = Callable[[PanadapterConfig], Radio]


class Engine:
    """Owns the radio, the viewport, the scanner and the render loop."""

    def __init__(
        self,
        cfg: PanadapterConfig,
        scheduler: Scheduler,
        radio_factory: RadioFactory = open_radio,
    ):
        self.cfg = cfg
        self._radio_factory = radio_factory
        self._radio: Optional[Radio] = None
        self._subscribers: list[FrameCallback] = []
        self._last_error: Optional[EngineErrorFrame] = None
        self._last_emitted_state: Optional[ViewportState] = None
        self._demod_mode = str(cfg.demod_mode).upper()
        self._message: Optional[str] = "disconnected"

        self.controller = ViewportController(
            cfg,
            on_frequency=self._radio_set_frequency,
            on_sample_rate=self._radio_set_sample_rate,
        )
        self.loop = RenderLoop(None, self.controller, scheduler, cfg, bandwidth=self.plot_bandwidth)
        self.loop.subscribe(self._on_render)
        self.scanner = ScannerEngine(
            scheduler,
            tune=self.tune,
            is_receiving=self.is_receiving,
            config=ScannerConfig(
                start_hz=cfg.scanner_start_hz,
                end_hz=cfg.scanner_end_hz,
                step_hz=cfg.scanner_step_hz,
                current_hz=cfg.scanner_start_hz,
                interval_ms=cfg.scanner_interval_ms,
            ),
        )

    # -- subscribers ----------------------------------------------------------

    def subscribe(self, callback: FrameCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: FrameCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def subscribe_render(self, callback: Callable[[RenderResult], None]) -> None:
        """Full render results (scenes and waterfall image) for painting hosts."""
        self.loop.subscribe(callback)

    def unsubscribe_render(self, callback: Callable[[RenderResult], None]) -> None:
        self.loop.unsubscribe(callback)

    # -- status ---------------------------------------------------------------

    @property
    def state(self) -> ViewportState:
        return self.controller.state

    @property
    def connected(self) -> bool:
        return self._radio is not None

    @property
    def radio(self) -> Optional[Radio]:
        return self._radio

    @property
    def last_error(self) -> Optional[EngineErrorFrame]:
        return self._last_error

    @property
    def demod_mode(self) -> str:
        return self._demod_mode

    def bandwidth(self) -> float:
        return mode_bandwidth(self._demod_mode, self.state.sample_rate_hz)

    def plot_bandwidth(self) -> Optional[float]:
        # RAW covers the whole sampled band; edge markers would sit on the plot border.
        if self._demod_mode == "RAW":
            return None
        return self.bandwidth()

    def is_receiving(self) -> bool:
        return self._radio is not None and bool(self._radio.is_receiving())

    def status(self) -> EngineStatusFrame:
        state = self.state
        scanner_cfg = self.scanner.config
        return EngineStatusFrame(
            ts_monotonic_ns=self._now_ns(),
            connected=self.connected,
            radio=str(self.cfg.radio),
            receiving=self.is_receiving(),
            center_hz=float(state.center_frequency_hz),
            sample_rate_hz=float(state.sample_rate_hz),
            span_hz=float(state.span_hz),
            zoom=float(state.zoom_factor),
            demod_mode=self._demod_mode,
            bandwidth_hz=self.plot_bandwidth(),
            contrast_min_db=float(state.contrast_range.min),
            contrast_max_db=float(state.contrast_range.max),
            range_min_db=float(state.display_range.min),
            range_max_db=float(state.display_range.max),
            scanner_enabled=bool(scanner_cfg.enabled),
            scanner_state=self.scanner.state.value,
            scanner_current_hz=float(scanner_cfg.current_hz),
            update_hz_target=self._target_update_hz(),
            frames_rendered=int(self.loop.frames_rendered),
            frames_invalid=int(self.loop.frames_invalid),
            message=self._message,
        )

    # -- radio lifecycle ------------------------------------------------------

    def connect(self, radio: Optional[str] = None, uri: Optional[str] = None) -> bool:
        if self._radio is not None:
            return True
        if radio is not None:
            self.cfg.radio = str(radio)
        if uri is not None:
            self.cfg.uri = str(uri)
        state = self.state
        self.cfg.center_hz = state.center_frequency_hz
        self.cfg.sample_rate_hz = state.sample_rate_hz
        try:
            self._radio = self._radio_factory(self.cfg)
        except Exception as exc:
            self._radio = None
            logger.error("connecting %s radio failed: %s", self.cfg.radio, exc)
            self._report_error("radio_connect_failed", str(exc) or "Failed to connect to radio")
            self._update_status("connection failed")
            return False

        self._radio.set_error_callback(self._handle_radio_error)
        self._radio.set_bandwidth(self.bandwidth())
        # Pull the view center into the tuner range so it shows where the LO sits.
        state = self.controller.set_frequency_limits(self._radio.frequency_range_hz())
        self.loop.set_source(self._radio)
        logger.info("connected %s radio at %.6f MHz", self.cfg.radio, state.center_frequency_hz / 1e6)
        self._update_status("connected")
        return True

    def disconnect(self) -> None:
        self.stop_receiving()
        if self._radio is not None:
            try:
                self._radio.close()
            except Exception:
                logger.exception("closing radio failed")
            self._radio = None
        self.controller.set_frequency_limits(None)
        self.loop.set_source(None)
        self._update_status("disconnected")

    def reconnect(self) -> bool:
        self.disconnect()
        return self.connect()

    def start_receiving(self) -> bool:
        if self._radio is None and not self.connect():
            return False
        self._radio.start_receiving()
        self.loop.start()
        self.scanner.sync()
        self._update_status("receiving")
        return True

    def stop_receiving(self) -> None:
        if self._radio is not None:
            self._radio.stop_receiving()
        self.loop.stop()
        self.scanner.sync()
        if self._radio is not None:
            self._update_status("stopped")

    def toggle_receiving(self) -> bool:
        if self.is_receiving():
            self.stop_receiving()
            return False
        return self.start_receiving()

    # -- surfaces and pointer input -------------------------------------------

    def set_surface_size(self, view: View, width: int, height: int) -> None:
        self.loop.set_surface_size(view, width, height)

    def _width(self, view: View) -> int:
        return self.loop.surface_size(view)[0]

    def axis_for(self, view: View) -> FrequencyAxis:
        view = View(view)
        width = self._width(view)
        if view is View.IF:
            return if_axis(self.state, width, self.cfg.if_fraction)
        return FrequencyAxis.for_viewport(self.state, width)

    def click(self, view: View, x: float) -> ViewportState:
        view = View(view)
        if view is View.IF:
            width = self._width(view)
            if width <= 0:
                return self.state
            state = self.controller.set_frequency(self.axis_for(view).pixel_to_frequency(x))
        else:
            state = self.controller.click(x, self._width(view))
        return self._after_input(state)

    def double_click(self, view: View, x: float) -> ViewportState:
        view = View(view)
        if view is View.IF:
            return self.click(view, x)
        return self._after_input(self.controller.double_click(x, self._width(view)))

    def hover(self, view: View, x: float) -> Optional[float]:
        if self._width(view) <= 0:
            return None
        return float(self.axis_for(view).pixel_to_frequency(x))

    def drag_begin(self, view: View, x: float, pointer_id: int = 0) -> ViewportState:
        if View(view) is View.IF:
            return self.state
        return self.controller.drag_begin(x, pointer_id)

    def drag_move(self, view: View, x: float, pointer_id: int = 0) -> ViewportState:
        view = View(view)
        if view is View.IF or not self.controller.is_dragging(pointer_id):
            return self.state
        return self._after_input(self.controller.drag_move(x, self._width(view), pointer_id))

    def drag_end(self, view: View, pointer_id: int = 0) -> ViewportState:
        return self.controller.drag_end(pointer_id)

    def wheel(
        self,
        view: View,
        delta_y: float,
        x: float,
        shift: bool = False,
        ctrl: bool = False,
    ) -> ViewportState:
        view = View(view)
        if view is View.IF and ctrl:
            # The IF slice has a fixed width; only tuning applies there.
            ctrl = False
        state = self.controller.wheel(delta_y, x, self._width(view), shift=shift, ctrl=ctrl)
        return self._after_input(state)

    # -- tuning ---------------------------------------------------------------

    def tune(self, hz: float) -> ViewportState:
        return self._after_input(self.controller.set_frequency(hz))

    def step(self, delta_hz: float) -> ViewportState:
        return self._after_input(self.controller.step_frequency(delta_hz))

    def step_up(self) -> ViewportState:
        return self.step(self.cfg.button_step_hz)

    def step_down(self) -> ViewportState:
        return self.step(-self.cfg.button_step_hz)

    def reset_frequency(self) -> ViewportState:
        return self.tune(self.cfg.home_frequency_hz)

    def set_zoom(self, zoom: float) -> ViewportState:
        return self._after_input(self.controller.set_zoom(zoom))

    def set_contrast(self, min_db: float, max_db: float) -> ViewportState:
        return self._after_input(self.controller.set_contrast(min_db, max_db))

    def set_display_range(self, min_db: float, max_db: float) -> ViewportState:
        return self._after_input(self.controller.set_display_range(min_db, max_db))

    def set_sample_rate(self, hz: float) -> ViewportState:
        return self._after_input(self.controller.set_sample_rate(hz))

    def cycle_sample_rate(self) -> ViewportState:
        rates = list(self.cfg.sample_rate_cycle_hz)
        current = self.state.sample_rate_hz
        try:
            idx = rates.index(current)
            nxt = rates[(idx + 1) % len(rates)]
        except ValueError:
            nxt = rates[0]
        logger.info("sample rate %.3f -> %.3f MS/s", current / 1e6, nxt / 1e6)
        return self.set_sample_rate(nxt)

    def set_demod_mode(self, mode: str) -> str:
        mode = str(mode).upper()
        if mode not in MODES:
            raise ValueError(f"unknown demod mode {mode!r}")
        self._demod_mode = mode
        self.cfg.demod_mode = mode
        if self._radio is not None:
            self._radio.set_bandwidth(self.bandwidth())
        self._after_input(self.state)
        return mode

    def presets(self) -> list[Preset]:
        return list(self.cfg.presets)

    def bookmarks(self) -> list[Bookmark]:
        return list(self.cfg.bookmarks)

    def tune_preset(self, index: int) -> ViewportState:
        preset = self.cfg.presets[int(index)]
        state = self.tune(preset.frequency_hz)
        if self._radio is not None and not self.is_receiving():
            self.start_receiving()
        return state

    def tune_bookmark(self, name: str) -> ViewportState:
        for bookmark in self.cfg.bookmarks:
            if bookmark.name == name:
                self.set_demod_mode(bookmark.mode)
                return self.tune(bookmark.frequency_hz)
        raise KeyError(name)

    # -- scanner --------------------------------------------------------------

    def configure_scanner(self, **updates) -> ScannerConfig:
        cfg = self.scanner.configure(**updates)
        self._update_status(None)
        return cfg

    def set_scanner_enabled(self, enabled: bool) -> ScannerConfig:
        return self.configure_scanner(enabled=bool(enabled))

    # -- rendering ------------------------------------------------------------

    def render_now(self) -> RenderResult:
        """Render one frame outside the timer (used while not receiving)."""
        return self.loop.render_once()

    def _after_input(self, state: ViewportState) -> ViewportState:
        if not self.loop.running:
            self.render_now()
        self._update_status(None)
        return state

    def _on_render(self, result: RenderResult) -> None:
        if not self._subscribers:
            return
        changed = result.state != self._last_emitted_state
        if not (result.fresh or changed):
            return
        self._last_emitted_state = result.state
        if result.spectrum is not None:
            self._emit(self._plot_frame(View.SPECTRUM, result.spectrum, result, self.plot_bandwidth()))
        if result.if_spectrum is not None:
            self._emit(self._plot_frame(View.IF, result.if_spectrum, result, None))
        if result.waterfall_row is not None:
            state = result.state
            axis = FrequencyAxis.for_viewport(state, result.waterfall_row.shape[0])
            buf = self.loop.waterfall
            self._emit(
                EngineWaterfallFrame(
                    ts_monotonic_ns=result.ts_monotonic_ns,
                    row_rgb=result.waterfall_row,
                    width=buf.width,
                    height=buf.height,
                    freq_start_hz=axis.start_hz,
                    freq_stop_hz=axis.stop_hz,
                    center_hz=axis.center_hz,
                    range_min_db=state.display_range.min,
                    range_max_db=state.display_range.max,
                    contrast_min_db=state.contrast_range.min,
                    scale_height=buf.scale_height_px,
                    scale_labels=list(result.waterfall_labels),
                )
            )
        for view, message in result.errors.items():
            self._report_error("render_failed", message, details={"view": view}, recoverable=True)

    def _plot_frame(
        self,
        view: View,
        scene: PlotScene,
        result: RenderResult,
        bandwidth_hz: Optional[float],
    ) -> EnginePlotFrame:
        width = scene.width
        if view is View.IF:
            axis = if_axis(result.state, width, self.cfg.if_fraction)
        else:
            axis = FrequencyAxis.for_viewport(result.state, width)
        return EnginePlotFrame(
            ts_monotonic_ns=result.ts_monotonic_ns,
            view=view.value,
            width=width,
            height=scene.height,
            plot_height=scene.plot_height,
            freq_start_hz=axis.start_hz,
            freq_stop_hz=axis.stop_hz,
            center_hz=axis.center_hz,
            zoom=axis.zoom,
            bandwidth_hz=bandwidth_hz,
            major_divisions=MAJOR_DIVISIONS,
            minor_divisions=MINOR_DIVISIONS,
            trace=scene.trace,
            labels=[PlotLabel(lb.x, lb.y, lb.text, lb.align, lb.color) for lb in scene.labels],
            markers=[PlotMarker(mk.x, mk.color, mk.width, tuple(mk.dash)) for mk in scene.markers],
        )

    # -- internals ------------------------------------------------------------

    def _radio_set_frequency(self, hz: float) -> None:
        self.cfg.center_hz = float(hz)
        if self._radio is not None:
            self._radio.set_center_frequency(hz)

    def _radio_set_sample_rate(self, hz: float) -> None:
        self.cfg.sample_rate_hz = float(hz)
        if self._radio is not None:
            self._radio.set_sample_rate(hz)
            self._radio.set_bandwidth(mode_bandwidth(self._demod_mode, hz))

    def _handle_radio_error(self, message: str) -> None:
        # Called from the reader thread; the radio has already stopped itself.
        self._report_error("radio_error", message or "Radio error")
        self._update_status("radio error")

    def _report_error(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
        recoverable: bool = True,
    ) -> None:
        self._last_error = EngineErrorFrame(
            ts_monotonic_ns=self._now_ns(),
            error_code=code,
            message=message,
            details=details,
            recoverable=recoverable,
        )
        self._emit(self._last_error)

    def _update_status(self, message: Optional[str]) -> None:
        if message is not None:
            self._message = message
        self._emit(self.status())

    def _emit(self, frame: EngineFrame) -> None:
        for callback in list(self._subscribers):
            try:
                callback(frame)
            except Exception:
                logger.exception("engine subscriber failed")

    @staticmethod
    def _now_ns() -> int:
        return int(time.monotonic() * 1e9)

    def _target_update_hz(self) -> float:
        return 1000.0 / max(1.0, float(self.cfg.frame_interval_ms))
