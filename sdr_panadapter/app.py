"""Application entrypoint wiring for the panadapter.

Parses command line flags into a PanadapterConfig, configures logging and
starts either the Qt window or the HTTP server. This module must not contain
UI, rendering or radio logic beyond orchestration.
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional, Sequence

from sdr_panadapter.config import PanadapterConfig
from sdr_panadapter.dsp.processor import SpectrumProcessor
from sdr_panadapter.logging_setup import configure_logging
from sdr_panadapter.modes import MODES
from sdr_panadapter.radio.factory import RADIO_KINDS


logger = logging.getLogger(__name__)


def _gain(text: str) -> Optional[float]:
    if text.strip().lower() == "auto":
        return None
    try:
        return float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f'gain must be a number or "auto", got {text!r}')


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sdr-panadapter",
        description="Real-time SDR spectrum and waterfall panadapter",
    )
    p.add_argument("--radio", choices=RADIO_KINDS, help="Radio backend (default simulated)")
    p.add_argument("--uri", type=str, help="Pluto URI (default ip:192.168.2.1)")
    p.add_argument("--device-index", dest="device_index", type=int, help="RTL-SDR device index")
    p.add_argument("--center", type=float, help="Center frequency in Hz (e.g., 100e6)")
    p.add_argument("--sample-rate", dest="sample_rate", type=float, help="Sample rate in Hz (default 2.048e6)")
    p.add_argument("--gain", type=_gain, help='Gain in dB or "auto" (default auto)')
    p.add_argument("--mode", type=str.upper, choices=MODES, help="Demod mode (default WBFM)")
    p.add_argument("--fft", type=int, help="FFT size for hardware radios (default 1024)")
    p.add_argument("--window", choices=SpectrumProcessor.WINDOWS, help="FFT window for hardware radios (default Hann)")
    p.add_argument("--log-level", dest="log_level", type=str, help="Logging level (default INFO)")
    p.add_argument("--connect", action="store_true", help="Connect and start receiving on startup")
    p.add_argument("--server", action="store_true", help="Run the HTTP/WebSocket server instead of the window")
    p.add_argument("--host", type=str, default="127.0.0.1", help="Server bind address")
    p.add_argument("--port", type=int, default=8000, help="Server port")
    return p


def build_config(args: argparse.Namespace) -> PanadapterConfig:
    cfg = PanadapterConfig()
    overrides = {
        "radio": args.radio,
        "uri": args.uri,
        "device_index": args.device_index,
        "center_hz": args.center,
        "sample_rate_hz": args.sample_rate,
        "demod_mode": args.mode,
        "fft_size": args.fft,
        "fft_window": args.window,
        "log_level": args.log_level,
    }
    cfg = replace(cfg, **{k: v for k, v in overrides.items() if v is not None})
    # None means automatic gain, so it cannot be filtered like the others.
    if args.gain is not None:
        cfg.gain_db = args.gain
    return cfg


def run_server(cfg: PanadapterConfig, host: str, port: int, start: bool = False) -> int:
    import uvicorn

    from sdr_panadapter.server.app import create_app

    app = create_app(cfg=cfg, autostart=start)
    logger.info("serving on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=cfg.log_level.lower())
    return 0


def run_gui(cfg: PanadapterConfig, start: bool = False) -> int:
    from pyqtgraph.Qt import QtWidgets

    from sdr_panadapter.ui.main_window import PanadapterWindow

    app = QtWidgets.QApplication(sys.argv)
    window = PanadapterWindow(cfg)
    window.show()
    if start:
        window.engine.start_receiving()
    return app.exec()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = build_config(args)
    configure_logging(args.log_level)
    if args.server:
        return run_server(cfg, args.host, args.port, start=args.connect)
    return run_gui(cfg, start=args.connect)


if __name__ == "__main__":
    raise SystemExit(main())
