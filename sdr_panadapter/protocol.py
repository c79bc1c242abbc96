"""Frame schemas and transport helpers for the panadapter streaming protocol.

Engine frames are internal and not wire format.
Wire format frames are dict objects built via helpers and validated against the
Protocol Contract v1.0 JSON schema. Binary payloads follow their metadata frame
and start with a fixed 32-byte SPAY header.
"""

from __future__ import annotations

from dataclasses import dataclass
import struct
import uuid
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

PROTO_VERSION = "1.0"
FRAME_TYPES = {
    "status",
    "plot_meta",
    "waterfall_meta",
    "error",
}
PLOT_VIEWS = ("spectrum", "if")

BINARY_MAGIC = b"SPAY"
BINARY_HEADER_VERSION = 1
BINARY_KIND_PLOT_TRACE = 1
BINARY_KIND_WATERFALL_ROW = 2
BINARY_HEADER_STRUCT = struct.Struct("<4sHH16sII")


def protocol_json_schema() -> dict[str, Any]:
    """Return the Protocol Contract v1.0 JSON schema for metadata frames."""

    base_fields = {
        "proto_version": {"const": PROTO_VERSION},
        "type": {"enum": sorted(FRAME_TYPES)},
        "ts_monotonic_ns": {"type": "integer", "minimum": 0},
        "seq": {"type": "integer", "minimum": 0},
        "session_id": {"type": "string", "format": "uuid"},
    }
    base_required = ["proto_version", "type", "ts_monotonic_ns", "seq", "session_id"]

    label_schema = {
        "type": "object",
        "properties": {
            "x": {"type": "number"},
            "y": {"type": "number"},
            "text": {"type": "string"},
            "align": {"enum": ["left", "center", "right"]},
            "color": {"type": "string"},
        },
        "required": ["x", "y", "text", "align", "color"],
        "additionalProperties": False,
    }
    marker_schema = {
        "type": "object",
        "properties": {
            "x": {"type": "number"},
            "color": {"type": "string"},
            "width": {"type": "number", "minimum": 0},
            "dash": {"type": "array", "items": {"type": "number"}},
        },
        "required": ["x", "color", "width", "dash"],
        "additionalProperties": False,
    }

    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "title": "Panadapter Protocol v1.0 Metadata Frames",
        "type": "object",
        "oneOf": [
            {
                "title": "Status Frame",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "status"},
                    "connected": {"type": "boolean"},
                    "radio": {"type": "string"},
                    "receiving": {"type": "boolean"},
                    "center_hz": {"type": "number", "minimum": 0},
                    "sample_rate_hz": {"type": "number", "exclusiveMinimum": 0},
                    "span_hz": {"type": "number", "exclusiveMinimum": 0},
                    "zoom": {"type": "number", "minimum": 1, "maximum": 100},
                    "demod_mode": {"type": "string"},
                    "bandwidth_hz": {"type": ["number", "null"]},
                    "contrast_min_db": {"type": "number"},
                    "contrast_max_db": {"type": "number"},
                    "range_min_db": {"type": "number"},
                    "range_max_db": {"type": "number"},
                    "scanner_enabled": {"type": "boolean"},
                    "scanner_state": {"enum": ["idle", "scanning"]},
                    "scanner_current_hz": {"type": "number"},
                    "update_hz_target": {"type": "number"},
                    "frames_rendered": {"type": "integer", "minimum": 0},
                    "frames_invalid": {"type": "integer", "minimum": 0},
                    "message": {"type": ["string", "null"]},
                },
                "required": base_required
                + [
                    "connected",
                    "radio",
                    "receiving",
                    "center_hz",
                    "sample_rate_hz",
                    "span_hz",
                    "zoom",
                    "demod_mode",
                    "bandwidth_hz",
                    "contrast_min_db",
                    "contrast_max_db",
                    "range_min_db",
                    "range_max_db",
                    "scanner_enabled",
                    "scanner_state",
                    "scanner_current_hz",
                    "update_hz_target",
                    "frames_rendered",
                    "frames_invalid",
                ],
                "additionalProperties": False,
            },
            {
                "title": "Plot Meta Frame",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "plot_meta"},
                    "payload_id": {"type": ["string", "null"], "format": "uuid"},
                    "view": {"enum": list(PLOT_VIEWS)},
                    "width": {"type": "integer", "minimum": 1},
                    "height": {"type": "integer", "minimum": 1},
                    "plot_height": {"type": "integer", "minimum": 0},
                    "freq_start_hz": {"type": "number"},
                    "freq_stop_hz": {"type": "number"},
                    "center_hz": {"type": "number"},
                    "zoom": {"type": "number", "exclusiveMinimum": 0},
                    "bandwidth_hz": {"type": ["number", "null"]},
                    "major_divisions": {
                        "type": "array",
                        "items": {"type": "integer", "minimum": 1},
                        "minItems": 2,
                        "maxItems": 2,
                    },
                    "minor_divisions": {
                        "type": "array",
                        "items": {"type": "integer", "minimum": 1},
                        "minItems": 2,
                        "maxItems": 2,
                    },
                    "labels": {"type": "array", "items": label_schema},
                    "markers": {"type": "array", "items": marker_schema},
                    "n_points": {"type": "integer", "minimum": 0},
                    "dtype": {"const": "f32"},
                    "endianness": {"const": "LE"},
                },
                "required": base_required
                + [
                    "payload_id",
                    "view",
                    "width",
                    "height",
                    "plot_height",
                    "freq_start_hz",
                    "freq_stop_hz",
                    "center_hz",
                    "zoom",
                    "bandwidth_hz",
                    "major_divisions",
                    "minor_divisions",
                    "labels",
                    "markers",
                    "n_points",
                    "dtype",
                    "endianness",
                ],
                "additionalProperties": False,
            },
            {
                "title": "Waterfall Meta Frame",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "waterfall_meta"},
                    "payload_id": {"type": "string", "format": "uuid"},
                    "width": {"type": "integer", "minimum": 1},
                    "height": {"type": "integer", "minimum": 1},
                    "freq_start_hz": {"type": "number"},
                    "freq_stop_hz": {"type": "number"},
                    "center_hz": {"type": "number"},
                    "range_min_db": {"type": "number"},
                    "range_max_db": {"type": "number"},
                    "contrast_min_db": {"type": "number"},
                    "scale_height": {"type": "integer", "minimum": 0},
                    "scale_labels": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {"x": {"type": "number"}, "text": {"type": "string"}},
                            "required": ["x", "text"],
                            "additionalProperties": False,
                        },
                    },
                    "channels": {"const": 3},
                    "dtype": {"const": "u8"},
                    "endianness": {"type": "null"},
                },
                "required": base_required
                + [
                    "payload_id",
                    "width",
                    "height",
                    "freq_start_hz",
                    "freq_stop_hz",
                    "center_hz",
                    "range_min_db",
                    "range_max_db",
                    "contrast_min_db",
                    "scale_height",
                    "scale_labels",
                    "channels",
                    "dtype",
                    "endianness",
                ],
                "additionalProperties": False,
            },
            {
                "title": "Error Frame",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "error"},
                    "error_code": {"type": "string"},
                    "message": {"type": "string"},
                    "details": {"type": ["object", "null"]},
                    "recoverable": {"type": "boolean"},
                },
                "required": base_required + ["error_code", "message", "recoverable"],
                "additionalProperties": False,
            },
        ],
    }


def make_payload_header(kind: int, payload_id: uuid.UUID, element_count: int) -> bytes:
    """Create the 32-byte SPAY header for binary payloads."""

    return BINARY_HEADER_STRUCT.pack(
        BINARY_MAGIC,
        BINARY_HEADER_VERSION,
        int(kind),
        payload_id.bytes,
        int(element_count),
        0,
    )


def parse_payload_header(raw: bytes) -> dict[str, Any]:
    """Parse a 32-byte SPAY header into a dict."""

    if len(raw) != BINARY_HEADER_STRUCT.size:
        raise ValueError("Invalid SPAY header length")
    magic, version, kind, payload_bytes, count, reserved = BINARY_HEADER_STRUCT.unpack(raw)
    if magic != BINARY_MAGIC:
        raise ValueError("Invalid SPAY magic")
    if version != BINARY_HEADER_VERSION:
        raise ValueError("Invalid SPAY version")
    if kind not in {BINARY_KIND_PLOT_TRACE, BINARY_KIND_WATERFALL_ROW}:
        raise ValueError("Invalid SPAY kind")
    if reserved != 0:
        raise ValueError("Invalid SPAY reserved field")
    return {
        "magic": magic,
        "version": int(version),
        "kind": int(kind),
        "payload_id": str(uuid.UUID(bytes=payload_bytes)),
        "element_count": int(count),
        "reserved": int(reserved),
    }


def make_frame_base(
    *,
    frame_type: str,
    ts_monotonic_ns: int,
    seq: int,
    session_id: uuid.UUID,
) -> dict[str, Any]:
    """Build shared metadata fields for protocol frames."""

    if frame_type not in FRAME_TYPES:
        raise ValueError(f"Unsupported frame type: {frame_type}")
    return {
        "proto_version": PROTO_VERSION,
        "type": frame_type,
        "ts_monotonic_ns": int(ts_monotonic_ns),
        "seq": int(seq),
        "session_id": str(session_id),
    }


@dataclass(frozen=True)
class EngineStatusFrame:
    """Internal connection, tuning and render status."""

    ts_monotonic_ns: int
    connected: bool
    radio: str
    receiving: bool
    center_hz: float
    sample_rate_hz: float
    span_hz: float
    zoom: float
    demod_mode: str
    bandwidth_hz: Optional[float]
    contrast_min_db: float
    contrast_max_db: float
    range_min_db: float
    range_max_db: float
    scanner_enabled: bool
    scanner_state: str
    scanner_current_hz: float
    update_hz_target: float
    frames_rendered: int
    frames_invalid: int
    message: Optional[str] = None


@dataclass(frozen=True)
class PlotLabel:
    x: float
    y: float
    text: str
    align: str
    color: str


@dataclass(frozen=True)
class PlotMarker:
    x: float
    color: str
    width: float
    dash: Tuple[float, ...]


@dataclass(frozen=True)
class EnginePlotFrame:
    """Internal spectrum or IF plot: trace columns plus annotations."""

    ts_monotonic_ns: int
    view: str
    width: int
    height: int
    plot_height: int
    freq_start_hz: float
    freq_stop_hz: float
    center_hz: float
    zoom: float
    bandwidth_hz: Optional[float]
    major_divisions: Tuple[int, int]
    minor_divisions: Tuple[int, int]
    trace: np.ndarray
    labels: Sequence[PlotLabel]
    markers: Sequence[PlotMarker]


@dataclass(frozen=True)
class EngineWaterfallFrame:
    """Internal newest waterfall row (RGB, one entry per column)."""

    ts_monotonic_ns: int
    row_rgb: np.ndarray
    width: int
    height: int
    freq_start_hz: float
    freq_stop_hz: float
    center_hz: float
    range_min_db: float
    range_max_db: float
    contrast_min_db: float
    scale_height: int
    scale_labels: Sequence[Tuple[float, str]]


@dataclass(frozen=True)
class EngineErrorFrame:
    """Internal error notifications."""

    ts_monotonic_ns: int
    error_code: str
    message: str
    details: Optional[Mapping[str, Any]] = None
    recoverable: bool = False


EngineFrame = Union[
    EngineStatusFrame,
    EnginePlotFrame,
    EngineWaterfallFrame,
    EngineErrorFrame,
]


def engine_status_to_wire(
    frame: EngineStatusFrame,
    *,
    seq: int,
    session_id: uuid.UUID,
) -> dict[str, Any]:
    base = make_frame_base(
        frame_type="status",
        ts_monotonic_ns=frame.ts_monotonic_ns,
        seq=seq,
        session_id=session_id,
    )
    base.update(
        {
            "connected": frame.connected,
            "radio": frame.radio,
            "receiving": frame.receiving,
            "center_hz": frame.center_hz,
            "sample_rate_hz": frame.sample_rate_hz,
            "span_hz": frame.span_hz,
            "zoom": frame.zoom,
            "demod_mode": frame.demod_mode,
            "bandwidth_hz": frame.bandwidth_hz,
            "contrast_min_db": frame.contrast_min_db,
            "contrast_max_db": frame.contrast_max_db,
            "range_min_db": frame.range_min_db,
            "range_max_db": frame.range_max_db,
            "scanner_enabled": frame.scanner_enabled,
            "scanner_state": frame.scanner_state,
            "scanner_current_hz": frame.scanner_current_hz,
            "update_hz_target": frame.update_hz_target,
            "frames_rendered": frame.frames_rendered,
            "frames_invalid": frame.frames_invalid,
            "message": frame.message,
        }
    )
    return base


def engine_plot_meta_to_wire(
    frame: EnginePlotFrame,
    *,
    seq: int,
    session_id: uuid.UUID,
    payload_id: Optional[uuid.UUID],
) -> dict[str, Any]:
    base = make_frame_base(
        frame_type="plot_meta",
        ts_monotonic_ns=frame.ts_monotonic_ns,
        seq=seq,
        session_id=session_id,
    )
    base.update(
        {
            "payload_id": str(payload_id) if payload_id is not None else None,
            "view": frame.view,
            "width": int(frame.width),
            "height": int(frame.height),
            "plot_height": int(frame.plot_height),
            "freq_start_hz": float(frame.freq_start_hz),
            "freq_stop_hz": float(frame.freq_stop_hz),
            "center_hz": float(frame.center_hz),
            "zoom": float(frame.zoom),
            "bandwidth_hz": frame.bandwidth_hz,
            "major_divisions": list(frame.major_divisions),
            "minor_divisions": list(frame.minor_divisions),
            "labels": [
                {
                    "x": float(label.x),
                    "y": float(label.y),
                    "text": label.text,
                    "align": label.align,
                    "color": label.color,
                }
                for label in frame.labels
            ],
            "markers": [
                {
                    "x": float(marker.x),
                    "color": marker.color,
                    "width": float(marker.width),
                    "dash": [float(d) for d in marker.dash],
                }
                for marker in frame.markers
            ],
            "n_points": int(frame.trace.size),
            "dtype": "f32",
            "endianness": "LE",
        }
    )
    return base


def engine_waterfall_meta_to_wire(
    frame: EngineWaterfallFrame,
    *,
    seq: int,
    session_id: uuid.UUID,
    payload_id: uuid.UUID,
) -> dict[str, Any]:
    base = make_frame_base(
        frame_type="waterfall_meta",
        ts_monotonic_ns=frame.ts_monotonic_ns,
        seq=seq,
        session_id=session_id,
    )
    base.update(
        {
            "payload_id": str(payload_id),
            "width": int(frame.width),
            "height": int(frame.height),
            "freq_start_hz": float(frame.freq_start_hz),
            "freq_stop_hz": float(frame.freq_stop_hz),
            "center_hz": float(frame.center_hz),
            "range_min_db": float(frame.range_min_db),
            "range_max_db": float(frame.range_max_db),
            "contrast_min_db": float(frame.contrast_min_db),
            "scale_height": int(frame.scale_height),
            "scale_labels": [{"x": float(x), "text": text} for x, text in frame.scale_labels],
            "channels": 3,
            "dtype": "u8",
            "endianness": None,
        }
    )
    return base


def engine_error_to_wire(
    frame: EngineErrorFrame,
    *,
    seq: int,
    session_id: uuid.UUID,
) -> dict[str, Any]:
    base = make_frame_base(
        frame_type="error",
        ts_monotonic_ns=frame.ts_monotonic_ns,
        seq=seq,
        session_id=session_id,
    )
    base.update(
        {
            "error_code": frame.error_code,
            "message": frame.message,
            "details": dict(frame.details) if frame.details is not None else None,
            "recoverable": frame.recoverable,
        }
    )
    return base
