"""REST endpoints for the panadapter server.

Handlers are ``async def`` so they run on the event loop thread, the same
thread the render loop and scanner timers fire on.
"""

from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request

from sdr_panadapter.engine import Engine
from sdr_panadapter.modes import MODE_BANDWIDTH_HZ
from sdr_panadapter.protocol import EngineErrorFrame
from sdr_panadapter.render_loop import View
from sdr_panadapter.viewport import ViewportState


router = APIRouter()

POINTER_EVENTS = {"click", "double_click", "wheel", "drag_begin", "drag_move", "drag_end", "hover"}
SCANNER_FIELDS = ("start_hz", "end_hz", "step_hz", "current_hz", "interval_ms")


def _engine(request: Request) -> Engine:
    return request.app.state.engine


def _serialize_error(error: EngineErrorFrame | None) -> dict[str, Any] | None:
    if error is None:
        return None
    return asdict(error)


def _serialize_status(engine: Engine) -> dict[str, Any]:
    return asdict(engine.status())


def _serialize_viewport(state: ViewportState) -> dict[str, Any]:
    return {
        "center_hz": state.center_frequency_hz,
        "sample_rate_hz": state.sample_rate_hz,
        "zoom": state.zoom_factor,
        "span_hz": state.span_hz,
        "contrast_min_db": state.contrast_range.min,
        "contrast_max_db": state.contrast_range.max,
        "range_min_db": state.display_range.min,
        "range_max_db": state.display_range.max,
    }


def _object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Payload must be a JSON object")
    return payload


def _number(payload: dict[str, Any], key: str) -> float:
    try:
        value = float(payload[key])
    except KeyError:
        raise HTTPException(status_code=400, detail=f"'{key}' is required")
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"'{key}' must be a number")
    if not math.isfinite(value):
        raise HTTPException(status_code=400, detail=f"'{key}' must be finite")
    return value


def _view(payload: dict[str, Any]) -> View:
    try:
        return View(payload.get("view", View.SPECTRUM.value))
    except ValueError:
        raise HTTPException(status_code=400, detail="Unknown view")


@router.get("/api/status")
async def get_status(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    return {
        "status": _serialize_status(engine),
        "error": _serialize_error(engine.last_error),
    }


@router.get("/api/viewport")
async def get_viewport(request: Request) -> dict[str, Any]:
    return _serialize_viewport(_engine(request).state)


@router.post("/api/viewport")
async def update_viewport(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    payload = _object(payload)
    engine = _engine(request)
    if "sample_rate_hz" in payload:
        engine.set_sample_rate(_number(payload, "sample_rate_hz"))
    if "zoom" in payload:
        engine.set_zoom(_number(payload, "zoom"))
    if "center_hz" in payload:
        engine.tune(_number(payload, "center_hz"))
    if "contrast_min_db" in payload or "contrast_max_db" in payload:
        cur = engine.state.contrast_range
        engine.set_contrast(
            float(payload.get("contrast_min_db", cur.min)),
            float(payload.get("contrast_max_db", cur.max)),
        )
    if "range_min_db" in payload or "range_max_db" in payload:
        cur = engine.state.display_range
        engine.set_display_range(
            float(payload.get("range_min_db", cur.min)),
            float(payload.get("range_max_db", cur.max)),
        )
    return _serialize_viewport(engine.state)


@router.post("/api/tune")
async def tune(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    state = _engine(request).tune(_number(_object(payload), "frequency_hz"))
    return _serialize_viewport(state)


@router.post("/api/step")
async def step(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    payload = _object(payload)
    engine = _engine(request)
    direction = payload.get("direction")
    if direction == "up":
        state = engine.step_up()
    elif direction == "down":
        state = engine.step_down()
    else:
        state = engine.step(_number(payload, "delta_hz"))
    return _serialize_viewport(state)


@router.post("/api/reset")
async def reset_frequency(request: Request) -> dict[str, Any]:
    return _serialize_viewport(_engine(request).reset_frequency())


@router.post("/api/surfaces")
async def set_surface(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    payload = _object(payload)
    view = _view(payload)
    width = int(_number(payload, "width"))
    height = int(_number(payload, "height"))
    _engine(request).set_surface_size(view, width, height)
    return {"view": view.value, "width": max(0, width), "height": max(0, height)}


@router.post("/api/pointer")
async def pointer(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    payload = _object(payload)
    event = payload.get("event")
    if event not in POINTER_EVENTS:
        raise HTTPException(status_code=400, detail="Unknown pointer event")
    engine = _engine(request)
    view = _view(payload)
    pointer_id = int(payload.get("pointer_id", 0))

    if event == "drag_end":
        state = engine.drag_end(view, pointer_id)
        return {"viewport": _serialize_viewport(state)}
    x = _number(payload, "x")
    if event == "hover":
        return {"frequency_hz": engine.hover(view, x)}
    if event == "click":
        state = engine.click(view, x)
    elif event == "double_click":
        state = engine.double_click(view, x)
    elif event == "drag_begin":
        state = engine.drag_begin(view, x, pointer_id)
    elif event == "drag_move":
        state = engine.drag_move(view, x, pointer_id)
    else:
        state = engine.wheel(
            view,
            _number(payload, "delta_y"),
            x,
            shift=bool(payload.get("shift", False)),
            ctrl=bool(payload.get("ctrl", False)),
        )
    return {"viewport": _serialize_viewport(state)}


@router.get("/api/scanner")
async def get_scanner(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    return {"config": asdict(engine.scanner.config), "state": engine.scanner.state.value}


@router.post("/api/scanner")
async def update_scanner(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    payload = _object(payload)
    unknown = set(payload) - set(SCANNER_FIELDS) - {"enabled"}
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown scanner fields: {sorted(unknown)}")
    updates: dict[str, Any] = {key: _number(payload, key) for key in SCANNER_FIELDS if key in payload}
    if "interval_ms" in updates:
        updates["interval_ms"] = int(updates["interval_ms"])
    if "enabled" in payload:
        if not isinstance(payload["enabled"], bool):
            raise HTTPException(status_code=400, detail="'enabled' must be a boolean")
        updates["enabled"] = payload["enabled"]
    engine = _engine(request)
    cfg = engine.configure_scanner(**updates)
    return {"config": asdict(cfg), "state": engine.scanner.state.value}


@router.post("/api/radio/connect")
async def connect_radio(request: Request, payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
    engine = _engine(request)
    radio = uri = None
    if payload:
        radio = payload.get("radio")
        uri = payload.get("uri")
    if engine.connected:
        return {"ok": True, "status": _serialize_status(engine)}
    ok = engine.connect(radio=radio, uri=uri)
    return {
        "ok": ok,
        "status": _serialize_status(engine),
        "error": _serialize_error(engine.last_error),
    }


@router.post("/api/radio/disconnect")
async def disconnect_radio(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    engine.disconnect()
    return {"ok": True, "status": _serialize_status(engine)}


@router.post("/api/receive/start")
async def start_receiving(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    ok = engine.start_receiving()
    return {
        "ok": ok,
        "status": _serialize_status(engine),
        "error": _serialize_error(engine.last_error),
    }


@router.post("/api/receive/stop")
async def stop_receiving(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    engine.stop_receiving()
    return {"ok": True, "status": _serialize_status(engine)}


@router.get("/api/presets")
async def list_presets(request: Request) -> dict[str, Any]:
    return {"presets": [asdict(p) for p in _engine(request).presets()]}


@router.post("/api/presets/{index}/tune")
async def tune_preset(request: Request, index: int) -> dict[str, Any]:
    engine = _engine(request)
    if not 0 <= index < len(engine.presets()):
        raise HTTPException(status_code=404, detail="Unknown preset")
    state = engine.tune_preset(index)
    return {"viewport": _serialize_viewport(state), "status": _serialize_status(engine)}


@router.get("/api/bookmarks")
async def list_bookmarks(request: Request) -> dict[str, Any]:
    return {"bookmarks": [asdict(b) for b in _engine(request).bookmarks()]}


@router.post("/api/bookmarks/tune")
async def tune_bookmark(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    name = _object(payload).get("name")
    if not name:
        raise HTTPException(status_code=400, detail="Bookmark name is required")
    engine = _engine(request)
    try:
        state = engine.tune_bookmark(str(name))
    except KeyError:
        raise HTTPException(status_code=404, detail="Unknown bookmark")
    return {"viewport": _serialize_viewport(state), "mode": engine.demod_mode}


@router.get("/api/modes")
async def list_modes(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    return {
        "modes": dict(MODE_BANDWIDTH_HZ),
        "current": engine.demod_mode,
        "bandwidth_hz": engine.bandwidth(),
    }


@router.post("/api/mode")
async def set_mode(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    engine = _engine(request)
    try:
        mode = engine.set_demod_mode(str(_object(payload).get("mode", "")))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"mode": mode, "bandwidth_hz": engine.bandwidth()}


@router.post("/api/sample-rate/cycle")
async def cycle_sample_rate(request: Request) -> dict[str, Any]:
    return _serialize_viewport(_engine(request).cycle_sample_rate())
