"""WebSocket handler streaming engine frames to browser clients."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import numpy as np

from sdr_panadapter.engine import Engine
from sdr_panadapter.protocol import (
    BINARY_KIND_PLOT_TRACE,
    BINARY_KIND_WATERFALL_ROW,
    EngineErrorFrame,
    EngineFrame,
    EnginePlotFrame,
    EngineStatusFrame,
    EngineWaterfallFrame,
    engine_error_to_wire,
    engine_plot_meta_to_wire,
    engine_status_to_wire,
    engine_waterfall_meta_to_wire,
    make_payload_header,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class _ClientSession:
    websocket: WebSocket
    queue: asyncio.Queue[EngineFrame]
    session_id: uuid.UUID
    seq: int = 0
    dropped: int = 0

    def next_seq(self) -> int:
        self.seq += 1
        return self.seq


class _StreamHub:
    """Fan out engine frames to multiple WebSocket clients."""

    def __init__(self, engine: Engine, loop: asyncio.AbstractEventLoop) -> None:
        self._engine = engine
        self._loop = loop
        self._clients: list[_ClientSession] = []
        self._engine.subscribe(self.publish)

    def register(self, session: _ClientSession) -> None:
        self._clients.append(session)

    def unregister(self, session: _ClientSession) -> None:
        if session in self._clients:
            self._clients.remove(session)

    def publish(self, frame: EngineFrame) -> None:
        # Radio errors arrive on the reader thread, so always hop to the loop.
        self._loop.call_soon_threadsafe(self._enqueue_frame, frame)

    def _enqueue_frame(self, frame: EngineFrame) -> None:
        for session in list(self._clients):
            try:
                session.queue.put_nowait(frame)
            except asyncio.QueueFull:
                # Slow client: drop rather than block the others.
                session.dropped += 1
                if session.dropped % 100 == 1:
                    logger.warning("client %s is slow; %d frames dropped", session.session_id, session.dropped)


def _get_hub(websocket: WebSocket) -> _StreamHub:
    app = websocket.app
    hub = getattr(app.state, "ws_hub", None)
    if hub is None:
        hub = _StreamHub(app.state.engine, asyncio.get_running_loop())
        app.state.ws_hub = hub
    return hub


async def _send_plot(session: _ClientSession, frame: EnginePlotFrame) -> None:
    payload_id = uuid.uuid4() if frame.trace.size else None
    meta = engine_plot_meta_to_wire(
        frame,
        seq=session.next_seq(),
        session_id=session.session_id,
        payload_id=payload_id,
    )
    await session.websocket.send_json(meta)
    if payload_id is None:
        return
    payload = frame.trace.astype("<f4", copy=False).tobytes()
    header = make_payload_header(BINARY_KIND_PLOT_TRACE, payload_id, frame.trace.size)
    await session.websocket.send_bytes(header + payload)


async def _send_waterfall(session: _ClientSession, frame: EngineWaterfallFrame) -> None:
    payload_id = uuid.uuid4()
    meta = engine_waterfall_meta_to_wire(
        frame,
        seq=session.next_seq(),
        session_id=session.session_id,
        payload_id=payload_id,
    )
    await session.websocket.send_json(meta)
    row = np.ascontiguousarray(frame.row_rgb, dtype=np.uint8)
    header = make_payload_header(BINARY_KIND_WATERFALL_ROW, payload_id, row.size)
    await session.websocket.send_bytes(header + row.tobytes())


async def _send_frame(session: _ClientSession, frame: EngineFrame) -> None:
    if isinstance(frame, EngineStatusFrame):
        payload = engine_status_to_wire(frame, seq=session.next_seq(), session_id=session.session_id)
        await session.websocket.send_json(payload)
        return

    if isinstance(frame, EnginePlotFrame):
        await _send_plot(session, frame)
        return

    if isinstance(frame, EngineWaterfallFrame):
        await _send_waterfall(session, frame)
        return

    if isinstance(frame, EngineErrorFrame):
        payload = engine_error_to_wire(frame, seq=session.next_seq(), session_id=session.session_id)
        await session.websocket.send_json(payload)


async def _wait_closed(websocket: WebSocket) -> None:
    # Clients only listen; anything they send is ignored until they disconnect.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/stream")
async def stream(websocket: WebSocket) -> None:
    await websocket.accept()
    session = _ClientSession(
        websocket=websocket,
        queue=asyncio.Queue(maxsize=64),
        session_id=uuid.uuid4(),
    )
    engine: Engine = websocket.app.state.engine

    # Status goes out before the client joins the broadcast.
    await _send_frame(session, engine.status())
    if engine.last_error is not None:
        await _send_frame(session, engine.last_error)
    hub = _get_hub(websocket)
    hub.register(session)

    closed = asyncio.ensure_future(_wait_closed(websocket))
    try:
        while True:
            getter = asyncio.ensure_future(session.queue.get())
            done, _ = await asyncio.wait({getter, closed}, return_when=asyncio.FIRST_COMPLETED)
            if closed in done:
                getter.cancel()
                break
            await _send_frame(session, getter.result())
    except WebSocketDisconnect:
        pass
    finally:
        closed.cancel()
        hub.unregister(session)
