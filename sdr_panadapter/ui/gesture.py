"""Press, drag and click disambiguation for one canvas.

Kept free of Qt so the canvas event handlers stay thin and the gesture rules
can be exercised against an Engine directly.
"""

from __future__ import annotations

from typing import Optional

from sdr_panadapter.engine import Engine
from sdr_panadapter.render_loop import View


# Pixels the pointer may wander before a press counts as a drag.
CLICK_SLOP_PX = 3


class PointerGesture:
    """Tracks one left-button gesture on a view."""

    def __init__(self, engine: Engine, view: View):
        self.engine = engine
        self.view = view
        self.press_x: Optional[float] = None
        self.dragging = False

    @property
    def active(self) -> bool:
        return self.press_x is not None

    def press(self, x: float) -> None:
        self.press_x = float(x)
        self.dragging = False
        self.engine.drag_begin(self.view, self.press_x)

    def move(self, x: float) -> None:
        if self.press_x is None:
            return
        if abs(float(x) - self.press_x) > CLICK_SLOP_PX:
            self.dragging = True
        if self.dragging:
            self.engine.drag_move(self.view, float(x))

    def release(self, x: float) -> None:
        if self.press_x is None:
            return
        self.engine.drag_end(self.view)
        if not self.dragging:
            self.engine.click(self.view, float(x))
        self._reset()

    def leave(self) -> None:
        """Pointer left the canvas: end any drag without tuning to the exit point."""
        if self.press_x is None:
            return
        self.engine.drag_end(self.view)
        self._reset()

    def _reset(self) -> None:
        self.press_x = None
        self.dragging = False
