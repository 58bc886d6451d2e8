"""Engine event bus.

Collaborators (renderers, sound, network adapters) subscribe by name and are
called as ``handler(sender, **payload)``; the engine never depends on them.
"""

from typing import Callable, Dict

from blinker import Signal


class EventBus:
    """Simple event bus leveraging blinker Signal objects."""

    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn: Callable) -> None:
        sig = self._signals.setdefault(name, Signal(name))
        # Strong reference so lambdas and bound methods of short-lived objects stay connected
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn: Callable) -> None:
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, sender=None, **payload) -> None:
        sig = self._signals.get(name)
        if sig:
            sig.send(sender if sender is not None else self, **payload)


EVENT_STATE_CHANGED = "state_changed"  # payload: none
EVENT_LINE_CLEAR = "line_clear"        # payload: count=int, is_tetris=bool
EVENT_ROTATE = "rotate"                # payload: accepted=bool, direction="cw"|"ccw"
EVENT_GAME_OVER = "game_over"          # payload: lines_cleared=int
EVENT_PAUSE_CHANGED = "pause_changed"  # payload: is_paused=bool
EVENT_PIECE_LOCKED = "piece_locked"    # payload: piece=Piece
EVENT_PIECE_SPAWNED = "piece_spawned"  # payload: piece=Piece
EVENT_SPEED_CHANGED = "speed_changed"  # payload: interval_ms=int, level=int
EVENT_RESET = "reset"                  # payload: seed=int|None

ALL_EVENTS = (
    EVENT_STATE_CHANGED,
    EVENT_LINE_CLEAR,
    EVENT_ROTATE,
    EVENT_GAME_OVER,
    EVENT_PAUSE_CHANGED,
    EVENT_PIECE_LOCKED,
    EVENT_PIECE_SPAWNED,
    EVENT_SPEED_CHANGED,
    EVENT_RESET,
)
