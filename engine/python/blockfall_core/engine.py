"""Game engine: board, active piece, and the rules that move between them.

The engine reacts to commands and scheduler ticks; it owns no timing of its
own. Outcomes are reported to collaborators through the event bus.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from blockfall_core.board import Board
from blockfall_core.config import GameConfig
from blockfall_core.events import (
    EventBus,
    EVENT_GAME_OVER,
    EVENT_LINE_CLEAR,
    EVENT_PAUSE_CHANGED,
    EVENT_PIECE_LOCKED,
    EVENT_PIECE_SPAWNED,
    EVENT_RESET,
    EVENT_ROTATE,
    EVENT_SPEED_CHANGED,
    EVENT_STATE_CHANGED,
)
from blockfall_core.factory import PieceFactory
from blockfall_core.piece import Piece
from blockfall_core.rng import RandomSource
from blockfall_core.rules import is_tetris
from blockfall_core.scheduler import Scheduler

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Top-level engine state."""
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    GAME_OVER = "GAME_OVER"


class Command(Enum):
    """Player commands accepted by Engine.apply()."""
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    CW = "CW"                  # Clockwise rotation
    CCW = "CCW"                # Counter-clockwise rotation
    DROP_START = "DROP_START"  # Fast drop held
    DROP_STOP = "DROP_STOP"    # Fast drop released
    PAUSE = "PAUSE"            # Toggle pause
    RESET = "RESET"


# Default key bindings for input adapters: key -> (on press, on release)
KEY_BINDINGS: Dict[str, tuple] = {
    "a": (Command.LEFT, None),
    "d": (Command.RIGHT, None),
    "s": (Command.DROP_START, Command.DROP_STOP),
    "q": (Command.CCW, None),
    "e": (Command.CW, None),
    "Escape": (Command.PAUSE, None),
}


def command_for_key(key: str, pressed: bool = True) -> Optional[Command]:
    """Translate a key press or release into a command.

    Args:
        key: Key name as reported by the input device
        pressed: True for key down, False for key up

    Returns:
        Command to apply, or None if the key does nothing
    """
    binding = KEY_BINDINGS.get(key)
    if binding is None:
        return None
    return binding[0] if pressed else binding[1]


@dataclass
class Snapshot:
    """Read-only copy of the engine state for rendering."""
    board: Board
    active_piece: Piece
    phase: Phase
    speed_level: int
    speed_multiplier: float
    gravity_interval_ms: int
    lines_cleared: int
    fast_drop: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert snapshot to dictionary for serialization."""
        return {
            "board": {
                "w": self.board.width,
                "h": self.board.height,
                "cells": self.board.to_list(),
            },
            "active_piece": self.active_piece.to_dict(),
            "phase": self.phase.value,
            "speed": {
                "level": self.speed_level,
                "multiplier": round(self.speed_multiplier, 3),
                "interval_ms": self.gravity_interval_ms,
            },
            "lines_cleared": self.lines_cleared,
            "fast_drop": self.fast_drop,
        }


class Engine:
    """Falling-block game engine."""

    def __init__(
        self,
        scheduler: Scheduler,
        config: Optional[GameConfig] = None,
        factory: Optional[PieceFactory] = None,
        bus: Optional[EventBus] = None,
    ):
        """Initialize the engine and start a game.

        Args:
            scheduler: Source of gravity and fast-drop ticks
            config: Board size and timing; defaults to GameConfig()
            factory: Piece source; seeded from config.seed when None
            bus: Event bus for collaborators; a private one when None
        """
        self.config = config or GameConfig()
        self.scheduler = scheduler
        self.speed = self.config.speed_rules()
        self.factory = factory or PieceFactory(
            RandomSource(self.config.seed), board_width=self.config.width
        )
        self.bus = bus or EventBus()

        self.board = Board(self.config.width, self.config.height)
        self.current_piece: Piece = self.factory.next()
        self.phase = Phase.RUNNING
        self.lines_cleared = 0

        self.gravity_handle: Optional[int] = None
        self.fast_drop_handle: Optional[int] = None
        self.gravity_interval_ms = self.speed.interval_for(0)

        self._schedule_gravity()

    @property
    def speed_level(self) -> int:
        return self.speed.level_for(self.lines_cleared)

    @property
    def running(self) -> bool:
        return self.phase == Phase.RUNNING

    def reset(self, seed: Optional[int] = None) -> Snapshot:
        """Start a new game on an empty board.

        Args:
            seed: Reseed the piece source first when given and the source
                supports reset(seed)

        Returns:
            Snapshot of the fresh game
        """
        self._cancel_signals()
        # Sources that only provide next_int(bound) cannot be reseeded
        reseed = getattr(self.factory.rng, "reset", None)
        if seed is not None and reseed is not None:
            reseed(seed)

        self.board = Board(self.config.width, self.config.height)
        self.lines_cleared = 0
        self.gravity_interval_ms = self.speed.interval_for(0)
        self.current_piece = self.factory.next()
        self.phase = Phase.RUNNING
        self._schedule_gravity()

        logger.info(f"[Engine] Reset: seed={seed}, first piece={self.current_piece.kind}")
        self.bus.emit(EVENT_RESET, sender=self, seed=seed)
        self._notify()
        return self.get_snapshot()

    def get_snapshot(self) -> Snapshot:
        return Snapshot(
            board=self.board.copy(),
            active_piece=self.current_piece.copy(),
            phase=self.phase,
            speed_level=self.speed_level,
            speed_multiplier=self.speed.multiplier_for(self.lines_cleared),
            gravity_interval_ms=self.gravity_interval_ms,
            lines_cleared=self.lines_cleared,
            fast_drop=self.fast_drop_handle is not None,
        )

    def apply(self, command: Command) -> None:
        """Dispatch a player command."""
        if command == Command.LEFT:
            self.move_left()
        elif command == Command.RIGHT:
            self.move_right()
        elif command == Command.CW:
            self.rotate_cw()
        elif command == Command.CCW:
            self.rotate_ccw()
        elif command == Command.DROP_START:
            self.start_fast_drop()
        elif command == Command.DROP_STOP:
            self.stop_fast_drop()
        elif command == Command.PAUSE:
            self.toggle_pause()
        elif command == Command.RESET:
            self.reset()

    # ----- Movement -----

    def move_left(self) -> bool:
        return self._try_shift(-1)

    def move_right(self) -> bool:
        return self._try_shift(1)

    def gravity_tick(self) -> bool:
        """Handle one gravity tick.

        Returns:
            True if the piece moved down, False if it locked or was ignored
        """
        return self._step_down()

    def soft_drop_tick(self) -> bool:
        """Handle one fast-drop tick; same rules as gravity."""
        return self._step_down()

    def _try_shift(self, dx: int) -> bool:
        """Try to move the current piece sideways.

        Args:
            dx: Change in x

        Returns:
            True if move succeeded
        """
        if not self.running:
            return False

        moved = self.current_piece.move(dx, 0)
        ok = not self.board.collides(moved)
        if ok:
            self.current_piece = moved
        # Attempted moves always redraw, even when rejected
        self._notify()
        return ok

    def _step_down(self) -> bool:
        if not self.running:
            return False

        moved = self.current_piece.move(0, 1)  # Move DOWN (increasing y)
        if self.board.collides(moved):
            self.lock()
            self._notify()
            return False

        self.current_piece = moved
        self._notify()
        return True

    # ----- Rotation -----

    def rotate_cw(self) -> bool:
        return self._try_rotate(clockwise=True)

    def rotate_ccw(self) -> bool:
        return self._try_rotate(clockwise=False)

    def _try_rotate(self, clockwise: bool) -> bool:
        """Try to rotate the current piece in place.

        There are no kicks: a rotation that collides at the current anchor is
        rejected.

        Args:
            clockwise: Rotation direction

        Returns:
            True if rotation succeeded
        """
        if not self.running:
            return False

        rotated = self.current_piece.rotate(clockwise)
        accepted = not self.board.collides(rotated)
        if accepted:
            self.current_piece = rotated

        self.bus.emit(
            EVENT_ROTATE,
            sender=self,
            accepted=accepted,
            direction="cw" if clockwise else "ccw",
        )
        self._notify()
        return accepted

    # ----- Locking -----

    def lock(self) -> int:
        """Lock the current piece, clear rows, and spawn the next piece.

        Returns:
            Number of rows cleared
        """
        if not self.running:
            return 0

        locked = self.current_piece
        self.board.merge_piece(locked)
        self.bus.emit(EVENT_PIECE_LOCKED, sender=self, piece=locked.copy())

        cleared = self.board.clear_full_rows()
        logger.debug(f"[Engine] Locked {locked}, cleared={cleared}")
        if cleared > 0:
            self.lines_cleared += cleared
            self.bus.emit(
                EVENT_LINE_CLEAR, sender=self, count=cleared, is_tetris=is_tetris(cleared)
            )
            self._update_speed()

        self.current_piece = self.factory.next()
        if self.board.collides(self.current_piece):
            self._game_over()
        else:
            self.bus.emit(EVENT_PIECE_SPAWNED, sender=self, piece=self.current_piece.copy())

        return cleared

    def _game_over(self) -> None:
        self.phase = Phase.GAME_OVER
        self._cancel_signals()
        logger.info(f"[Engine] Game over: lines={self.lines_cleared}")
        self.bus.emit(EVENT_GAME_OVER, sender=self, lines_cleared=self.lines_cleared)

    # ----- Timing -----

    def start_fast_drop(self) -> None:
        """Begin fast-drop ticks; no effect if already active or not running."""
        if not self.running or self.fast_drop_handle is not None:
            return
        self.fast_drop_handle = self.scheduler.schedule_repeating(
            self.config.fast_drop_interval_ms, self.soft_drop_tick
        )
        self._notify()

    def stop_fast_drop(self) -> None:
        """End fast-drop ticks. Safe to call in any phase."""
        if self.fast_drop_handle is None:
            return
        self.scheduler.cancel(self.fast_drop_handle)
        self.fast_drop_handle = None
        self._notify()

    def toggle_pause(self) -> Phase:
        """Switch between running and paused.

        Pausing suspends gravity and drops any held fast drop, so neither
        resumes silently. Game over is unaffected.

        Returns:
            Phase after the toggle
        """
        if self.phase == Phase.GAME_OVER:
            return self.phase

        if self.phase == Phase.RUNNING:
            self.phase = Phase.PAUSED
            self._cancel_signals()
        else:
            self.phase = Phase.RUNNING
            self._schedule_gravity()

        paused = self.phase == Phase.PAUSED
        logger.debug(f"[Engine] Paused={paused}")
        self.bus.emit(EVENT_PAUSE_CHANGED, sender=self, is_paused=paused)
        self._notify()
        return self.phase

    def _update_speed(self) -> None:
        interval = self.speed.interval_for(self.lines_cleared)
        if interval == self.gravity_interval_ms:
            return
        self.gravity_interval_ms = interval
        self._schedule_gravity()
        logger.debug(f"[Engine] Gravity interval now {interval}ms")
        self.bus.emit(
            EVENT_SPEED_CHANGED, sender=self, interval_ms=interval, level=self.speed_level
        )

    def _schedule_gravity(self) -> None:
        self.scheduler.cancel(self.gravity_handle)
        self.gravity_handle = self.scheduler.schedule_repeating(
            self.gravity_interval_ms, self.gravity_tick
        )

    def _cancel_signals(self) -> None:
        self.scheduler.cancel(self.gravity_handle)
        self.scheduler.cancel(self.fast_drop_handle)
        self.gravity_handle = None
        self.fast_drop_handle = None

    def _notify(self) -> None:
        self.bus.emit(EVENT_STATE_CHANGED, sender=self)
