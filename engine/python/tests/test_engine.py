"""Tests for the game engine."""

from blockfall_core.config import GameConfig
from blockfall_core.engine import Command, Engine, Phase, command_for_key
from blockfall_core.events import (
    ALL_EVENTS,
    EVENT_GAME_OVER,
    EVENT_LINE_CLEAR,
    EVENT_PAUSE_CHANGED,
    EVENT_PIECE_LOCKED,
    EVENT_ROTATE,
    EVENT_SPEED_CHANGED,
    EVENT_STATE_CHANGED,
)
from blockfall_core.factory import PieceFactory
from blockfall_core.piece import PIECE_COLORS, PIECE_KINDS
from blockfall_core.scheduler import ManualScheduler


class ScriptedSource:
    """Deals the given kinds in a loop."""

    def __init__(self, kinds):
        self.kinds = list(kinds)
        self.index = 0

    def next_int(self, bound):
        kind = self.kinds[self.index % len(self.kinds)]
        self.index += 1
        return PIECE_KINDS.index(kind)

    def reset(self, seed):
        self.index = 0


class Recorder:
    """Collects every engine event."""

    def __init__(self, bus):
        self.events = []
        for name in ALL_EVENTS:
            bus.subscribe(name, self._make_handler(name))

    def _make_handler(self, name):
        def handler(sender, **payload):
            self.events.append((name, payload))
        return handler

    def named(self, name):
        return [payload for n, payload in self.events if n == name]


def make_engine(kinds=("I",), **config):
    scheduler = ManualScheduler()
    engine = Engine(
        scheduler,
        config=GameConfig(**config),
        factory=PieceFactory(ScriptedSource(kinds)),
    )
    return engine, scheduler, Recorder(engine.bus)


def fill_row(board, y, skip=(), value=1):
    for x in range(board.width):
        if x not in skip:
            board.set(x, y, value)


def drop(engine):
    """Apply gravity until the piece locks; return how far it fell."""
    moves = 0
    while engine.gravity_tick():
        moves += 1
    return moves


def test_initial_state():
    """Test a new engine starts running with a piece on an empty board."""
    engine, scheduler, _ = make_engine()

    assert engine.phase == Phase.RUNNING
    assert engine.board.is_empty()
    assert engine.current_piece.kind == "I"
    assert (engine.current_piece.x, engine.current_piece.y) == (3, 0)
    assert scheduler.active_handles() == [engine.gravity_handle]
    assert scheduler.interval_of(engine.gravity_handle) == 500


def test_i_piece_moves_right_until_wall():
    """Test the I-piece stops at the right wall."""
    engine, _, recorder = make_engine(kinds=("I",))

    for _ in range(3):
        assert engine.move_right()
    assert engine.current_piece.x == 6

    assert not engine.move_right(), "Column 10 is out of bounds"
    assert engine.current_piece.x == 6
    assert len(recorder.named(EVENT_STATE_CHANGED)) == 4, "Rejected moves still redraw"


def test_move_left_at_wall_keeps_anchor():
    """Test moving left at column 0 is rejected."""
    engine, _, _ = make_engine(kinds=("O",))

    while engine.move_left():
        pass

    assert engine.current_piece.x == 0
    assert not engine.move_left()
    assert engine.current_piece.x == 0


def test_gravity_ticks_lock_piece():
    """Test dropping a piece until it collides locks it into the board."""
    engine, scheduler, recorder = make_engine(kinds=("I",))

    scheduler.advance(500 * 19)
    assert engine.current_piece.y == 19, "Piece rests on the floor"
    assert engine.board.is_empty()

    scheduler.advance(500)

    color = PIECE_COLORS["I"]
    assert [engine.board.get(x, 19) for x in range(3, 7)] == [color] * 4
    assert engine.board.get(2, 19) == 0
    assert (engine.current_piece.x, engine.current_piece.y) == (3, 0), "New piece is active"
    assert len(recorder.named(EVENT_PIECE_LOCKED)) == 1
    assert recorder.named(EVENT_LINE_CLEAR) == []


def test_o_piece_completes_bottom_row():
    """Test an O-piece filling the gap in the bottom row clears it."""
    engine, _, recorder = make_engine(kinds=("O",))
    fill_row(engine.board, 19, skip=(4, 5))

    assert drop(engine) == 18

    assert recorder.named(EVENT_LINE_CLEAR) == [{"count": 1, "is_tetris": False}]
    assert engine.lines_cleared == 1
    color = PIECE_COLORS["O"]
    assert engine.board.rows[19] == [0, 0, 0, 0, color, color, 0, 0, 0, 0], "Top of the O drops down"
    assert all(cell == 0 for row in engine.board.rows[:19] for cell in row)


def test_vertical_i_clears_tetris():
    """Test clearing four rows at once is reported as a tetris."""
    engine, _, recorder = make_engine(kinds=("I",))
    assert engine.rotate_cw()
    assert engine.current_piece.x == 3
    for y in range(16, 20):
        fill_row(engine.board, y, skip=(3,))

    drop(engine)

    assert recorder.named(EVENT_LINE_CLEAR) == [{"count": 4, "is_tetris": True}]
    assert engine.board.is_empty()


def test_line_clear_speeds_up_gravity():
    """Test cleared rows shorten and reschedule the gravity interval."""
    engine, scheduler, recorder = make_engine(kinds=("O",))
    old_handle = engine.gravity_handle
    fill_row(engine.board, 19, skip=(4, 5))

    drop(engine)

    assert engine.gravity_interval_ms == 490
    assert engine.speed_level == 1
    assert not scheduler.is_active(old_handle)
    assert scheduler.interval_of(engine.gravity_handle) == 490
    assert recorder.named(EVENT_SPEED_CHANGED) == [{"interval_ms": 490, "level": 1}]


def test_rotation_rejected_at_wall():
    """Test a rotation that would leave the board is discarded in place."""
    engine, _, recorder = make_engine(kinds=("I",))
    assert engine.rotate_cw()
    while engine.move_right():
        pass
    assert engine.current_piece.x == 9
    before = engine.current_piece

    assert not engine.rotate_ccw()

    assert engine.current_piece == before
    assert recorder.named(EVENT_ROTATE) == [
        {"accepted": True, "direction": "cw"},
        {"accepted": False, "direction": "ccw"},
    ]


def test_rotation_rejected_by_locked_cells():
    """Test there are no kicks when rotation hits the stack."""
    engine, _, _ = make_engine(kinds=("T",))
    engine.board.set(5, 2, 1)

    assert not engine.rotate_cw()
    assert engine.current_piece.shape == [[1, 1, 1], [0, 1, 0]]


def test_game_over_on_spawn_collision():
    """Test a blocked spawn ends the game exactly once."""
    engine, scheduler, recorder = make_engine(kinds=("I",))
    for x in range(3, 7):
        engine.board.set(x, 1, 2)

    assert not engine.gravity_tick()

    assert engine.phase == Phase.GAME_OVER
    assert len(recorder.named(EVENT_GAME_OVER)) == 1
    assert scheduler.active_handles() == [], "All signals stop on game over"

    board_before = engine.board.to_list()
    piece_before = engine.current_piece
    assert not engine.gravity_tick()
    assert not engine.soft_drop_tick()
    assert engine.lock() == 0
    assert not engine.move_left()
    assert not engine.rotate_cw()
    engine.start_fast_drop()
    assert engine.toggle_pause() == Phase.GAME_OVER

    assert engine.board.to_list() == board_before
    assert engine.current_piece == piece_before
    assert scheduler.active_handles() == []
    assert len(recorder.named(EVENT_GAME_OVER)) == 1


def test_pause_suspends_gravity():
    """Test pausing stops ticks and ignores commands until resumed."""
    engine, scheduler, recorder = make_engine(kinds=("T",))
    scheduler.advance(500)
    assert engine.current_piece.y == 1

    assert engine.toggle_pause() == Phase.PAUSED
    assert scheduler.active_handles() == []

    scheduler.advance(5000)
    assert not engine.move_left()
    assert not engine.rotate_cw()
    assert not engine.gravity_tick()
    engine.start_fast_drop()
    assert engine.fast_drop_handle is None
    assert engine.current_piece.y == 1
    assert engine.current_piece.x == 4

    assert engine.toggle_pause() == Phase.RUNNING
    scheduler.advance(500)
    assert engine.current_piece.y == 2
    assert recorder.named(EVENT_PAUSE_CHANGED) == [{"is_paused": True}, {"is_paused": False}]


def test_pause_cancels_fast_drop():
    """Test fast drop does not resume silently after unpausing."""
    engine, scheduler, _ = make_engine()
    engine.start_fast_drop()
    fast = engine.fast_drop_handle

    engine.toggle_pause()
    engine.toggle_pause()

    assert engine.fast_drop_handle is None
    assert not scheduler.is_active(fast)
    assert scheduler.active_handles() == [engine.gravity_handle]


def test_fast_drop_ticks():
    """Test fast drop moves the piece at its own interval."""
    engine, scheduler, _ = make_engine(kinds=("T",))

    engine.start_fast_drop()
    engine.start_fast_drop()
    assert len(scheduler.active_handles()) == 2, "Second start does not add a timer"

    scheduler.advance(300)
    assert engine.current_piece.y == 3

    engine.stop_fast_drop()
    scheduler.advance(100)
    assert engine.current_piece.y == 3, "No stale fast-drop tick after stop"
    scheduler.advance(100)
    assert engine.current_piece.y == 4, "Gravity still runs"


def test_fast_drop_locks_and_stops_cleanly():
    """Test a released fast drop cannot move the next piece."""
    engine, scheduler, _ = make_engine(kinds=("O",), base_interval_ms=10000)

    engine.start_fast_drop()
    scheduler.advance(100 * 19)
    assert engine.board.get(4, 19) == PIECE_COLORS["O"]
    assert engine.current_piece.y == 0

    engine.stop_fast_drop()
    scheduler.advance(100)
    assert engine.current_piece.y == 0


def test_reset_starts_new_game():
    """Test reset clears the board and restarts gravity."""
    engine, scheduler, _ = make_engine(kinds=("I",))
    for x in range(3, 7):
        engine.board.set(x, 1, 2)
    engine.gravity_tick()
    assert engine.phase == Phase.GAME_OVER

    snapshot = engine.reset(seed=3)

    assert snapshot.phase == Phase.RUNNING
    assert snapshot.board.is_empty()
    assert snapshot.lines_cleared == 0
    assert snapshot.gravity_interval_ms == 500
    assert scheduler.active_handles() == [engine.gravity_handle]


class NextIntOnlySource:
    """Minimal random source without reset()."""

    def next_int(self, bound):
        return PIECE_KINDS.index("O")


def test_reset_with_seed_and_minimal_source():
    """Test a seeded reset works with a source that cannot be reseeded."""
    scheduler = ManualScheduler()
    engine = Engine(scheduler, factory=PieceFactory(NextIntOnlySource()))

    snapshot = engine.reset(seed=5)

    assert snapshot.phase == Phase.RUNNING
    assert engine.current_piece.kind == "O"
    assert scheduler.active_handles() == [engine.gravity_handle]


def test_engines_are_independent():
    """Test several engines can run side by side."""
    first, first_scheduler, _ = make_engine(kinds=("I",))
    second, _, _ = make_engine(kinds=("O",))

    first.move_right()
    first_scheduler.advance(500)

    assert (first.current_piece.x, first.current_piece.y) == (4, 1)
    assert (second.current_piece.x, second.current_piece.y) == (4, 0)


def test_apply_dispatches_commands():
    """Test the command enum routes to engine methods."""
    engine, _, _ = make_engine(kinds=("T",))

    engine.apply(Command.LEFT)
    assert engine.current_piece.x == 3
    engine.apply(Command.CW)
    assert engine.current_piece.width == 2
    engine.apply(Command.DROP_START)
    assert engine.fast_drop_handle is not None
    engine.apply(Command.DROP_STOP)
    assert engine.fast_drop_handle is None
    engine.apply(Command.PAUSE)
    assert engine.phase == Phase.PAUSED


def test_key_bindings():
    """Test default key map."""
    assert command_for_key("a") == Command.LEFT
    assert command_for_key("e") == Command.CW
    assert command_for_key("q") == Command.CCW
    assert command_for_key("s", pressed=True) == Command.DROP_START
    assert command_for_key("s", pressed=False) == Command.DROP_STOP
    assert command_for_key("a", pressed=False) is None
    assert command_for_key("x") is None


def test_snapshot_is_a_copy():
    """Test snapshots do not alias engine state."""
    engine, _, _ = make_engine(kinds=("T",))
    snapshot = engine.get_snapshot()

    snapshot.board.set(0, 0, 5)
    assert engine.board.get(0, 0) == 0

    data = snapshot.to_dict()
    assert data["phase"] == "RUNNING"
    assert data["active_piece"]["type"] == "T"
    assert data["board"]["w"] == 10 and data["board"]["h"] == 20
    assert data["speed"] == {"level": 0, "multiplier": 1.0, "interval_ms": 500}
    assert data["lines_cleared"] == 0
