"""FastAPI WebSocket server for the Blockfall engine."""

import json
import os
import random
import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from blockfall_core.config import GameConfig
from blockfall_core.engine import Command, Engine, command_for_key
from blockfall_core.events import (
    EVENT_GAME_OVER,
    EVENT_LINE_CLEAR,
    EVENT_PAUSE_CHANGED,
    EVENT_PIECE_LOCKED,
    EVENT_PIECE_SPAWNED,
    EVENT_ROTATE,
    EVENT_SPEED_CHANGED,
    EVENT_STATE_CHANGED,
)
from blockfall_core.piece import Piece
from blockfall_core.scheduler import AsyncioScheduler, Scheduler
from blockfall_api.protocol import (
    HelloRequest,
    HelloResponse,
    ResetRequest,
    CommandRequest,
    KeyRequest,
    SubscribeRequest,
    ObservationResponse,
    EventResponse,
    ErrorResponse,
    ErrorCode,
    parse_message,
    to_dict,
)

app = FastAPI(title="Blockfall API", version="0.1.0")

# Enable CORS for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Vite default ports
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Engine events forwarded to clients as "event" messages
FORWARDED_EVENTS = (
    EVENT_LINE_CLEAR,
    EVENT_ROTATE,
    EVENT_GAME_OVER,
    EVENT_PAUSE_CHANGED,
    EVENT_PIECE_LOCKED,
    EVENT_PIECE_SPAWNED,
    EVENT_SPEED_CHANGED,
)


class GameNotInitialized(RuntimeError):
    """A game command arrived before the first reset."""


class GameSession:
    """Manages a single game session.

    Every outgoing message goes through ``outbox`` so that replies and
    engine events reach the client in the order they happened, and engine
    callbacks never have to await.
    """

    def __init__(
        self,
        websocket: Optional[WebSocket] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[GameConfig] = None,
    ):
        self.websocket = websocket
        self.scheduler = scheduler or AsyncioScheduler()
        self.config = config or GameConfig()
        self.engine: Optional[Engine] = None
        self.streaming = False
        self.closed = False
        self.outbox: asyncio.Queue = asyncio.Queue()

    @property
    def initialized(self) -> bool:
        return self.engine is not None

    def push(self, message: Any) -> None:
        """Queue a response dataclass or plain dict for sending."""
        if self.closed:
            return
        self.outbox.put_nowait(message if isinstance(message, dict) else to_dict(message))

    def reset(self, seed: Optional[int] = None) -> ObservationResponse:
        """Start a new game.

        Args:
            seed: Random seed (generates one if None)

        Returns:
            Initial observation response
        """
        if seed is None:
            seed = random.randint(0, 1_000_000)

        if self.engine is None:
            self.config.seed = seed
            self.engine = Engine(self.scheduler, config=self.config)
            self._subscribe(self.engine)
        else:
            self.engine.reset(seed)

        return ObservationResponse(
            type="obs",
            data=self.engine.get_snapshot().to_dict(),
            info={"event": "reset", "seed": seed},
        )

    def command(self, name: str) -> ObservationResponse:
        """Apply a player command.

        Args:
            name: Command name, e.g. "LEFT"

        Returns:
            Observation after the command

        Raises:
            GameNotInitialized: If no game was started yet
            ValueError: If the command is unknown
        """
        if self.engine is None:
            raise GameNotInitialized("Game not initialized. Send reset first.")

        try:
            command = Command[name]
        except KeyError:
            raise ValueError(f"Invalid command: {name}")

        self.engine.apply(command)
        return self._observation({"command": command.value})

    def key(self, key: str, pressed: bool) -> Optional[ObservationResponse]:
        """Apply a raw key event through the default key map.

        Returns:
            Observation, or None when the key is not bound
        """
        command = command_for_key(key, pressed)
        if command is None:
            return None
        return self.command(command.name)

    def set_streaming(self, enabled: bool) -> None:
        """Enable/disable streaming mode.

        Args:
            enabled: Whether to push an observation on every state change
        """
        self.streaming = enabled

    def handle_text(self, data: str) -> None:
        """Parse and handle one raw client message, queueing all replies."""
        if self.closed:
            return

        try:
            message = parse_message(json.loads(data))
        except json.JSONDecodeError as e:
            self.push(ErrorResponse(code=ErrorCode.INVALID_MESSAGE, message=f"Invalid JSON: {str(e)}"))
            return
        except ValueError as e:
            self.push(ErrorResponse(code=ErrorCode.INVALID_MESSAGE, message=str(e)))
            return

        try:
            self.handle(message)
        except GameNotInitialized as e:
            self.push(ErrorResponse(code=ErrorCode.GAME_NOT_INITIALIZED, message=str(e)))
        except ValueError as e:
            self.push(ErrorResponse(code=ErrorCode.INVALID_ACTION, message=str(e)))
        except Exception as e:
            logger.error(f"[Session] Error handling {type(message).__name__}: {e}", exc_info=True)
            self.push(ErrorResponse(code=ErrorCode.INVALID_MESSAGE, message=str(e)))

    def handle(self, message: Any) -> None:
        """Handle a parsed message."""
        if isinstance(message, HelloRequest):
            self.push(HelloResponse())

        elif isinstance(message, ResetRequest):
            self.push(self.reset(message.seed))

        elif isinstance(message, CommandRequest):
            self.push(self.command(message.command))

        elif isinstance(message, KeyRequest):
            response = self.key(message.key, message.pressed)
            if response is not None:
                self.push(response)

        elif isinstance(message, SubscribeRequest):
            self.set_streaming(message.stream)
            self.push({"type": "subscribe_ack", "streaming": self.streaming})

        else:
            raise ValueError(f"Unknown message type: {type(message)}")

    async def pump(self) -> None:
        """Send queued messages to the client until cancelled."""
        while True:
            message = await self.outbox.get()
            try:
                await self.websocket.send_text(json.dumps(message))
            except Exception as e:
                logger.warning(f"[Session] Failed to send (client may have disconnected): {e}")
                self.close()
                return

    def close(self) -> None:
        """Stop all timers owned by this session."""
        self.closed = True
        if self.engine is not None:
            self.engine.stop_fast_drop()
            self.scheduler.cancel(self.engine.gravity_handle)
        if isinstance(self.scheduler, AsyncioScheduler):
            self.scheduler.close()

    def _observation(self, info: Dict[str, Any]) -> ObservationResponse:
        return ObservationResponse(
            type="obs",
            data=self.engine.get_snapshot().to_dict(),
            info=info,
        )

    def _subscribe(self, engine: Engine) -> None:
        for name in FORWARDED_EVENTS:
            engine.bus.subscribe(name, self._make_forwarder(name))
        engine.bus.subscribe(EVENT_STATE_CHANGED, self._on_state_changed)

    def _make_forwarder(self, name: str):
        def forward(sender, **payload):
            self.push(EventResponse(name=name, payload=_jsonable(payload)))
        return forward

    def _on_state_changed(self, sender, **payload) -> None:
        if self.streaming:
            self.push(self._observation({"event": "state_changed"}))


def _jsonable(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.to_dict() if isinstance(value, Piece) else value
        for key, value in payload.items()
    }


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "blockfall-api", "version": "0.1.0"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for game communication."""
    await websocket.accept()
    try:
        config = GameConfig.from_env()
    except ValueError as e:
        logger.error(f"[WS] Invalid configuration: {e}")
        error = ErrorResponse(code=ErrorCode.INVALID_CONFIG, message=str(e))
        await websocket.send_text(json.dumps(to_dict(error)))
        await websocket.close(code=1011)
        return

    session = GameSession(websocket, config=config)
    sender = asyncio.create_task(session.pump())
    logger.info("[WS] Session opened")

    try:
        while True:
            data = await websocket.receive_text()
            session.handle_text(data)

    except WebSocketDisconnect:
        logger.info("[WS] Client disconnected")
    finally:
        session.close()
        sender.cancel()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("BLOCKFALL_HOST", "0.0.0.0"),
        port=int(os.getenv("BLOCKFALL_PORT", "8000")),
    )
