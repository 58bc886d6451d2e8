"""Protocol data classes for WebSocket communication."""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Literal
from enum import Enum

PROTOCOL_VERSION = "b1.0.0"


class MessageType(str, Enum):
    """WebSocket message types."""
    HELLO = "hello"
    RESET = "reset"
    COMMAND = "command"
    KEY = "key"
    SUBSCRIBE = "subscribe"
    OBS = "obs"
    EVENT = "event"
    ERROR = "error"


@dataclass
class HelloRequest:
    """Client hello message."""
    type: Literal["hello"] = "hello"
    version: str = PROTOCOL_VERSION


@dataclass
class HelloResponse:
    """Server hello response."""
    type: Literal["hello"] = "hello"
    version: str = PROTOCOL_VERSION
    server: str = "blockfall-py"


@dataclass
class ResetRequest:
    """Request to start a new game."""
    seed: Optional[int] = None
    type: Literal["reset"] = "reset"


@dataclass
class CommandRequest:
    """Request to apply a player command."""
    command: str  # LEFT, RIGHT, CW, CCW, DROP_START, DROP_STOP, PAUSE, RESET
    type: Literal["command"] = "command"


@dataclass
class KeyRequest:
    """Raw key press or release, translated through the default key map."""
    key: str
    pressed: bool = True
    type: Literal["key"] = "key"


@dataclass
class SubscribeRequest:
    """Request to subscribe to state updates."""
    stream: bool = True
    type: Literal["subscribe"] = "subscribe"


@dataclass
class ObservationResponse:
    """Engine snapshot."""
    data: Dict[str, Any]  # Snapshot dict from Snapshot.to_dict()
    info: Dict[str, Any]
    type: Literal["obs"] = "obs"


@dataclass
class EventResponse:
    """Engine event forwarded to the client."""
    name: str
    payload: Dict[str, Any]
    type: Literal["event"] = "event"


@dataclass
class ErrorResponse:
    """Error response."""
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    type: Literal["error"] = "error"


class ErrorCode:
    """Standard error codes."""
    INVALID_MESSAGE = "INVALID_MESSAGE"
    INVALID_ACTION = "INVALID_ACTION"
    GAME_NOT_INITIALIZED = "GAME_NOT_INITIALIZED"
    INVALID_CONFIG = "INVALID_CONFIG"
    VERSION_MISMATCH = "VERSION_MISMATCH"


# Expected JSON types of client-supplied fields
FIELD_TYPES = {
    "version": (str,),
    "seed": (int, type(None)),
    "command": (str,),
    "key": (str,),
    "pressed": (bool,),
    "stream": (bool,),
}


def _check_field_types(data: Dict[str, Any]) -> None:
    for name, value in data.items():
        expected = FIELD_TYPES.get(name)
        if expected is None:
            continue
        # bool is an int subclass; a seed of true/false is rejected
        if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
            raise ValueError(f"Invalid type for field '{name}': {type(value).__name__}")


def parse_message(data: Dict[str, Any]) -> Any:
    """Parse incoming WebSocket message.

    Args:
        data: JSON message dict

    Returns:
        Parsed message object

    Raises:
        ValueError: If message type, fields or field types are invalid
    """
    if not isinstance(data, dict):
        raise ValueError("Message must be a JSON object")

    msg_type = data.get("type")
    _check_field_types(data)

    try:
        if msg_type == MessageType.HELLO:
            return HelloRequest(**data)
        elif msg_type == MessageType.RESET:
            return ResetRequest(**data)
        elif msg_type == MessageType.COMMAND:
            return CommandRequest(**data)
        elif msg_type == MessageType.KEY:
            return KeyRequest(**data)
        elif msg_type == MessageType.SUBSCRIBE:
            return SubscribeRequest(**data)
    except TypeError as e:
        raise ValueError(f"Invalid fields for {msg_type}: {e}")

    raise ValueError(f"Unknown message type: {msg_type}")


def to_dict(obj: Any) -> Dict[str, Any]:
    """Convert dataclass to dict for JSON serialization.

    Args:
        obj: Dataclass instance

    Returns:
        Dictionary representation
    """
    return asdict(obj)
