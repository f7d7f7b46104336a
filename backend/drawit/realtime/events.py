from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..game.errors import InvalidPayload
from ..game.rooms import normalize_code


# Client -> server
ROOM_CREATE = "room:create"
ROOM_JOIN = "room:join"
ROOM_LEAVE = "room:leave"
ROOM_LIST = "room:list"
GAME_START = "game:start"
GAME_SELECT_WORD = "game:select_word"
DRAW_UPDATE = "draw:update"
GUESS_SUBMIT = "guess:submit"
CHAT_MESSAGE = "chat:message"
GAME_RESTART = "game:restart"

# Server -> client
ROOM_STATE = "room:state"
ROOM_DELETED = "room:deleted"
ROOM_ERROR = "room:error"
GAME_ERROR = "game:error"
GAME_WORD_OPTIONS = "game:word_options"
GAME_TICK = "game:tick"

MAX_NAME_LEN = 16
MAX_ROOM_NAME_LEN = 40
MAX_TEXT_LEN = 200


def _payload(data: Any) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidPayload("payload must be an object")
    return data


def _text(value: Any, max_len: int) -> str:
    if value is None:
        return ""
    if not isinstance(value, (str, int, float)):
        raise InvalidPayload("expected a string")
    return str(value).strip()[:max_len]


def validate_name(name: str) -> bool:
    n = (name or "").strip()
    if not n or len(n) > MAX_NAME_LEN:
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    return all(ord(ch) >= 32 for ch in n)


@dataclass(frozen=True)
class PlayerInfo:
    player_id: str | None
    name: str
    avatar: Any = None

    @classmethod
    def from_payload(cls, data: Any) -> PlayerInfo:
        payload = _payload(data)
        name = _text(payload.get("name"), 64)
        if not validate_name(name):
            raise InvalidPayload("invalid player name")
        player_id = _text(payload.get("id") or payload.get("playerId"), 64) or None
        return cls(player_id=player_id, name=name, avatar=payload.get("avatar"))


@dataclass(frozen=True)
class CreateRoomIntent:
    name: str
    is_private: bool = False
    password: str | None = None
    player: PlayerInfo | None = None

    @classmethod
    def from_payload(cls, data: Any) -> CreateRoomIntent:
        payload = _payload(data)
        name = _text(payload.get("name") or payload.get("roomName"), MAX_ROOM_NAME_LEN)
        if not name:
            raise InvalidPayload("room name is required")
        password = _text(payload.get("password"), 64) or None
        player = PlayerInfo.from_payload(payload["player"]) if payload.get("player") else None
        return cls(name=name, is_private=bool(payload.get("isPrivate")), password=password, player=player)


@dataclass(frozen=True)
class JoinRoomIntent:
    room_code: str
    player: PlayerInfo
    password: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> JoinRoomIntent:
        payload = _payload(data)
        room_code = normalize_code(_text(payload.get("roomCode"), 16))
        if not room_code:
            raise InvalidPayload("roomCode is required")
        # Accept both {"player": {...}} and flat {"name": ..., "playerId": ...}.
        player = PlayerInfo.from_payload(payload.get("player") or payload)
        password = _text(payload.get("password"), 64) or None
        return cls(room_code=room_code, player=player, password=password)


@dataclass(frozen=True)
class SelectWordIntent:
    word: str

    @classmethod
    def from_payload(cls, data: Any) -> SelectWordIntent:
        payload = _payload(data)
        raw = payload.get("word")
        if isinstance(raw, dict):
            raw = raw.get("word")
        word = _text(raw, 64)
        if not word:
            raise InvalidPayload("word is required")
        return cls(word=word)


@dataclass(frozen=True)
class DrawUpdateIntent:
    canvas_data: Any

    @classmethod
    def from_payload(cls, data: Any) -> DrawUpdateIntent:
        payload = _payload(data)
        if "canvasData" not in payload:
            raise InvalidPayload("canvasData is required")
        return cls(canvas_data=payload["canvasData"])


@dataclass(frozen=True)
class TextIntent:
    """A guess or a chat line."""

    text: str

    @classmethod
    def from_payload(cls, data: Any) -> TextIntent:
        payload = _payload(data)
        text = _text(payload.get("text"), MAX_TEXT_LEN)
        if not text:
            raise InvalidPayload("text is required")
        return cls(text=text)
