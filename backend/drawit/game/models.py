from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal


RoomStatus = Literal["WAITING", "PLAYING"]

GamePhase = Literal[
    "ROOM_LOBBY",
    "ROUND_START",
    "TURN_START",
    "WORD_SELECTION",
    "DRAWING",
    "TURN_END",
    "ROUND_END",
    "GAME_OVER",
]

WordCategory = Literal["ACTION", "THING", "PLACE"]

# Phases in which current_player_index must point at a live member.
TURN_PHASES: tuple[str, ...] = ("TURN_START", "WORD_SELECTION", "DRAWING", "TURN_END")

SYSTEM_PLAYER_ID = "system"
SYSTEM_PLAYER_NAME = "Host"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Player:
    id: str
    name: str
    avatar: Any = None
    score: int = 0
    has_guessed_correctly: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar,
            "score": self.score,
            "hasGuessedCorrectly": self.has_guessed_correctly,
        }


@dataclass
class Room:
    code: str
    name: str
    is_private: bool = False
    password: str | None = None
    host_id: str | None = None
    players: list[Player] = field(default_factory=list)
    max_players: int = 8
    status: RoomStatus = "WAITING"
    created_at_ms: int = field(default_factory=now_ms)

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def index_of(self, player_id: str) -> int | None:
        for idx, p in enumerate(self.players):
            if p.id == player_id:
                return idx
        return None

    def summary(self) -> dict:
        # Never includes the password.
        return {
            "code": self.code,
            "name": self.name,
            "isPrivate": self.is_private,
            "playerCount": len(self.players),
            "maxPlayers": self.max_players,
            "status": self.status,
            "hostId": self.host_id,
        }


@dataclass(frozen=True)
class WordOption:
    word: str
    category: WordCategory

    def to_dict(self) -> dict:
        return {"word": self.word, "category": self.category}


@dataclass
class ChatMessage:
    player_id: str
    player_name: str
    text: str
    is_system: bool = False
    is_correct_guess: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: int = field(default_factory=now_ms)

    @classmethod
    def system(cls, text: str) -> ChatMessage:
        return cls(player_id=SYSTEM_PLAYER_ID, player_name=SYSTEM_PLAYER_NAME, text=text, is_system=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "playerId": self.player_id,
            "playerName": self.player_name,
            "text": self.text,
            "isSystem": self.is_system,
            "isCorrectGuess": self.is_correct_guess,
            "timestamp": self.timestamp,
        }


@dataclass
class GameState:
    total_rounds: int = 3
    phase: GamePhase = "ROOM_LOBBY"
    current_round: int = 1
    current_player_index: int = 0
    next_player_index: int = 0
    current_word: WordOption | None = None
    word_options: list[WordOption] = field(default_factory=list)
    time_left: int = 0
    messages: list[ChatMessage] = field(default_factory=list)
    canvas_data: Any = None
    used_words: list[str] = field(default_factory=list)


@dataclass
class GuessResult:
    correct: bool
    points: int = 0
    all_guessed: bool = False
    message: ChatMessage | None = None
