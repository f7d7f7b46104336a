from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from threading import RLock

from .errors import GameInProgress, RoomFull, RoomNotFound
from .models import Player, Room, RoomStatus

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


@dataclass
class RemovalResult:
    room: Room | None
    deleted: bool
    index: int | None = None
    was_host: bool = False


class RoomRegistry:
    """Owns the live rooms of this process and their membership."""

    def __init__(self, max_players: int = 8, code_length: int = 6) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self.max_players = max_players
        self.code_length = code_length

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def _generate_code(self) -> str:
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(self.code_length))
        while code in self._rooms:
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(self.code_length))
        return code

    def create_room(self, name: str, is_private: bool = False, password: str | None = None) -> Room:
        with self._lock:
            room = Room(
                code=self._generate_code(),
                name=name,
                is_private=bool(is_private),
                password=password or None,
                max_players=self.max_players,
            )
            self._rooms[room.code] = room
            logger.info("room created code=%s private=%s", room.code, room.is_private)
            return room

    def get_room(self, code: str | None) -> Room | None:
        with self._lock:
            return self._rooms.get(normalize_code(code))

    def require_room(self, code: str | None) -> Room:
        room = self.get_room(code)
        if room is None:
            raise RoomNotFound()
        return room

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def list_public_rooms(self) -> list[dict]:
        with self._lock:
            return [r.summary() for r in self._rooms.values() if not r.is_private]

    def find_player_room(self, player_id: str) -> Room | None:
        with self._lock:
            for room in self._rooms.values():
                if room.get_player(player_id) is not None:
                    return room
            return None

    def add_player(self, code: str, player: Player) -> Room:
        with self._lock:
            room = self.require_room(code)

            # Rejoin is idempotent and allowed mid-game.
            if room.get_player(player.id) is not None:
                return room

            if len(room.players) >= room.max_players:
                raise RoomFull()
            if room.status == "PLAYING":
                raise GameInProgress()

            room.players.append(player)
            if len(room.players) == 1:
                room.host_id = player.id
            logger.info("player joined room=%s player=%s count=%d", room.code, player.id, len(room.players))
            return room

    def remove_player(self, code: str, player_id: str) -> RemovalResult:
        with self._lock:
            room = self.require_room(code)
            idx = room.index_of(player_id)
            if idx is None:
                return RemovalResult(room=room, deleted=False)

            del room.players[idx]
            was_host = room.host_id == player_id

            if not room.players:
                del self._rooms[room.code]
                logger.info("room deleted (empty) code=%s", room.code)
                return RemovalResult(room=None, deleted=True, index=idx, was_host=was_host)

            if was_host:
                room.host_id = room.players[0].id
                logger.info("host reassigned room=%s host=%s", room.code, room.host_id)

            return RemovalResult(room=room, deleted=False, index=idx, was_host=was_host)

    def verify_password(self, code: str, attempt: str | None) -> bool:
        room = self.require_room(code)
        if not room.is_private or not room.password:
            return True
        return room.password == (attempt or "")

    def set_status(self, code: str, status: RoomStatus) -> Room:
        with self._lock:
            room = self.require_room(code)
            room.status = status
            return room

    def delete_room(self, code: str) -> bool:
        with self._lock:
            return self._rooms.pop(normalize_code(code), None) is not None
