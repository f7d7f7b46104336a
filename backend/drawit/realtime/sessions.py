from __future__ import annotations

from dataclasses import dataclass
from threading import Lock


@dataclass(frozen=True)
class Session:
    player_id: str
    room_code: str


class SessionMap:
    """Connection (socket id) <-> (player, room) mapping used by the gateway."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._by_sid: dict[str, Session] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_sid)

    def bind(self, sid: str, player_id: str, room_code: str) -> list[str]:
        """Attach ``sid`` to the player; returns older sids of the same player that were detached."""
        with self._lock:
            stale = [
                other for other, s in self._by_sid.items()
                if other != sid and s.player_id == player_id and s.room_code == room_code
            ]
            for other in stale:
                del self._by_sid[other]
            self._by_sid[sid] = Session(player_id=player_id, room_code=room_code)
            return stale

    def get(self, sid: str) -> Session | None:
        with self._lock:
            return self._by_sid.get(sid)

    def unbind(self, sid: str) -> Session | None:
        with self._lock:
            return self._by_sid.pop(sid, None)

    def sid_for(self, player_id: str, room_code: str) -> str | None:
        with self._lock:
            for sid, s in self._by_sid.items():
                if s.player_id == player_id and s.room_code == room_code:
                    return sid
            return None

    def drop_room(self, room_code: str) -> list[str]:
        with self._lock:
            sids = [sid for sid, s in self._by_sid.items() if s.room_code == room_code]
            for sid in sids:
                del self._by_sid[sid]
            return sids
