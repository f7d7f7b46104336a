from __future__ import annotations


class GameError(Exception):
    """Recoverable failure reported back to the client that caused it.

    ``code`` is the stable string sent over the wire (``{"error": code}``).
    """

    code = "game_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)


class RoomNotFound(GameError):
    code = "room_not_found"


class RoomFull(GameError):
    code = "room_full"


class GameInProgress(GameError):
    code = "game_in_progress"


class IncorrectPassword(GameError):
    code = "incorrect_password"


class NotHost(GameError):
    code = "only_host"


class InsufficientPlayers(GameError):
    code = "insufficient_players"


class NotYourTurn(GameError):
    code = "not_your_turn"


class InvalidWord(GameError):
    code = "invalid_word"


class NotInRoom(GameError):
    code = "not_in_room"


class InvalidPayload(GameError):
    code = "invalid_payload"


class RevealsAnswer(GameError):
    code = "reveals_answer"
