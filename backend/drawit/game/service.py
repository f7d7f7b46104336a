from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields
from functools import partial
from threading import RLock
from typing import Any, Callable, Iterable, Mapping

from .errors import (
    GameInProgress,
    IncorrectPassword,
    InsufficientPlayers,
    InvalidPayload,
    InvalidWord,
    NotHost,
    NotInRoom,
    NotYourTurn,
    RevealsAnswer,
)
from .hints import mask_word
from .models import (
    TURN_PHASES,
    ChatMessage,
    GamePhase,
    GameState,
    GuessResult,
    Player,
    Room,
    WordOption,
)
from .rooms import RemovalResult, RoomRegistry
from .scheduler import TurnScheduler
from .words import generate_word_options

logger = logging.getLogger(__name__)

POINTS_GUESS_BASE = 500
POINTS_GUESS_DECAY = 100
POINTS_GUESS_FLOOR = 200
POINTS_DRAWER_ALL_GUESSED = 300

REVEALED_PHASES: tuple[str, ...] = ("TURN_END", "ROUND_END", "GAME_OVER")

WordProvider = Callable[[int, Iterable[str], int], list[WordOption]]


def guess_points(rank: int) -> int:
    return max(POINTS_GUESS_BASE - POINTS_GUESS_DECAY * rank, POINTS_GUESS_FLOOR)


def is_correct_guess(text: str, word: str) -> bool:
    return (text or "").strip().lower() == (word or "").strip().lower()


def _normalize_text(text: str) -> str:
    return re.sub(r"[\W_]+", "", (text or "").lower())


def contains_answer(text: str, answer: str) -> bool:
    a = _normalize_text(answer)
    if not a:
        return False
    return a in _normalize_text(text)


@dataclass
class GameSettings:
    total_rounds: int = 3
    turn_duration_sec: int = 80
    min_players: int = 2
    word_choices_count: int = 3
    choose_duration_sec: float = 15
    round_start_delay_sec: float = 3
    turn_end_delay_sec: float = 6
    round_end_delay_sec: float = 8
    all_guessed_delay_sec: float = 2
    empty_room_ttl_sec: float = 60
    chat_history_limit: int = 200

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> GameSettings:
        """Build settings from a Flask config (``TURN_DURATION_SEC`` -> ``turn_duration_sec``)."""
        kwargs = {}
        for f in fields(cls):
            key = f.name.upper()
            if key in config:
                kwargs[f.name] = config[key]
        return cls(**kwargs)


class Broadcaster:
    """Receives the service's outbound notifications. The default drops them."""

    def room_updated(self, room_code: str) -> None:
        pass

    def word_options(self, room_code: str, player_id: str, options: list[WordOption]) -> None:
        pass

    def timer_tick(self, room_code: str, time_left: int) -> None:
        pass

    def room_deleted(self, room_code: str) -> None:
        pass


class GameService:
    """Authoritative game state for every room of the process.

    All mutations happen under one re-entrant lock, both for client intents
    and for timer callbacks, so each room sees one event at a time.
    """

    def __init__(
        self,
        registry: RoomRegistry | None = None,
        scheduler: TurnScheduler | None = None,
        settings: GameSettings | None = None,
        word_provider: WordProvider | None = None,
        broadcaster: Broadcaster | None = None,
    ) -> None:
        self._lock = RLock()
        self._states: dict[str, GameState] = {}
        self.registry = registry or RoomRegistry()
        self.scheduler = scheduler or TurnScheduler()
        self.settings = settings or GameSettings()
        self.word_provider: WordProvider = word_provider or generate_word_options
        self.broadcaster = broadcaster or Broadcaster()

    # ---- lookups ----

    def _new_state(self) -> GameState:
        return GameState(total_rounds=self.settings.total_rounds)

    def get_state(self, code: str) -> GameState | None:
        with self._lock:
            room = self.registry.get_room(code)
            if room is None:
                return None
            return self._states.get(room.code)

    def _room_and_state(self, code: str) -> tuple[Room, GameState]:
        room = self.registry.require_room(code)
        state = self._states.get(room.code)
        if state is None:
            state = self._states[room.code] = self._new_state()
        return room, state

    def _live(self, code: str) -> tuple[Room, GameState] | tuple[None, None]:
        room = self.registry.get_room(code)
        state = self._states.get(room.code) if room else None
        if room is None or state is None:
            return None, None
        return room, state

    @staticmethod
    def _require_member(room: Room, player_id: str) -> Player:
        player = room.get_player(player_id)
        if player is None:
            raise NotInRoom()
        return player

    @staticmethod
    def _drawer(room: Room, state: GameState) -> Player | None:
        # Always read from the live member list.
        if state.phase not in TURN_PHASES:
            return None
        idx = state.current_player_index
        if 0 <= idx < len(room.players):
            return room.players[idx]
        return None

    def _set_phase(self, room: Room, state: GameState, phase: GamePhase) -> None:
        state.phase = phase
        logger.info(
            "[phase] room=%s phase=%s round=%d/%d index=%d",
            room.code, phase, state.current_round, state.total_rounds, state.current_player_index,
        )

    def _add_message(self, state: GameState, message: ChatMessage) -> ChatMessage:
        state.messages.append(message)
        limit = self.settings.chat_history_limit
        if limit and len(state.messages) > limit:
            state.messages = state.messages[-limit:]
        return message

    # ---- rooms ----

    def list_rooms(self) -> list[dict]:
        return self.registry.list_public_rooms()

    def create_room(self, name: str, is_private: bool = False, password: str | None = None) -> Room:
        name = (name or "").strip()
        if not name:
            raise InvalidPayload("room name is required")

        with self._lock:
            room = self.registry.create_room(name, is_private=is_private, password=password)
            self._states[room.code] = self._new_state()
            if self.settings.empty_room_ttl_sec > 0:
                self.scheduler.schedule(
                    room.code,
                    self.settings.empty_room_ttl_sec,
                    partial(self._expire_if_empty, room.code),
                    label="empty-room",
                )
            return room

    def _expire_if_empty(self, code: str) -> None:
        with self._lock:
            room = self.registry.get_room(code)
            if room is None or room.players:
                return
            self.registry.delete_room(code)
            self._drop_state(code)
            logger.info("room expired unused code=%s", code)
            self.broadcaster.room_deleted(code)

    def _drop_state(self, code: str) -> None:
        self.scheduler.cancel(code)
        self._states.pop(code, None)

    def join_room(
        self,
        code: str,
        player_id: str,
        name: str,
        avatar: Any = None,
        password: str | None = None,
    ) -> Room:
        with self._lock:
            room, _ = self._room_and_state(code)
            if not self.registry.verify_password(room.code, password):
                raise IncorrectPassword()

            existing = room.get_player(player_id)
            was_empty = not room.players
            self.registry.add_player(room.code, Player(id=player_id, name=name, avatar=avatar))
            if existing is not None:
                existing.name = name
                existing.avatar = avatar

            pending = self.scheduler.pending(room.code)
            if was_empty and pending is not None and pending.label == "empty-room":
                self.scheduler.cancel(room.code)

            self.broadcaster.room_updated(room.code)
            return room

    def leave_room(self, code: str, player_id: str) -> RemovalResult:
        with self._lock:
            room, state = self._room_and_state(code)
            player = self._require_member(room, player_id)
            result = self.registry.remove_player(room.code, player_id)

            if result.deleted:
                self._drop_state(room.code)
                self.broadcaster.room_deleted(room.code)
                return result

            if result.index is not None:
                self._on_departure(room, state, player, result.index)
            self.broadcaster.room_updated(room.code)
            return result

    def _on_departure(self, room: Room, state: GameState, player: Player, idx: int) -> None:
        if state.phase not in TURN_PHASES:
            return

        current = state.current_player_index
        if idx < current:
            state.current_player_index -= 1
        if idx < state.next_player_index:
            state.next_player_index -= 1

        if idx == current and state.phase in ("TURN_START", "WORD_SELECTION", "DRAWING"):
            self._add_message(state, ChatMessage.system(f"{player.name} left the game."))
            # The player that moved into the vacated slot draws next.
            self._finish_turn(room, state, next_index=current)
            return

        if state.current_player_index >= len(room.players):
            state.current_player_index = max(len(room.players) - 1, 0)

        if state.phase == "DRAWING":
            drawer = self._drawer(room, state)
            if drawer is not None and self._all_guessed(room, drawer):
                self._schedule_early_end(room, state)

    # ---- game flow ----

    def start_game(self, code: str, player_id: str) -> GameState:
        with self._lock:
            room, state = self._room_and_state(code)
            self._require_member(room, player_id)
            if room.host_id != player_id:
                raise NotHost()
            if state.phase != "ROOM_LOBBY" or room.status == "PLAYING":
                raise GameInProgress()
            if len(room.players) < self.settings.min_players:
                raise InsufficientPlayers()

            for p in room.players:
                p.score = 0
                p.has_guessed_correctly = False

            state = self._states[room.code] = self._new_state()
            self.registry.set_status(room.code, "PLAYING")
            logger.info("game started room=%s players=%d", room.code, len(room.players))
            self._start_round(room, state, 1)
            self.broadcaster.room_updated(room.code)
            return state

    def restart_game(self, code: str, player_id: str) -> GameState:
        with self._lock:
            room, _ = self._room_and_state(code)
            self._require_member(room, player_id)
            self.scheduler.cancel(room.code)

            for p in room.players:
                p.score = 0
                p.has_guessed_correctly = False

            state = self._states[room.code] = self._new_state()
            self.registry.set_status(room.code, "WAITING")
            logger.info("game reset room=%s by=%s", room.code, player_id)
            self.broadcaster.room_updated(room.code)
            return state

    def _start_round(self, room: Room, state: GameState, round_number: int) -> None:
        state.current_round = round_number
        state.current_player_index = 0
        state.next_player_index = 0
        state.current_word = None
        state.word_options = []
        state.canvas_data = None
        state.messages = []
        self._set_phase(room, state, "ROUND_START")
        self._add_message(state, ChatMessage.system(f"Round {round_number} begins!"))
        self.scheduler.schedule(
            room.code,
            self.settings.round_start_delay_sec,
            partial(self._after_round_start, room.code, round_number),
            label="round-start",
        )

    def _after_round_start(self, code: str, expected_round: int) -> None:
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "ROUND_START" or state.current_round != expected_round:
                logger.info("[timer-stale] room=%s expected=ROUND_START round=%d", code, expected_round)
                return
            self._start_turn(room, state, 0)
            self.broadcaster.room_updated(room.code)

    def _start_turn(self, room: Room, state: GameState, index: int) -> None:
        if index >= len(room.players):
            self._end_round(room, state)
            return

        for p in room.players:
            p.has_guessed_correctly = False

        state.current_player_index = index
        state.next_player_index = index + 1
        state.current_word = None
        state.canvas_data = None
        state.messages = []
        state.time_left = 0
        self._set_phase(room, state, "TURN_START")

        options = list(self.word_provider(state.current_round, list(state.used_words), self.settings.word_choices_count))
        state.word_options = options
        state.used_words.extend(o.word for o in options)

        drawer = room.players[index]
        self._set_phase(room, state, "WORD_SELECTION")
        self._add_message(state, ChatMessage.system(f"{drawer.name} is choosing a word..."))

        if self.settings.choose_duration_sec > 0:
            self.scheduler.schedule(
                room.code,
                self.settings.choose_duration_sec,
                partial(self._auto_select, room.code, state.current_round),
                label="word-selection",
            )
        else:
            self.scheduler.cancel(room.code)

        self.broadcaster.word_options(room.code, drawer.id, list(options))

    def _auto_select(self, code: str, expected_round: int) -> None:
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "WORD_SELECTION" or state.current_round != expected_round:
                return
            if not state.word_options:
                return
            logger.info("word auto-selected room=%s", code)
            self._begin_drawing(room, state, state.word_options[0])
            self.broadcaster.room_updated(room.code)

    def word_options_for(self, code: str, player_id: str) -> list[WordOption]:
        """Candidates visible to ``player_id``: empty unless they are choosing right now."""
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "WORD_SELECTION":
                return []
            drawer = self._drawer(room, state)
            if drawer is None or drawer.id != player_id:
                return []
            return list(state.word_options)

    def select_word(self, code: str, player_id: str, word: str) -> WordOption:
        with self._lock:
            room, state = self._room_and_state(code)
            self._require_member(room, player_id)
            drawer = self._drawer(room, state)
            if state.phase != "WORD_SELECTION" or drawer is None or drawer.id != player_id:
                raise NotYourTurn()

            wanted = (word or "").strip().lower()
            choice = next((o for o in state.word_options if o.word.lower() == wanted), None)
            if choice is None:
                raise InvalidWord()

            self._begin_drawing(room, state, choice)
            self.broadcaster.room_updated(room.code)
            return choice

    def _begin_drawing(self, room: Room, state: GameState, choice: WordOption) -> None:
        drawer = self._drawer(room, state)
        state.current_word = choice
        state.time_left = self.settings.turn_duration_sec
        state.word_options = []
        self._set_phase(room, state, "DRAWING")
        if drawer is not None:
            self._add_message(state, ChatMessage.system(f"{drawer.name} selected a word!"))
        self.scheduler.start_countdown(
            room.code,
            partial(self._tick, room.code, state.current_round),
            label="turn",
        )

    def _tick(self, code: str, expected_round: int) -> bool:
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "DRAWING" or state.current_round != expected_round:
                return False
            hint_before = self._word_hint(state)
            state.time_left = max(0, state.time_left - 1)
            self.broadcaster.timer_tick(room.code, state.time_left)
            if state.time_left <= 0:
                self.end_turn(room.code)
                return False
            if self._word_hint(state) != hint_before:
                logger.info("[hint] room=%s time_left=%d", room.code, state.time_left)
                self.broadcaster.room_updated(room.code)
            return True

    def _word_hint(self, state: GameState) -> str:
        if state.current_word is None:
            return ""
        return mask_word(state.current_word.word, self.settings.turn_duration_sec - state.time_left)

    def update_canvas(self, code: str, player_id: str, canvas_data: Any) -> bool:
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "DRAWING":
                return False
            drawer = self._drawer(room, state)
            if drawer is None or drawer.id != player_id:
                return False
            state.canvas_data = canvas_data
            return True

    def submit_guess(self, code: str, player_id: str, text: str) -> GuessResult:
        with self._lock:
            room, state = self._room_and_state(code)
            player = self._require_member(room, player_id)
            text = (text or "").strip()
            if not text:
                return GuessResult(correct=False)

            drawer = self._drawer(room, state)
            is_drawer = drawer is not None and drawer.id == player.id
            word = state.current_word.word if state.current_word else None

            if state.phase != "DRAWING" or word is None or is_drawer or player.has_guessed_correctly:
                if state.phase == "DRAWING" and word and (is_drawer or player.has_guessed_correctly):
                    if contains_answer(text, word):
                        raise RevealsAnswer()
                msg = self._add_message(state, ChatMessage(player_id=player.id, player_name=player.name, text=text))
                self.broadcaster.room_updated(room.code)
                return GuessResult(correct=False, message=msg)

            if not is_correct_guess(text, word):
                msg = self._add_message(state, ChatMessage(player_id=player.id, player_name=player.name, text=text))
                self.broadcaster.room_updated(room.code)
                return GuessResult(correct=False, message=msg)

            result = self._score_correct_guess(room, state, player, drawer)
            self.broadcaster.room_updated(room.code)
            return result

    def chat_message(self, code: str, player_id: str, text: str) -> GuessResult:
        """Free chat. A player who still has to guess the word cannot chat while
        it is being drawn, so their message is evaluated as a guess instead."""
        return self.submit_guess(code, player_id, text)

    def _score_correct_guess(self, room: Room, state: GameState, player: Player, drawer: Player) -> GuessResult:
        rank = sum(1 for p in room.players if p.has_guessed_correctly and p.id != drawer.id)
        points = guess_points(rank)
        player.score += points
        player.has_guessed_correctly = True
        msg = self._add_message(
            state,
            ChatMessage(
                player_id=player.id,
                player_name=player.name,
                text=f"Guessed the word! (+{points})",
                is_correct_guess=True,
            ),
        )
        logger.info("correct guess room=%s player=%s rank=%d points=%d", room.code, player.id, rank, points)

        all_guessed = self._all_guessed(room, drawer)
        if all_guessed:
            drawer.score += POINTS_DRAWER_ALL_GUESSED
            self._schedule_early_end(room, state)
        return GuessResult(correct=True, points=points, all_guessed=all_guessed, message=msg)

    @staticmethod
    def _all_guessed(room: Room, drawer: Player) -> bool:
        # True for a drawer left alone in the room.
        return all(p.has_guessed_correctly for p in room.players if p.id != drawer.id)

    def _schedule_early_end(self, room: Room, state: GameState) -> None:
        pending = self.scheduler.pending(room.code)
        if pending is not None and pending.label == "all-guessed":
            return
        self.scheduler.schedule(
            room.code,
            self.settings.all_guessed_delay_sec,
            partial(self._early_end, room.code, state.current_round),
            label="all-guessed",
        )

    def _early_end(self, code: str, expected_round: int) -> None:
        with self._lock:
            state = self.get_state(code)
            if state is None or state.current_round != expected_round:
                return
            self.end_turn(code)

    def end_turn(self, code: str) -> bool:
        """Move a DRAWING turn to TURN_END. Any later call for the same turn is a no-op."""
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "DRAWING":
                logger.info("end_turn ignored room=%s phase=%s", code, state.phase if state else None)
                return False
            self._finish_turn(room, state, next_index=state.current_player_index + 1)
            self.broadcaster.room_updated(room.code)
            return True

    def _finish_turn(self, room: Room, state: GameState, next_index: int) -> None:
        self.scheduler.cancel(room.code)
        timed_out = state.phase == "DRAWING" and state.time_left <= 0
        state.word_options = []
        state.next_player_index = next_index
        if state.current_player_index >= len(room.players):
            state.current_player_index = max(len(room.players) - 1, 0)
        self._set_phase(room, state, "TURN_END")

        if state.current_word is not None:
            prefix = "Time's up! " if timed_out else ""
            self._add_message(state, ChatMessage.system(f"{prefix}The word was: {state.current_word.word}"))

        self.scheduler.schedule(
            room.code,
            self.settings.turn_end_delay_sec,
            partial(self._after_turn_end, room.code, state.current_round),
            label="turn-end",
        )

    def _after_turn_end(self, code: str, expected_round: int) -> None:
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "TURN_END" or state.current_round != expected_round:
                logger.info("[timer-stale] room=%s expected=TURN_END round=%d", code, expected_round)
                return
            self._start_turn(room, state, state.next_player_index)
            self.broadcaster.room_updated(room.code)

    def _end_round(self, room: Room, state: GameState) -> None:
        state.current_player_index = 0
        state.next_player_index = 0

        if state.current_round >= state.total_rounds:
            self.scheduler.cancel(room.code)
            self._set_phase(room, state, "GAME_OVER")
            self._add_message(state, ChatMessage.system(self._winner_text(room)))
            logger.info("game over room=%s", room.code)
            return

        self._set_phase(room, state, "ROUND_END")
        self._add_message(state, ChatMessage.system(f"Round {state.current_round} is over!"))
        self.scheduler.schedule(
            room.code,
            self.settings.round_end_delay_sec,
            partial(self._after_round_end, room.code, state.current_round),
            label="round-end",
        )

    @staticmethod
    def _winner_text(room: Room) -> str:
        if not room.players:
            return "Game over!"
        top = max(p.score for p in room.players)
        names = ", ".join(p.name for p in room.players if p.score == top)
        return f"Game over! {names} wins with {top} points!"

    def _after_round_end(self, code: str, expected_round: int) -> None:
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "ROUND_END" or state.current_round != expected_round:
                logger.info("[timer-stale] room=%s expected=ROUND_END round=%d", code, expected_round)
                return
            self._start_round(room, state, expected_round + 1)
            self.broadcaster.room_updated(room.code)

    # ---- projections ----

    def private_viewers(self, code: str) -> list[str]:
        """Players that may see the word while it is being drawn."""
        with self._lock:
            room, state = self._live(code)
            if state is None or state.phase != "DRAWING":
                return []
            drawer = self._drawer(room, state)
            return [p.id for p in room.players if p.has_guessed_correctly or (drawer is not None and p.id == drawer.id)]

    def snapshot(self, code: str, viewer_id: str | None = None) -> dict | None:
        with self._lock:
            room, state = self._live(code)
            if state is None:
                return None

            drawer = self._drawer(room, state)
            word = state.current_word.word if state.current_word else None
            elapsed = self.settings.turn_duration_sec - state.time_left if state.phase == "DRAWING" else 0

            game_state = {
                "phase": state.phase,
                "currentRound": state.current_round,
                "totalRounds": state.total_rounds,
                "currentPlayerIndex": state.current_player_index,
                "drawerId": drawer.id if drawer else None,
                "timeLeft": state.time_left,
                "turnDurationSec": self.settings.turn_duration_sec,
                "wordHint": mask_word(word, elapsed) if word else None,
                "wordLength": len(word) if word else None,
                "messages": [m.to_dict() for m in state.messages],
                "canvasData": state.canvas_data,
            }

            if state.current_word is not None:
                revealed = state.phase in REVEALED_PHASES
                viewer = room.get_player(viewer_id) if viewer_id else None
                privileged = viewer is not None and (
                    viewer.has_guessed_correctly or (drawer is not None and drawer.id == viewer.id)
                )
                if revealed or privileged:
                    game_state["currentWord"] = state.current_word.to_dict()
                    game_state["wordHint"] = word

            return {
                "room": room.summary(),
                "players": [p.to_dict() for p in room.players],
                "gameState": game_state,
            }
