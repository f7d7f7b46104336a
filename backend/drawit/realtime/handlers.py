from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import GameError, NotInRoom
from ..game.models import WordOption
from ..game.service import Broadcaster, GameService
from . import events as ev
from .events import (
    CreateRoomIntent,
    DrawUpdateIntent,
    JoinRoomIntent,
    SelectWordIntent,
    TextIntent,
)
from .sessions import Session, SessionMap

logger = logging.getLogger(__name__)


class SocketBroadcaster(Broadcaster):
    """Delivers game notifications to Socket.IO rooms and single sockets."""

    def __init__(self, socketio: SocketIO, game: GameService, sessions: SessionMap) -> None:
        self.socketio = socketio
        self.game = game
        self.sessions = sessions

    def _broadcast_room_state(self, room_code: str) -> None:
        public_state = self.game.snapshot(room_code)
        if public_state is None:
            return
        self.socketio.emit(ev.ROOM_STATE, public_state, to=room_code)

        # Drawer and players who already found the word also get it in clear.
        for player_id in self.game.private_viewers(room_code):
            sid = self.sessions.sid_for(player_id, room_code)
            if sid:
                private_state = self.game.snapshot(room_code, viewer_id=player_id)
                self.socketio.emit(ev.ROOM_STATE, private_state, to=sid)

    def room_updated(self, room_code: str) -> None:
        try:
            self._broadcast_room_state(room_code)
        except Exception:
            logger.exception("room state broadcast failed room=%s", room_code)

    def word_options(self, room_code: str, player_id: str, options: list[WordOption]) -> None:
        sid = self.sessions.sid_for(player_id, room_code)
        if not sid:
            logger.warning("no connection for drawer room=%s player=%s", room_code, player_id)
            return
        self.socketio.emit(
            ev.GAME_WORD_OPTIONS,
            {"roomCode": room_code, "words": [o.to_dict() for o in options]},
            to=sid,
        )

    def timer_tick(self, room_code: str, time_left: int) -> None:
        self.socketio.emit(ev.GAME_TICK, {"roomCode": room_code, "timeLeft": time_left}, to=room_code)

    def room_deleted(self, room_code: str) -> None:
        self.sessions.drop_room(room_code)
        self.socketio.emit(ev.ROOM_DELETED, {"roomCode": room_code}, to=room_code)
        self.socketio.close_room(room_code)


def register_socketio_handlers(socketio: SocketIO, game: GameService, sessions: SessionMap) -> None:
    def _fail(exc: GameError, channel: str = ev.GAME_ERROR) -> dict:
        emit(channel, {"error": exc.code})
        return {"ok": False, "error": exc.code}

    def _current_session() -> Session:
        session = sessions.get(request.sid)
        if session is None:
            raise NotInRoom()
        return session

    def _attach(player_id: str, room_code: str) -> None:
        join_room(room_code)
        for stale_sid in sessions.bind(request.sid, player_id, room_code):
            # Same player reconnected from a new socket.
            leave_room(room_code, sid=stale_sid)
            logger.info("stale connection replaced room=%s player=%s sid=%s", room_code, player_id, stale_sid)

        # The join broadcast went out before this socket was in the room.
        emit(ev.ROOM_STATE, game.snapshot(room_code, viewer_id=player_id))
        options = game.word_options_for(room_code, player_id)
        if options:
            emit(ev.GAME_WORD_OPTIONS, {"roomCode": room_code, "words": [o.to_dict() for o in options]})

    def _detach(sid: str, leave_socket_room: bool = True) -> Session | None:
        session = sessions.unbind(sid)
        if session is None:
            return None
        if leave_socket_room:
            leave_room(session.room_code)
        try:
            game.leave_room(session.room_code, session.player_id)
        except GameError as exc:
            logger.info("leave ignored room=%s player=%s reason=%s", session.room_code, session.player_id, exc.code)
        return session

    def _join(intent: JoinRoomIntent) -> dict:
        player_id = intent.player.player_id or request.sid

        previous = sessions.get(request.sid)
        # One connection holds one player: switching room or identity leaves the old one.
        if previous is not None and (previous.room_code != intent.room_code or previous.player_id != player_id):
            _detach(request.sid)

        room = game.join_room(
            intent.room_code,
            player_id,
            name=intent.player.name,
            avatar=intent.player.avatar,
            password=intent.password,
        )
        _attach(player_id, room.code)
        logger.info("player %s joined room %s sid=%s", player_id, room.code, request.sid)
        return {"ok": True, "room": room.summary(), "playerId": player_id}

    @socketio.on("connect")
    def on_connect(auth=None):
        logger.info("client connected sid=%s", request.sid)

    @socketio.on(ev.ROOM_CREATE)
    def room_create(data=None):
        try:
            intent = CreateRoomIntent.from_payload(data)
            room = game.create_room(intent.name, is_private=intent.is_private, password=intent.password)
            if intent.player is None:
                return {"ok": True, "room": room.summary()}
            return _join(JoinRoomIntent(room_code=room.code, player=intent.player, password=intent.password))
        except GameError as exc:
            return _fail(exc, ev.ROOM_ERROR)

    @socketio.on(ev.ROOM_JOIN)
    def room_join(data=None):
        try:
            return _join(JoinRoomIntent.from_payload(data))
        except GameError as exc:
            return _fail(exc, ev.ROOM_ERROR)

    @socketio.on(ev.ROOM_LEAVE)
    def room_leave(data=None):
        session = _detach(request.sid)
        if session is not None:
            logger.info("player %s left room %s", session.player_id, session.room_code)
        return {"ok": True}

    @socketio.on(ev.ROOM_LIST)
    def room_list(data=None):
        return {"ok": True, "rooms": game.list_rooms()}

    @socketio.on(ev.GAME_START)
    def game_start(data=None):
        try:
            session = _current_session()
            game.start_game(session.room_code, session.player_id)
        except GameError as exc:
            return _fail(exc)
        return {"ok": True}

    @socketio.on(ev.GAME_SELECT_WORD)
    def game_select_word(data=None):
        try:
            intent = SelectWordIntent.from_payload(data)
            session = _current_session()
            choice = game.select_word(session.room_code, session.player_id, intent.word)
        except GameError as exc:
            return _fail(exc)
        return {"ok": True, "word": choice.to_dict()}

    @socketio.on(ev.DRAW_UPDATE)
    def draw_update(data=None):
        try:
            intent = DrawUpdateIntent.from_payload(data)
            session = _current_session()
        except GameError as exc:
            return {"ok": False, "error": exc.code}

        # Updates from anyone but the drawer are dropped without an error.
        if not game.update_canvas(session.room_code, session.player_id, intent.canvas_data):
            return {"ok": False}

        emit(
            ev.DRAW_UPDATE,
            {"roomCode": session.room_code, "canvasData": intent.canvas_data},
            to=session.room_code,
            include_self=False,
        )
        return {"ok": True}

    def _text_intent(data, handler) -> dict:
        try:
            intent = TextIntent.from_payload(data)
            session = _current_session()
            result = handler(session.room_code, session.player_id, intent.text)
        except GameError as exc:
            return _fail(exc)
        return {
            "ok": True,
            "isCorrect": result.correct,
            "points": result.points,
            "allGuessed": result.all_guessed,
        }

    @socketio.on(ev.GUESS_SUBMIT)
    def guess_submit(data=None):
        return _text_intent(data, game.submit_guess)

    @socketio.on(ev.CHAT_MESSAGE)
    def chat_message(data=None):
        return _text_intent(data, game.chat_message)

    @socketio.on(ev.GAME_RESTART)
    def game_restart(data=None):
        try:
            session = _current_session()
            game.restart_game(session.room_code, session.player_id)
        except GameError as exc:
            return _fail(exc)
        return {"ok": True}

    @socketio.on("disconnect")
    def on_disconnect(*args):
        session = _detach(request.sid, leave_socket_room=False)
        if session is not None:
            logger.info("player %s disconnected from room %s", session.player_id, session.room_code)
