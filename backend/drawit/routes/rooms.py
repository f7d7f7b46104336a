from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..game.errors import GameError
from ..realtime.events import CreateRoomIntent

bp = Blueprint("rooms", __name__)


def _game():
    return current_app.extensions["drawit"]["game"]


@bp.get("/rooms")
def list_rooms():
    return jsonify({"rooms": _game().list_rooms()})


@bp.post("/rooms")
def create_room():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "invalid_payload"}), 400
    try:
        intent = CreateRoomIntent.from_payload({k: v for k, v in data.items() if k != "player"})
        room = _game().create_room(intent.name, is_private=intent.is_private, password=intent.password)
    except GameError as exc:
        return jsonify({"error": exc.code}), 400
    return jsonify({"roomCode": room.code, "room": room.summary()}), 201


@bp.get("/rooms/<code>")
def get_room(code: str):
    room = _game().registry.get_room(code)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(room.summary())
