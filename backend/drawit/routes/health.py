from __future__ import annotations

from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    game = current_app.extensions["drawit"]["game"]
    return jsonify({"status": "ok", "rooms": len(game.registry)})
