from __future__ import annotations

import logging
import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.rooms import RoomRegistry
from .game.scheduler import TurnScheduler
from .game.service import GameService, GameSettings
from .realtime.handlers import SocketBroadcaster, register_socketio_handlers
from .realtime.sessions import SessionMap
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp


def _pick_async_mode(configured: str) -> str:
    if configured:
        return configured
    # Default choice:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(config_class=Config) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.getLogger("drawit").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_pick_async_mode(app.config.get("SOCKETIO_ASYNC_MODE", "")),
    )

    # In tests timers only run when fired explicitly, unless asked otherwise.
    if app.config.get("TESTING") and not app.config.get("ENABLE_SCHEDULER_IN_TESTS"):
        scheduler = TurnScheduler()
    else:
        scheduler = TurnScheduler(start_task=socketio.start_background_task, sleep=socketio.sleep)

    sessions = SessionMap()
    game = GameService(
        registry=RoomRegistry(
            max_players=app.config.get("MAX_PLAYERS", 8),
            code_length=app.config.get("ROOM_CODE_LENGTH", 6),
        ),
        scheduler=scheduler,
        settings=GameSettings.from_config(app.config),
    )
    game.broadcaster = SocketBroadcaster(socketio, game, sessions)

    app.extensions["drawit"] = {"game": game, "sessions": sessions, "socketio": socketio}

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(socketio, game, sessions)

    app.logger.info(
        "drawit ready async_mode=%s rounds=%s turn=%ss",
        socketio.async_mode, game.settings.total_rounds, game.settings.turn_duration_sec,
    )
    return app, socketio


def get_game(app: Flask) -> GameService:
    return app.extensions["drawit"]["game"]
