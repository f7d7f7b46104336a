import os
import sys

import pytest

# Ensure the backend root (containing the `drawit` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from drawit.config import Config
from drawit.game.models import WordOption
from drawit.game.rooms import RoomRegistry
from drawit.game.scheduler import TurnScheduler
from drawit.game.service import Broadcaster, GameService, GameSettings
from drawit.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SOCKETIO_ASYNC_MODE = 'threading'
    TRUST_PROXY_HEADERS = False
    LOG_LEVEL = 'DEBUG'


STUB_WORDS = [
    WordOption(word='Cat', category='THING'),
    WordOption(word='Run', category='ACTION'),
    WordOption(word='Park', category='PLACE'),
]


class StubWords:
    """Word provider returning the same candidates and remembering each call."""

    def __init__(self, options=None):
        self.options = list(options or STUB_WORDS)
        self.calls = []

    def __call__(self, round_number, exclude, count):
        self.calls.append((round_number, list(exclude), count))
        return list(self.options[:count])


class RecordingBroadcaster(Broadcaster):
    def __init__(self):
        self.updates = []
        self.options = []
        self.ticks = []
        self.deleted = []

    def room_updated(self, room_code):
        self.updates.append(room_code)

    def word_options(self, room_code, player_id, options):
        self.options.append((room_code, player_id, list(options)))

    def timer_tick(self, room_code, time_left):
        self.ticks.append((room_code, time_left))

    def room_deleted(self, room_code):
        self.deleted.append(room_code)


@pytest.fixture()
def settings():
    return GameSettings()


@pytest.fixture()
def words():
    return StubWords()


@pytest.fixture()
def game(settings, words):
    return GameService(
        registry=RoomRegistry(),
        scheduler=TurnScheduler(),
        settings=settings,
        word_provider=words,
        broadcaster=RecordingBroadcaster(),
    )


def make_room(game, n_players, **kwargs):
    room = game.create_room('Test room', **kwargs)
    for i in range(1, n_players + 1):
        game.join_room(room.code, f'p{i}', name=f'Player {i}', password=kwargs.get('password'))
    return room.code


def start_drawing(game, code, word='Cat'):
    """Host p1 starts, the round-start delay elapses and p1 picks ``word``."""
    game.start_game(code, 'p1')
    game.scheduler.fire(code)
    game.select_word(code, 'p1', word)


@pytest.fixture()
def app_and_socketio():
    application, socketio = create_app(TestConfig)
    yield application, socketio
    application.extensions['drawit']['game'].scheduler.cancel_all()


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(app_and_socketio):
    application, socketio = app_and_socketio
    clients = []

    def _make():
        test_client = socketio.test_client(application, flask_test_client=application.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
