import os
import random
import sys

import pytest

# Ensure the backend root (containing the `handcricket` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from handcricket import create_app, socketio
from handcricket.models import MatchConfiguration, MatchTimings
from handcricket.services.broadcaster import RecordingBroadcaster
from handcricket.services.match import MatchEngine
from handcricket.services.registry import RoomRegistry
from handcricket.services.scheduler import VirtualTimer

TIMINGS = MatchTimings(ball_timeout=5, result_display=2, next_ball_delay=3, innings_break=3, toss_delay=3)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    SOCKETIO_NAMESPACE = '/'
    MATCH_OVERS = 1
    BALLS_PER_OVER = 6
    MAX_WICKETS = 2
    BALL_TIMEOUT_SEC = 5
    RESULT_DISPLAY_SEC = 2
    NEXT_BALL_DELAY_SEC = 3
    INNINGS_BREAK_SEC = 3
    TOSS_DELAY_SEC = 3
    ROOM_CODE_LENGTH = 6
    DEFAULT_PLAYER_NAME = 'Player {slot}'
    BALL_HISTORY_WINDOW = 4
    RANDOM_SEED = '7'


class ScriptedRandom:
    """Stand-in for random.Random: scripted toss index and fallback picks."""

    def __init__(self, toss=0, picks=()):
        self.toss = toss
        self.picks = list(picks)
        self._codes = random.Random(0)

    def choice(self, seq):
        return seq[self.toss]

    def randint(self, a, b):
        return self.picks.pop(0) if self.picks else a

    def choices(self, population, k=1):
        return self._codes.choices(population, k=k)


class MatchDriver:
    """Plays balls against an engine running on a VirtualTimer."""

    def __init__(self, engine, timer, broadcaster):
        self.engine = engine
        self.timer = timer
        self.broadcaster = broadcaster
        self.state = None

    @property
    def room_id(self):
        return self.state.room_id

    def start(self, host='alice', guest='bob'):
        self.state = self.engine.create_room(host)
        self.engine.join_room(self.state.room_id, guest)
        self.engine.start_toss(self.state.room_id, host)
        self.timer.advance(TIMINGS.toss_delay)
        return self.state

    def submit(self, bat, bowl):
        innings = self.state.active_innings
        self.engine.submit_choice(self.room_id, innings.batting.id, bat)
        self.engine.submit_choice(self.room_id, innings.bowling.id, bowl)

    def finish_ball(self):
        self.timer.advance(TIMINGS.result_display)
        self.timer.advance(TIMINGS.next_ball_delay)

    def play(self, *pairs):
        for bat, bowl in pairs:
            self.submit(bat, bowl)
            self.finish_ball()


@pytest.fixture()
def timer():
    return VirtualTimer()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def registry():
    return RoomRegistry(rng=random.Random(1))


@pytest.fixture()
def make_engine(registry, broadcaster, timer):
    def _make(config=None, rng=None, broadcaster=broadcaster):
        return MatchEngine(
            registry=registry,
            broadcaster=broadcaster,
            timer=timer,
            config=config or MatchConfiguration(overs=1, balls_per_over=6, max_wickets=2),
            timings=TIMINGS,
            rng=rng or ScriptedRandom(toss=0),
        )
    return _make


@pytest.fixture()
def engine(make_engine):
    return make_engine()


@pytest.fixture()
def driver(engine, timer, broadcaster):
    return MatchDriver(engine, timer, broadcaster)


@pytest.fixture()
def app_timer():
    return VirtualTimer()


@pytest.fixture()
def flask_app(app_timer):
    application = create_app(TestConfig, timer=app_timer, rng=ScriptedRandom(toss=0))
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        if test_client.is_connected():
            test_client.disconnect()
