import random

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def _cors_origins(value):
    if isinstance(value, str) and value != '*':
        return [o.strip() for o in value.split(',') if o.strip()]
    return value


def _make_rng(seed):
    return random.Random(int(seed)) if seed not in (None, '') else random.Random()


def create_app(config_class=Config, timer=None, rng=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = _cors_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')

    from handcricket.models import MatchConfiguration, MatchTimings
    from handcricket.services.broadcaster import SocketIOBroadcaster
    from handcricket.services.match import MatchEngine
    from handcricket.services.registry import RoomRegistry
    from handcricket.services.scheduler import SocketIOTimer

    rng = rng or _make_rng(flask_app.config.get('RANDOM_SEED'))
    engine = MatchEngine(
        registry=RoomRegistry(code_length=int(flask_app.config.get('ROOM_CODE_LENGTH', 6)), rng=rng),
        broadcaster=SocketIOBroadcaster(socketio, namespace=namespace),
        timer=timer or SocketIOTimer(socketio),
        config=MatchConfiguration.from_config(flask_app.config),
        timings=MatchTimings.from_config(flask_app.config),
        rng=rng,
        logger=flask_app.logger,
        name_template=flask_app.config.get('DEFAULT_PLAYER_NAME', 'Player {slot}'),
        history_window=int(flask_app.config.get('BALL_HISTORY_WINDOW', 4)),
    )
    flask_app.extensions['match_engine'] = engine

    # Import and register blueprints here
    from handcricket.routes import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from handcricket.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    @click.command('simulate-match')
    @click.option('--seed', type=int, default=None, help='Seed for the toss and the auto-picked numbers.')
    @click.option('--overs', type=int, default=None, help='Overs per innings (defaults to MATCH_OVERS).')
    @click.option('--wickets', type=int, default=None, help='Wickets per innings (defaults to MAX_WICKETS).')
    def simulate_match_command(seed, overs, wickets):
        """Plays a whole match between two idle bots and prints every event."""
        from handcricket.simulation import simulate_match

        base = MatchConfiguration.from_config(flask_app.config)
        match_config = MatchConfiguration(
            overs=overs or base.overs,
            balls_per_over=base.balls_per_over,
            max_wickets=wickets or base.max_wickets,
        )
        state, events = simulate_match(match_config, MatchTimings.from_config(flask_app.config), seed=seed)
        for event in events:
            click.echo(f"{event['event']:<17} {event['payload'].get('message', '')}".rstrip())
        result = state.result
        click.echo(
            f"{state.first_innings.batting.name} {state.first_innings.score}/{state.first_innings.wickets_lost}, "
            f"{state.second_innings.batting.name} {state.second_innings.score}/{state.second_innings.wickets_lost}: "
            f"{result.winner.name} won {result.margin_text}"
        )

    flask_app.cli.add_command(simulate_match_command)

    return flask_app
