from functools import wraps

from flask import current_app, request
from flask_socketio import emit

from handcricket import socketio
from handcricket.errors import GameError


def _engine():
    return current_app.extensions['match_engine']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _field(data, key):
    if isinstance(data, dict):
        return data.get(key)
    return None


def _room_id(data):
    # The client may send a bare room code or {roomId: ...}
    if isinstance(data, str):
        return data
    return _field(data, 'roomId')


def reports_game_errors(handler):
    """Send GameErrors back to the calling connection as an ``error`` event."""
    @wraps(handler)
    def wrapper(*args, **kwargs):
        try:
            return handler(*args, **kwargs)
        except GameError as exc:
            current_app.logger.info(f"[error] sid={_get_sid()} event={handler.__name__} code={exc.code}")
            emit('error', exc.to_dict())
    return wrapper


def handle_connect():
    emit('connected', {'message': 'Connected', 'id': _get_sid()})


def handle_disconnect(reason=None):
    _engine().handle_disconnect(_get_sid())


@reports_game_errors
def handle_create_room(data=None):
    _engine().create_room(_get_sid(), _field(data, 'displayName'))


@reports_game_errors
def handle_join_room(data=None):
    _engine().join_room(_room_id(data), _get_sid(), _field(data, 'displayName'))


@reports_game_errors
def handle_start_toss(data=None):
    _engine().start_toss(_room_id(data), _get_sid())


@reports_game_errors
def handle_choose_number(data=None):
    _engine().submit_choice(
        _room_id(data),
        _get_sid(),
        _field(data, 'number'),
        round_id=_field(data, 'roundId'),
    )


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('create-room', handle_create_room, namespace=namespace)
    socketio.on_event('join-room', handle_join_room, namespace=namespace)
    socketio.on_event('start-toss', handle_start_toss, namespace=namespace)
    socketio.on_event('choose-number', handle_choose_number, namespace=namespace)
