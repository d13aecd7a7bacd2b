"""Errors raised by the match engine.

``GameError`` subclasses are recoverable: socket handlers turn them into an
``error`` event for the connection that caused them and the room state is left
untouched. ``IllegalTransition`` signals a broken engine invariant.
"""


class GameError(Exception):
    code = 'game-error'
    message = 'Something went wrong'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


class InvalidPayload(GameError):
    code = 'invalid-payload'
    message = 'roomId is required'


class RoomNotFound(GameError):
    code = 'room-not-found'
    message = 'Room not found'


class RoomFull(GameError):
    code = 'room-full'
    message = 'Room is full'


class AlreadyInRoom(GameError):
    code = 'already-in-room'
    message = 'You are already in a room'


class PlayerNotInRoom(GameError):
    code = 'not-in-room'
    message = 'You are not a player in this room'


class NotEnoughPlayers(GameError):
    code = 'not-enough-players'
    message = 'Cannot start toss: waiting for second player!'


class TossAlreadyDone(GameError):
    code = 'toss-already-done'
    message = 'The toss has already been done'


class MatchFinished(GameError):
    code = 'match-finished'
    message = 'This match is already finished'


class InvalidChoiceValue(GameError):
    code = 'invalid-choice'
    message = 'Pick a whole number from 1 to 6'


class IllegalTransition(RuntimeError):
    """Raised when the engine would break a match invariant."""
