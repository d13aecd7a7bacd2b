"""Outbound delivery of match events.

The engine only talks to the small interface below (``publish``, ``send``,
``enter_room``, ``leave_room``, ``close_room``); ``SocketIOBroadcaster`` maps it onto
Flask-SocketIO rooms, ``RecordingBroadcaster`` keeps events in memory.
"""
from collections import defaultdict
from typing import Any, Dict, List, Set


class SocketIOBroadcaster:
    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def publish(self, room_id: str, event: str, payload: Dict[str, Any]) -> None:
        # Use socketio.emit since this may be called from a background task
        self.socketio.emit(event, payload, to=room_id, namespace=self.namespace)

    def send(self, player_id: str, event: str, payload: Dict[str, Any]) -> None:
        self.socketio.emit(event, payload, to=player_id, namespace=self.namespace)

    def enter_room(self, player_id: str, room_id: str) -> None:
        self.socketio.server.enter_room(player_id, room_id, namespace=self.namespace)

    def leave_room(self, player_id: str, room_id: str) -> None:
        self.socketio.server.leave_room(player_id, room_id, namespace=self.namespace)

    def close_room(self, room_id: str) -> None:
        self.socketio.close_room(room_id, namespace=self.namespace)


class RecordingBroadcaster:
    def __init__(self):
        self.events: List[Dict[str, Any]] = []
        self.members: Dict[str, Set[str]] = defaultdict(set)

    def publish(self, room_id, event, payload):
        self.events.append({'to': room_id, 'event': event, 'payload': payload})

    def send(self, player_id, event, payload):
        self.events.append({'to': player_id, 'event': event, 'payload': payload})

    def enter_room(self, player_id, room_id):
        self.members[room_id].add(player_id)

    def leave_room(self, player_id, room_id):
        self.members[room_id].discard(player_id)

    def close_room(self, room_id):
        self.members.pop(room_id, None)

    def named(self, event: str) -> List[Dict[str, Any]]:
        return [e['payload'] for e in self.events if e['event'] == event]

    def names(self) -> List[str]:
        return [e['event'] for e in self.events]

    def clear(self) -> None:
        self.events.clear()
