import random
import string
import threading
from typing import Dict, List, MutableMapping, Optional, Set

from handcricket.models import MatchConfiguration, MatchState, Player

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_room_code(taken, length=6, rng=None):
    """Generate a unique, short room code."""
    rng = rng or random
    while True:
        code = ''.join(rng.choices(ROOM_CODE_ALPHABET, k=length))
        if code not in taken:
            return code


def normalize_room_code(room_id) -> str:
    if not isinstance(room_id, str):
        return ''
    return room_id.strip().upper()


class RoomRegistry:
    """Thread-safe map of room code -> MatchState, plus connection -> room code.

    A connection has at most one current room. Finished rooms it has moved on
    from are remembered so that its disconnect still tears them down.

    The backing store can be swapped for any mutable mapping; access is always
    serialised through the registry's own lock.
    """

    def __init__(self, store: Optional[MutableMapping[str, MatchState]] = None, code_length: int = 6, rng=None):
        self._rooms = store if store is not None else {}
        self._player_rooms: Dict[str, str] = {}
        self._released: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()
        self.code_length = code_length
        self.rng = rng

    def create(self, host: Player, config: MatchConfiguration) -> MatchState:
        with self._lock:
            room_id = generate_room_code(self._rooms, self.code_length, self.rng)
            state = MatchState(room_id=room_id, config=config, host=host)
            self._rooms[room_id] = state
            self._player_rooms[host.id] = room_id
            return state

    def get(self, room_id) -> Optional[MatchState]:
        with self._lock:
            return self._rooms.get(normalize_room_code(room_id))

    def bind_player(self, player_id: str, room_id: str) -> None:
        with self._lock:
            self._player_rooms[player_id] = room_id

    def release_player(self, player_id: str, room_id: str) -> None:
        """Detach a connection from ``room_id`` without removing the room."""
        with self._lock:
            if self._player_rooms.get(player_id) == room_id:
                del self._player_rooms[player_id]
                self._released.setdefault(player_id, set()).add(room_id)

    def room_for_player(self, player_id: str) -> Optional[str]:
        with self._lock:
            return self._player_rooms.get(player_id)

    def rooms_for_player(self, player_id: str) -> List[str]:
        """Current room first, then the finished rooms the connection left."""
        with self._lock:
            current = self._player_rooms.get(player_id)
            released = sorted(self._released.get(player_id, ()))
            return ([current] if current else []) + released

    def delete(self, room_id) -> Optional[MatchState]:
        with self._lock:
            state = self._rooms.pop(normalize_room_code(room_id), None)
            if state is not None:
                for p in state.players:
                    if self._player_rooms.get(p.id) == state.room_id:
                        del self._player_rooms[p.id]
                    released = self._released.get(p.id)
                    if released is not None:
                        released.discard(state.room_id)
                        if not released:
                            del self._released[p.id]
            return state

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __len__(self):
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id):
        with self._lock:
            return normalize_room_code(room_id) in self._rooms
