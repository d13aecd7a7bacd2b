import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from handcricket.errors import IllegalTransition

CHOICE_MIN = 1
CHOICE_MAX = 6


class MatchStatus(str, Enum):
    WAITING = 'WAITING'
    TOSS = 'TOSS'
    INNINGS_1 = 'INNINGS_1'
    INNINGS_2 = 'INNINGS_2'
    FINISHED = 'FINISHED'

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = list(MatchStatus)


def pluralize(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


@dataclass(frozen=True)
class MatchConfiguration:
    overs: int = 2
    balls_per_over: int = 6
    max_wickets: int = 5

    def __post_init__(self):
        for name in ('overs', 'balls_per_over', 'max_wickets'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @property
    def total_balls(self) -> int:
        return self.overs * self.balls_per_over

    @classmethod
    def from_config(cls, config) -> 'MatchConfiguration':
        return cls(
            overs=int(config.get('MATCH_OVERS', 2)),
            balls_per_over=int(config.get('BALLS_PER_OVER', 6)),
            max_wickets=int(config.get('MAX_WICKETS', 5)),
        )

    def to_dict(self):
        return {
            'overs': self.overs,
            'ballsPerOver': self.balls_per_over,
            'maxWickets': self.max_wickets,
        }


@dataclass(frozen=True)
class MatchTimings:
    """Delays (seconds) between the automatic steps of a match."""
    ball_timeout: float = 5.0
    result_display: float = 2.0
    next_ball_delay: float = 3.0
    innings_break: float = 3.0
    toss_delay: float = 3.0

    @classmethod
    def from_config(cls, config) -> 'MatchTimings':
        return cls(
            ball_timeout=float(config.get('BALL_TIMEOUT_SEC', 5)),
            result_display=float(config.get('RESULT_DISPLAY_SEC', 2)),
            next_ball_delay=float(config.get('NEXT_BALL_DELAY_SEC', 3)),
            innings_break=float(config.get('INNINGS_BREAK_SEC', 3)),
            toss_delay=float(config.get('TOSS_DELAY_SEC', 3)),
        )


@dataclass
class Player:
    id: str
    name: str

    def to_dict(self):
        return {'id': self.id, 'name': self.name}


@dataclass(frozen=True)
class BallRecord:
    round_id: int
    batting_value: int
    bowling_value: int
    is_out: bool
    runs: int

    def to_dict(self):
        return {
            'roundId': self.round_id,
            'bat': self.batting_value,
            'bowl': self.bowling_value,
            'isOut': self.is_out,
            'runs': self.runs,
        }


@dataclass
class Innings:
    number: int
    batting: Player
    bowling: Player
    max_wickets: int
    score: int = 0
    wickets_left: int = field(init=False, default=0)
    balls_bowled: int = 0
    # Only set on the second innings, at the innings break
    target: int = 0
    history: List[BallRecord] = field(default_factory=list)

    def __post_init__(self):
        self.wickets_left = self.max_wickets

    @property
    def wickets_lost(self) -> int:
        return self.max_wickets - self.wickets_left

    def recent(self, count: int) -> List[BallRecord]:
        if count <= 0:
            return []
        return self.history[-count:]


@dataclass
class BallRound:
    round_id: int
    deadline: float
    choices: Dict[str, int] = field(default_factory=dict)
    resolved: bool = False
    timer: Optional[object] = field(default=None, repr=False, compare=False)

    @property
    def choice_count(self) -> int:
        return len(self.choices)


@dataclass
class MatchResult:
    winner: Player
    margin: int
    margin_unit: str  # 'wicket' or 'run'

    @property
    def margin_text(self) -> str:
        return f"by {pluralize(self.margin, self.margin_unit)}"

    def to_dict(self):
        return {
            'winner': self.winner.id,
            'winnerName': self.winner.name,
            'margin': self.margin_text,
            'marginValue': self.margin,
            'marginUnit': self.margin_unit,
        }


@dataclass(eq=False)
class MatchState:
    room_id: str
    config: MatchConfiguration
    host: Player
    guest: Optional[Player] = None
    status: MatchStatus = MatchStatus.WAITING
    toss_winner: Optional[Player] = None
    current_innings: int = 0
    first_innings: Optional[Innings] = None
    second_innings: Optional[Innings] = None
    current_round: Optional[BallRound] = None
    round_counter: int = 0
    result: Optional[MatchResult] = None
    torn_down: bool = False
    timers: list = field(default_factory=list, repr=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def players(self) -> List[Player]:
        return [p for p in (self.host, self.guest) if p is not None]

    def player(self, player_id) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def has_player(self, player_id) -> bool:
        return self.player(player_id) is not None

    @property
    def is_full(self) -> bool:
        return self.guest is not None

    @property
    def round_id(self) -> int:
        return self.current_round.round_id if self.current_round else 0

    @property
    def active_innings(self) -> Optional[Innings]:
        if self.current_innings == 1:
            return self.first_innings
        if self.current_innings == 2:
            return self.second_innings
        return None

    def advance(self, status: MatchStatus) -> None:
        """Move the match forward. Status never goes back or repeats."""
        if status.rank <= self.status.rank:
            raise IllegalTransition(
                f"room {self.room_id}: cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def game_state(self) -> Optional[dict]:
        innings = self.active_innings
        if innings is None:
            return None
        return {
            'inningsNumber': innings.number,
            'score': innings.score,
            'wickets': innings.wickets_lost,
            'wicketsLeft': innings.wickets_left,
            'balls': innings.balls_bowled,
            'overs': innings.balls_bowled // self.config.balls_per_over,
            'ballsInOver': innings.balls_bowled % self.config.balls_per_over,
            'totalOvers': self.config.overs,
            'target': innings.target if innings.number == 2 else None,
            'battingPlayer': innings.batting.id,
            'bowlingPlayer': innings.bowling.id,
            'battingName': innings.batting.name,
            'bowlingName': innings.bowling.name,
            'roundId': self.round_id,
        }

    def to_dict(self):
        """Public room summary. Connection ids are left out; players appear by name."""
        game_state = self.game_state()
        if game_state is not None:
            game_state.pop('battingPlayer')
            game_state.pop('bowlingPlayer')
        result = None
        if self.result:
            result = self.result.to_dict()
            del result['winner']
        return {
            'roomId': self.room_id,
            'status': self.status.value,
            'players': [p.name for p in self.players],
            'config': self.config.to_dict(),
            'tossWinner': self.toss_winner.name if self.toss_winner else None,
            'gameState': game_state,
            'result': result,
        }
