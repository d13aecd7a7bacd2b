"""Collection and resolution of a single ball.

Every function here mutates a ``MatchState`` in place and assumes the caller
holds ``state.lock``. Emitting events and arming timers is left to the engine.
"""
from typing import List, Optional, Tuple

from handcricket.errors import IllegalTransition, InvalidChoiceValue
from handcricket.models import (
    CHOICE_MAX,
    CHOICE_MIN,
    BallRecord,
    BallRound,
    MatchState,
    MatchStatus,
)

_PLAYING = (MatchStatus.INNINGS_1, MatchStatus.INNINGS_2)


def validate_choice(value) -> int:
    # bool is an int subclass; True must not count as a 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidChoiceValue()
    if not CHOICE_MIN <= value <= CHOICE_MAX:
        raise InvalidChoiceValue(f"Choice must be between {CHOICE_MIN} and {CHOICE_MAX}, got {value}")
    return value


def score_ball(batting_value: int, bowling_value: int) -> Tuple[bool, int]:
    """Return ``(is_out, runs)`` for one pair of picks."""
    if batting_value == bowling_value:
        return True, 0
    return False, batting_value


def start_round(state: MatchState, now: float, timeout: float) -> BallRound:
    """Open the next ball of the active innings."""
    innings = state.active_innings
    if state.status not in _PLAYING or innings is None:
        raise IllegalTransition(f"room {state.room_id}: no innings in progress")
    if innings.balls_bowled >= state.config.total_balls:
        raise IllegalTransition(f"room {state.room_id}: innings {innings.number} has no balls left")
    if state.current_round is not None and not state.current_round.resolved:
        raise IllegalTransition(f"room {state.room_id}: round {state.round_id} is still open")

    state.round_counter += 1
    state.current_round = BallRound(round_id=state.round_counter, deadline=now + timeout)
    return state.current_round


def accepts_choice(state: MatchState, round_id: Optional[int] = None) -> bool:
    """True when the current ball is open and ``round_id`` (if given) still matches it."""
    ball = state.current_round
    if state.status not in _PLAYING or ball is None or ball.resolved:
        return False
    return round_id is None or round_id == ball.round_id


def record_choice(state: MatchState, player_id: str, value: int) -> bool:
    """Store ``value`` for ``player_id``; a resubmission overwrites the earlier pick.

    Returns True once both players have a choice in.
    """
    if not state.has_player(player_id):
        raise IllegalTransition(f"room {state.room_id}: {player_id} is not a player")
    ball = state.current_round
    ball.choices[player_id] = value
    return all(p.id in ball.choices for p in state.players)


def fill_missing_choices(state: MatchState, rng) -> List[str]:
    """Pick a uniform 1-6 value for every player who let the clock run out."""
    ball = state.current_round
    filled = []
    for p in state.players:
        if p.id not in ball.choices:
            ball.choices[p.id] = rng.randint(CHOICE_MIN, CHOICE_MAX)
            filled.append(p.id)
    return filled


def resolve_round(state: MatchState) -> Optional[BallRecord]:
    """Score the current ball. Runs once per round; later calls return None."""
    ball = state.current_round
    if ball is None or ball.resolved:
        return None
    innings = state.active_innings
    bat = ball.choices.get(innings.batting.id)
    bowl = ball.choices.get(innings.bowling.id)
    if bat is None or bowl is None:
        raise IllegalTransition(f"room {state.room_id}: round {ball.round_id} is missing a choice")

    ball.resolved = True
    is_out, runs = score_ball(bat, bowl)
    innings.balls_bowled += 1
    if is_out:
        innings.wickets_left = max(0, innings.wickets_left - 1)
    else:
        innings.score += runs

    record = BallRecord(
        round_id=ball.round_id,
        batting_value=bat,
        bowling_value=bowl,
        is_out=is_out,
        runs=runs,
    )
    innings.history.append(record)
    return record
