"""Innings progression: end-of-innings detection, the innings break, the result."""
from enum import Enum

from handcricket.errors import IllegalTransition
from handcricket.models import (
    Innings,
    MatchConfiguration,
    MatchResult,
    MatchState,
    MatchStatus,
    Player,
)


class InningsOutcome(Enum):
    CONTINUE = 'continue'
    INNINGS_BREAK = 'innings_break'
    MATCH_OVER = 'match_over'


def innings_exhausted(innings: Innings, config: MatchConfiguration) -> bool:
    return innings.wickets_left <= 0 or innings.balls_bowled >= config.total_balls


def chase_complete(state: MatchState) -> bool:
    second = state.second_innings
    return state.current_innings == 2 and second.score >= second.target


def open_innings(state: MatchState, batting_first: Player, bowling_first: Player) -> None:
    """Fix both innings after the toss. The second innings swaps the roles."""
    wickets = state.config.max_wickets
    state.first_innings = Innings(number=1, batting=batting_first, bowling=bowling_first, max_wickets=wickets)
    state.second_innings = Innings(number=2, batting=bowling_first, bowling=batting_first, max_wickets=wickets)
    state.current_innings = 1
    state.advance(MatchStatus.INNINGS_1)


def switch_innings(state: MatchState) -> int:
    """Close the first innings and set the chase target. Returns the target."""
    if state.current_innings != 1 or state.second_innings.target:
        raise IllegalTransition(f"room {state.room_id}: innings already switched")
    state.second_innings.target = state.first_innings.score + 1
    state.current_innings = 2
    state.advance(MatchStatus.INNINGS_2)
    return state.second_innings.target


def conclude_match(state: MatchState) -> MatchResult:
    """Decide the winner and margin and finish the match.

    A successful chase wins by the wickets in hand; otherwise the side that
    batted first wins by ``target - score - 1`` runs.
    """
    first, second = state.first_innings, state.second_innings
    if second.score >= second.target:
        result = MatchResult(winner=second.batting, margin=second.wickets_left, margin_unit='wicket')
    else:
        result = MatchResult(winner=first.batting, margin=second.target - second.score - 1, margin_unit='run')
    state.advance(MatchStatus.FINISHED)
    state.result = result
    return result


def advance_after_ball(state: MatchState) -> InningsOutcome:
    """Decide what follows the ball that was just resolved."""
    innings = state.active_innings
    if innings_exhausted(innings, state.config):
        if state.current_innings == 1:
            switch_innings(state)
            return InningsOutcome.INNINGS_BREAK
        conclude_match(state)
        return InningsOutcome.MATCH_OVER
    if chase_complete(state):
        conclude_match(state)
        return InningsOutcome.MATCH_OVER
    return InningsOutcome.CONTINUE
