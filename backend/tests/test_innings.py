import pytest

from handcricket.errors import IllegalTransition
from handcricket.models import MatchConfiguration, MatchStatus
from handcricket.services.match.innings import (
    InningsOutcome,
    advance_after_ball,
    chase_complete,
    conclude_match,
    innings_exhausted,
    switch_innings,
)
from test_ball import make_state, play


def test_open_innings_swaps_roles_for_the_chase():
    state = make_state()
    first, second = state.first_innings, state.second_innings
    assert state.status == MatchStatus.INNINGS_1
    assert state.current_innings == 1
    assert (first.batting.id, first.bowling.id) == ('alice', 'bob')
    assert (second.batting.id, second.bowling.id) == ('bob', 'alice')
    assert first.wickets_left == second.wickets_left == 2
    assert second.target == 0


def test_innings_exhausted_by_wickets_or_balls():
    config = MatchConfiguration(overs=1, balls_per_over=2, max_wickets=2)
    state = make_state(overs=1, balls_per_over=2, max_wickets=2)
    innings = state.first_innings
    assert not innings_exhausted(innings, config)
    innings.balls_bowled = 2
    assert innings_exhausted(innings, config)
    innings.balls_bowled = 1
    innings.wickets_left = 0
    assert innings_exhausted(innings, config)


def test_continue_while_innings_alive():
    state = make_state()
    play(state, 4, 1)
    assert advance_after_ball(state) is InningsOutcome.CONTINUE
    assert state.status == MatchStatus.INNINGS_1


def test_first_innings_ends_early_on_wickets():
    # overs=1, ballsPerOver=6, maxWickets=2: two dismissals inside six balls
    state = make_state(overs=1, balls_per_over=6, max_wickets=2)
    outcomes = []
    for bat, bowl in [(4, 1), (3, 3), (6, 2), (2, 2)]:
        play(state, bat, bowl)
        outcomes.append(advance_after_ball(state))

    assert outcomes == [InningsOutcome.CONTINUE] * 3 + [InningsOutcome.INNINGS_BREAK]
    assert state.first_innings.balls_bowled == 4
    assert state.first_innings.wickets_left == 0
    assert state.second_innings.target == 11
    assert state.status == MatchStatus.INNINGS_2
    assert state.current_innings == 2


def test_first_innings_ends_when_balls_run_out():
    state = make_state(overs=1, balls_per_over=2, max_wickets=5)
    play(state, 1, 2)
    assert advance_after_ball(state) is InningsOutcome.CONTINUE
    play(state, 5, 2)
    assert advance_after_ball(state) is InningsOutcome.INNINGS_BREAK
    assert state.second_innings.target == 7


def test_target_is_set_only_once():
    state = make_state()
    play(state, 3, 1)
    switch_innings(state)
    with pytest.raises(IllegalTransition):
        switch_innings(state)
    assert state.second_innings.target == 4


def test_chase_ends_match_as_soon_as_target_is_reached():
    state = make_state(overs=1, balls_per_over=6, max_wickets=2)
    play(state, 5, 1)
    play(state, 5, 5)
    play(state, 4, 4)
    assert advance_after_ball(state) is InningsOutcome.INNINGS_BREAK
    assert state.second_innings.target == 6

    play(state, 3, 1)
    assert advance_after_ball(state) is InningsOutcome.CONTINUE
    assert not chase_complete(state)
    play(state, 2, 6)
    assert advance_after_ball(state) is InningsOutcome.CONTINUE
    play(state, 1, 4)
    assert chase_complete(state)
    assert advance_after_ball(state) is InningsOutcome.MATCH_OVER

    assert state.second_innings.balls_bowled == 3
    assert state.status == MatchStatus.FINISHED
    assert state.result.winner.id == 'bob'
    assert state.result.margin_text == 'by 2 wickets'


def test_defended_total_wins_by_runs():
    state = make_state(overs=1, balls_per_over=6, max_wickets=2)
    for pair in [(6, 1), (6, 2), (1, 1), (2, 2)]:
        play(state, *pair)
    advance_after_ball(state)
    assert state.second_innings.target == 13

    play(state, 4, 4)
    assert advance_after_ball(state) is InningsOutcome.CONTINUE
    play(state, 3, 1)
    assert advance_after_ball(state) is InningsOutcome.CONTINUE
    play(state, 2, 2)
    assert advance_after_ball(state) is InningsOutcome.MATCH_OVER

    result = state.result
    assert result.winner.id == 'alice'
    assert result.margin == 13 - 3 - 1
    assert result.margin_text == 'by 9 runs'


def test_chase_won_on_last_ball_counts_wickets_in_hand():
    state = make_state(overs=1, balls_per_over=1, max_wickets=2)
    play(state, 2, 1)
    advance_after_ball(state)
    play(state, 3, 1)
    assert advance_after_ball(state) is InningsOutcome.MATCH_OVER
    assert state.result.winner.id == 'bob'
    assert state.result.margin_text == 'by 2 wickets'


def test_margin_pluralization():
    state = make_state(overs=1, balls_per_over=6, max_wickets=2)
    play(state, 1, 1)
    play(state, 1, 1)
    advance_after_ball(state)
    play(state, 6, 6)
    play(state, 4, 3)
    assert state.second_innings.wickets_left == 1
    assert advance_after_ball(state) is InningsOutcome.MATCH_OVER
    assert state.result.margin_text == 'by 1 wicket'


def test_level_scores_go_to_the_side_batting_first():
    state = make_state(overs=1, balls_per_over=1, max_wickets=2)
    play(state, 4, 1)
    advance_after_ball(state)
    play(state, 4, 2)
    assert advance_after_ball(state) is InningsOutcome.MATCH_OVER
    result = state.result
    assert result.winner.id == 'alice'
    assert result.margin == 0
    assert result.margin_text == 'by 0 runs'


def test_finished_is_terminal():
    state = make_state(overs=1, balls_per_over=1, max_wickets=2)
    play(state, 4, 1)
    advance_after_ball(state)
    play(state, 6, 1)
    advance_after_ball(state)
    assert state.status == MatchStatus.FINISHED
    with pytest.raises(IllegalTransition):
        state.advance(MatchStatus.INNINGS_2)
    with pytest.raises(IllegalTransition):
        conclude_match(state)
