import logging
import random
from enum import Enum
from functools import partial
from typing import Optional

from handcricket.errors import (
    AlreadyInRoom,
    InvalidPayload,
    MatchFinished,
    NotEnoughPlayers,
    PlayerNotInRoom,
    RoomFull,
    RoomNotFound,
    TossAlreadyDone,
)
from handcricket.models import (
    MatchConfiguration,
    MatchState,
    MatchStatus,
    MatchTimings,
    Player,
)
from handcricket.services.match.ball import (
    accepts_choice,
    fill_missing_choices,
    record_choice,
    resolve_round,
    start_round,
    validate_choice,
)
from handcricket.services.match.innings import InningsOutcome, advance_after_ball, open_innings
from handcricket.services.registry import normalize_room_code


class ScheduledAction(Enum):
    START_BALL = 'start_ball'
    BALL_TIMEOUT = 'ball_timeout'
    END_OF_BALL = 'end_of_ball'


class MatchEngine:
    """Runs every room's match state machine.

    Inbound events and timer callbacks for a room all run under that room's
    lock, so they are applied one at a time in arrival order. A scheduled
    callback remembers the room object and the round it was armed in; when it
    fires after a teardown or after the match has moved on it does nothing.
    """

    def __init__(
        self,
        registry,
        broadcaster,
        timer,
        config: Optional[MatchConfiguration] = None,
        timings: Optional[MatchTimings] = None,
        rng=None,
        logger=None,
        name_template: str = 'Player {slot}',
        history_window: int = 4,
    ):
        self.registry = registry
        self.broadcaster = broadcaster
        self.timer = timer
        self.config = config or MatchConfiguration()
        self.timings = timings or MatchTimings()
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)
        self.name_template = name_template
        self.history_window = history_window

    # ---- Inbound events ----

    def create_room(self, player_id: str, display_name=None) -> MatchState:
        self._leave_finished_room(player_id)
        if self.registry.room_for_player(player_id):
            raise AlreadyInRoom()
        host = Player(id=player_id, name=self._display_name(display_name, slot=1))
        state = self.registry.create(host, self.config)
        with state.lock:
            try:
                self.broadcaster.enter_room(player_id, state.room_id)
                self.broadcaster.send(player_id, 'room-created', {
                    'roomId': state.room_id,
                    'player': host.to_dict(),
                    'config': state.config.to_dict(),
                })
            except Exception:
                # The connection went away before it could be placed in the room
                state.torn_down = True
                self.registry.delete(state.room_id)
                self.logger.warning(f"[room-abort] room={state.room_id} host={player_id}")
                raise
        self.logger.info(f"[room-created] room={state.room_id} host={player_id}")
        return state

    def join_room(self, room_id, player_id: str, display_name=None) -> MatchState:
        self._leave_finished_room(player_id)
        state = self._room(room_id)
        with state.lock:
            self._ensure_live(state)
            if state.has_player(player_id):
                raise AlreadyInRoom('You are already in this room')
            if self.registry.room_for_player(player_id):
                raise AlreadyInRoom()
            if state.is_full or state.status != MatchStatus.WAITING:
                raise RoomFull()

            # Nothing is changed until the connection is actually in the room
            self.broadcaster.enter_room(player_id, state.room_id)
            state.guest = Player(id=player_id, name=self._display_name(display_name, slot=2))
            self.registry.bind_player(player_id, state.room_id)
            state.advance(MatchStatus.TOSS)
            self.broadcaster.publish(state.room_id, 'room-joined', {
                'roomId': state.room_id,
                'players': [p.to_dict() for p in state.players],
                'status': state.status.value,
            })
        self.logger.info(f"[room-joined] room={state.room_id} guest={player_id}")
        return state

    def start_toss(self, room_id, player_id: str) -> MatchState:
        state = self._room(room_id)
        with state.lock:
            self._ensure_live(state)
            if state.status == MatchStatus.FINISHED:
                raise MatchFinished()
            if not state.has_player(player_id):
                raise PlayerNotInRoom()
            if not state.is_full:
                raise NotEnoughPlayers()
            if state.status != MatchStatus.TOSS:
                raise TossAlreadyDone()

            winner = self.rng.choice(state.players)
            other = state.guest if winner is state.host else state.host
            state.toss_winner = winner
            open_innings(state, batting_first=winner, bowling_first=other)
            self.logger.info(f"[toss] room={state.room_id} winner={winner.id} bats_first={winner.id}")
            self.broadcaster.publish(state.room_id, 'toss-result', {
                'winner': winner.id,
                'winnerName': winner.name,
                'battingFirst': winner.id,
                'bowlingFirst': other.id,
                'message': f"🎉 {winner.name} won the toss and will bat first!",
                'gameState': state.game_state(),
            })
            self._schedule(state, self.timings.toss_delay, ScheduledAction.START_BALL)
        return state

    def submit_choice(self, room_id, player_id: str, value, round_id=None) -> bool:
        """Record a pick for the open ball.

        Returns False when the pick is stale (ball already resolved, no ball
        open, or ``round_id`` names another round); such picks are dropped.
        """
        state = self._room(room_id)
        with state.lock:
            self._ensure_live(state)
            if not state.has_player(player_id):
                raise PlayerNotInRoom()
            value = validate_choice(value)
            if not accepts_choice(state, round_id):
                self.logger.debug(
                    f"[choice-ignored] room={state.room_id} player={player_id} "
                    f"round={round_id} current={state.round_id} status={state.status.value}"
                )
                return False

            ball = state.current_round
            both_in = record_choice(state, player_id, value)
            self.broadcaster.publish(state.room_id, 'choice-submitted', {
                'playerId': player_id,
                'choiceCount': ball.choice_count,
                'roundId': ball.round_id,
            })
            if both_in:
                self.timer.cancel(ball.timer)
                self._resolve(state)
        return True

    def handle_disconnect(self, player_id: str) -> bool:
        """Tear down every room of a departing player. No resume is possible."""
        torn_down = False
        for room_id in self.registry.rooms_for_player(player_id):
            state = self.registry.get(room_id)
            if state is not None and self._teardown(state, player_id):
                torn_down = True
        return torn_down

    def _teardown(self, state: MatchState, player_id: str) -> bool:
        with state.lock:
            if state.torn_down:
                return False
            state.torn_down = True
            self._cancel_timers(state)
            self.broadcaster.publish(state.room_id, 'player-left', {
                'playerId': player_id,
                'message': '⚠️ Opponent left the game. Match ended.',
            })
            self.registry.delete(state.room_id)
            self.broadcaster.close_room(state.room_id)
        self.logger.info(f"[teardown] room={state.room_id} left={player_id} status={state.status.value}")
        return True

    # ---- Timer driven steps ----

    def _schedule(self, state: MatchState, delay: float, action: ScheduledAction):
        expected_round = state.round_id
        state.timers = [h for h in state.timers if h.active]
        handle = self.timer.after(delay, partial(self._fire, state, action, expected_round))
        state.timers.append(handle)
        self.logger.debug(
            f"[timer-set] room={state.room_id} action={action.value} round={expected_round} delay={delay}s"
        )
        return handle

    def _fire(self, state: MatchState, action: ScheduledAction, expected_round: int) -> None:
        with state.lock:
            stale = (
                state.torn_down
                or self.registry.get(state.room_id) is not state
                or state.status == MatchStatus.FINISHED
                or state.round_id != expected_round
            )
            if stale:
                self.logger.info(
                    f"[timer-abort] room={state.room_id} action={action.value} "
                    f"expected_round={expected_round} actual_round={state.round_id}"
                )
                return
            self.logger.debug(f"[timer-fire] room={state.room_id} action={action.value} round={expected_round}")
            if action is ScheduledAction.START_BALL:
                self._start_ball(state)
            elif action is ScheduledAction.BALL_TIMEOUT:
                self._on_ball_timeout(state)
            elif action is ScheduledAction.END_OF_BALL:
                self._end_of_ball(state)

    def _start_ball(self, state: MatchState) -> None:
        ball = start_round(state, self.timer.now(), self.timings.ball_timeout)
        ball.timer = self._schedule(state, self.timings.ball_timeout, ScheduledAction.BALL_TIMEOUT)
        self.broadcaster.publish(state.room_id, 'ball-start', {
            'inningsNumber': state.current_innings,
            'roundId': ball.round_id,
            'deadline': ball.deadline,
            'timeoutSec': self.timings.ball_timeout,
            'gameState': state.game_state(),
        })

    def _on_ball_timeout(self, state: MatchState) -> None:
        if state.current_round.resolved:
            return
        filled = fill_missing_choices(state, self.rng)
        self.logger.info(f"[ball-timeout] room={state.room_id} round={state.round_id} autopicked={filled}")
        self._resolve(state)

    def _resolve(self, state: MatchState) -> None:
        record = resolve_round(state)
        if record is None:
            return
        innings = state.active_innings
        self.logger.info(
            f"[ball-resolve] room={state.room_id} round={record.round_id} bat={record.batting_value} "
            f"bowl={record.bowling_value} out={record.is_out} score={innings.score}/{innings.wickets_lost}"
        )
        self.broadcaster.publish(state.room_id, 'ball-result', {
            'roundId': record.round_id,
            'bat': record.batting_value,
            'bowl': record.bowling_value,
            'battingId': innings.batting.id,
            'bowlingId': innings.bowling.id,
            'isOut': record.is_out,
            'runs': record.runs,
            'message': '💥 OUT!' if record.is_out else f"+{record.runs} {'run' if record.runs == 1 else 'runs'}!",
            'gameState': state.game_state(),
            'recentBalls': [r.to_dict() for r in innings.recent(self.history_window)],
        })
        self._schedule(state, self.timings.result_display, ScheduledAction.END_OF_BALL)

    def _end_of_ball(self, state: MatchState) -> None:
        outcome = advance_after_ball(state)
        if outcome is InningsOutcome.CONTINUE:
            self._schedule(state, self.timings.next_ball_delay, ScheduledAction.START_BALL)
        elif outcome is InningsOutcome.INNINGS_BREAK:
            target = state.second_innings.target
            self.logger.info(
                f"[innings-end] room={state.room_id} first_innings={state.first_innings.score} target={target}"
            )
            self.broadcaster.publish(state.room_id, 'innings-end', {
                'target': target,
                'firstInningsScore': state.first_innings.score,
                'message': f"First innings over. {state.second_innings.batting.name} needs {target} to win.",
                'gameState': state.game_state(),
            })
            self._schedule(state, self.timings.innings_break, ScheduledAction.START_BALL)
        else:
            self._finish(state)

    def _finish(self, state: MatchState) -> None:
        result = state.result
        self._cancel_timers(state)
        self.logger.info(
            f"[match-end] room={state.room_id} winner={result.winner.id} margin='{result.margin_text}'"
        )
        payload = result.to_dict()
        payload.update({
            'message': f"🏆 {result.winner.name} won {result.margin_text}!",
            'firstInningsScore': state.first_innings.score,
            'secondInningsScore': state.second_innings.score,
            'target': state.second_innings.target,
            'gameState': state.game_state(),
        })
        self.broadcaster.publish(state.room_id, 'match-end', payload)

    # ---- Helpers ----

    def _room(self, room_id) -> MatchState:
        if not normalize_room_code(room_id):
            raise InvalidPayload()
        state = self.registry.get(room_id)
        if state is None:
            raise RoomNotFound()
        return state

    def _ensure_live(self, state: MatchState) -> None:
        # The room may have been torn down while we waited for its lock
        if state.torn_down:
            raise RoomNotFound()

    def _leave_finished_room(self, player_id: str) -> None:
        """Release a player from a room whose match is over.

        The room stays registered until one of its players disconnects.
        """
        room_id = self.registry.room_for_player(player_id)
        state = self.registry.get(room_id) if room_id else None
        if state is None:
            return
        with state.lock:
            if state.torn_down or state.status != MatchStatus.FINISHED:
                return
            self.registry.release_player(player_id, state.room_id)
            self.broadcaster.leave_room(player_id, state.room_id)
        self.logger.info(f"[room-released] room={state.room_id} player={player_id}")

    def _cancel_timers(self, state: MatchState) -> None:
        for handle in state.timers:
            self.timer.cancel(handle)
        state.timers = []

    def _display_name(self, display_name, slot: int) -> str:
        if isinstance(display_name, str) and display_name.strip():
            return display_name.strip()[:32]
        return self.name_template.format(slot=slot)
