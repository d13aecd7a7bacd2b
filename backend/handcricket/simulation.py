"""Offline match playback on a virtual clock.

Nobody picks a number, so every ball is settled by the timeout fallback.
Handy for eyeballing the event stream without running a server.
"""
import logging
import random

from handcricket.services.broadcaster import RecordingBroadcaster
from handcricket.services.match import MatchEngine
from handcricket.services.registry import RoomRegistry
from handcricket.services.scheduler import VirtualTimer

logger = logging.getLogger(__name__)


def simulate_match(config, timings, seed=None, bots=('bot-1', 'bot-2')):
    rng = random.Random(seed)
    broadcaster = RecordingBroadcaster()
    timer = VirtualTimer()
    engine = MatchEngine(
        registry=RoomRegistry(rng=rng),
        broadcaster=broadcaster,
        timer=timer,
        config=config,
        timings=timings,
        rng=rng,
        logger=logger,
    )
    home, away = bots
    state = engine.create_room(home)
    engine.join_room(state.room_id, away)
    engine.start_toss(state.room_id, home)
    timer.run_until_idle()
    return state, broadcaster.events
