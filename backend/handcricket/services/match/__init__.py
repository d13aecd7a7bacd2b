from handcricket.services.match.engine import MatchEngine, ScheduledAction
from handcricket.services.match.innings import InningsOutcome

__all__ = ['MatchEngine', 'ScheduledAction', 'InningsOutcome']
