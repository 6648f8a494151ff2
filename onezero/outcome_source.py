"""
outcome_source.py - Outcome oracles for concluding binary options

Classes:
- StaticOutcomeSource: Outcomes fixed per option id
- CallableOutcomeSource: Outcomes computed by a function
- ThresholdOutcomeSource: Outcome from an observed value series against a strike

All sources answer True for LONG and False for SHORT, and satisfy the
OutcomeSource protocol in onezero.core.
"""

from bisect import bisect_right
from typing import Callable, Dict, List, Optional, Tuple

from .core import StateError


class StaticOutcomeSource:
    """
    Outcomes fixed in advance (timestamp is ignored).

    Options without an entry resolve to default; with no default they cannot
    be concluded.
    """

    def __init__(self, outcomes: Optional[Dict[int, bool]] = None, default: Optional[bool] = None):
        self.outcomes: Dict[int, bool] = dict(outcomes or {})
        self.default = default

    def outcome_for(self, option_id: int, timestamp: int) -> bool:
        outcome = self.outcomes.get(option_id, self.default)
        if outcome is None:
            raise StateError(f"No outcome available for option {option_id}")
        return outcome

    def set_outcome(self, option_id: int, outcome_is_long: bool):
        self.outcomes[option_id] = outcome_is_long

    def __repr__(self):
        return f"StaticOutcomeSource({len(self.outcomes)} outcomes, default={self.default})"


class CallableOutcomeSource:
    """Outcomes computed on demand by fn(option_id, timestamp)."""

    def __init__(self, fn: Callable[[int, int], bool]):
        self.fn = fn

    def outcome_for(self, option_id: int, timestamp: int) -> bool:
        return bool(self.fn(option_id, timestamp))


class ThresholdOutcomeSource:
    """
    Resolve options by comparing an observed series with a per-option strike.

    The observation used is the most recent one at or before the resolution
    timestamp. LONG wins when that observation is at or above the strike.

    Example:
        source = ThresholdOutcomeSource({0: 100_000})
        source.add_observation(1_700_000_000, 99_500)
        source.add_observation(1_700_001_200, 101_250)
        source.outcome_for(0, 1_700_001_300)   # True
    """

    def __init__(
        self,
        strikes: Optional[Dict[int, int]] = None,
        observations: Optional[List[Tuple[int, int]]] = None,
    ):
        self.strikes: Dict[int, int] = dict(strikes or {})
        # Sort by timestamp to keep lookups valid
        self.observations: List[Tuple[int, int]] = sorted(observations or [], key=lambda x: x[0])

    def set_strike(self, option_id: int, strike: int):
        self.strikes[option_id] = strike

    def add_observation(self, timestamp: int, value: int):
        self.observations.append((timestamp, value))
        self.observations.sort(key=lambda x: x[0])

    def value_at(self, timestamp: int) -> Optional[int]:
        """Most recent observation at or before timestamp."""
        idx = bisect_right([t for t, _ in self.observations], timestamp)
        if idx == 0:
            return None
        return self.observations[idx - 1][1]

    def outcome_for(self, option_id: int, timestamp: int) -> bool:
        strike = self.strikes.get(option_id)
        if strike is None:
            raise StateError(f"No strike set for option {option_id}")
        value = self.value_at(timestamp)
        if value is None:
            raise StateError(f"No observation at or before {timestamp} for option {option_id}")
        return value >= strike

    def __repr__(self):
        return f"ThresholdOutcomeSource({len(self.strikes)} strikes, {len(self.observations)} observations)"
