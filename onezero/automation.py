"""
automation.py - Permissionless Settlement Gateway

Lets any caller (a keeper) detect options whose window has closed and have
them concluded with the outcome supplied by an OutcomeSource.

Execution order each step():
1. Advance runtime time
2. scan() for active options past their expiry
3. execute() them as one atomic batch

The Market's settlement records are the audit trail; the gateway keeps no
state of its own.
"""

from __future__ import annotations
from typing import Iterable, List, Sequence, Tuple

from .core import OutcomeSource, Settlement
from .market import Market
from .runtime import Runtime


class AutomationGateway:
    """
    Keeper-facing entry point for settlement.

    The gateway is trusted for liveness, not authority: it can only conclude
    options the Market itself considers expired, with outcomes taken from
    the configured source.

    Example:
        gateway = AutomationGateway(runtime, market, StaticOutcomeSource(default=True))
        needed, due = gateway.scan()
        if needed:
            gateway.execute("keeper", due)
    """

    def __init__(
        self,
        runtime: Runtime,
        market: Market,
        outcome_source: OutcomeSource,
        keeper: str = "keeper",
    ):
        """
        Initialize the gateway.

        Args:
            runtime: Runtime providing the clock and atomic()
            market: Market whose options are settled
            outcome_source: Oracle deciding each outcome
            keeper: Caller identity used by step() and run()
        """
        if not isinstance(outcome_source, OutcomeSource):
            raise TypeError(f"outcome_source must implement outcome_for(), got {type(outcome_source)}")
        self.runtime = runtime
        self.market = market
        self.outcome_source = outcome_source
        self.keeper = keeper
        self.verbose = market.verbose

    def scan(self) -> Tuple[bool, List[int]]:
        """
        Find active options whose start + duration has been reached.

        Read-only.

        Returns:
            (needed, due_ids) with due_ids in ascending id order;
            (False, []) when nothing is due
        """
        now = self.runtime.current_time
        due = [
            option_id
            for option_id in self.market.get_active_binary_options()
            if self.market.get_binary_option(option_id).expiry <= now
        ]
        return bool(due), due

    def execute(self, caller: str, option_ids: Sequence[int]) -> List[Settlement]:
        """
        Conclude each listed option with the oracle's outcome.

        The batch is all-or-nothing: if any id fails (not expired, already
        concluded, unknown, no outcome) no option in the batch is concluded.

        Returns:
            Settlements in the order of option_ids
        """
        settlements: List[Settlement] = []
        with self.runtime.atomic():
            now = self.runtime.current_time
            for option_id in option_ids:
                outcome_is_long = self.outcome_source.outcome_for(option_id, now)
                settlements.append(self.market.conclude(caller, option_id, outcome_is_long))
        return settlements

    def step(self, timestamp: int) -> List[Settlement]:
        """
        Advance time to timestamp and settle everything due.

        Returns:
            Settlements executed this step
        """
        self.runtime.advance_time(timestamp)
        needed, due = self.scan()
        if not needed:
            return []
        if self.verbose:
            print(f"[KEEPER] {len(due)} option(s) due at {timestamp}: {due}")
        return self.execute(self.keeper, due)

    def run(self, timestamps: Iterable[int]) -> List[Settlement]:
        """
        Run the keeper loop through a sequence of timestamps.

        Returns:
            All settlements executed
        """
        all_settlements: List[Settlement] = []
        for timestamp in timestamps:
            all_settlements.extend(self.step(timestamp))
        return all_settlements
