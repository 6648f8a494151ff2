"""
ledger.py - Role-Gated Store of Options and Positions

The Ledger is the durable store behind the market. It holds no business rules:
it only records options, positions and counters, and decides who may read or
write them.

Key responsibilities:
    - Reads are open to the owner and the market address only
    - Writes are open to the market address only
    - Staker lists stay insertion-ordered and duplicate-free
    - Running totals always equal the sum of positions on each side
    - Nothing is ever deleted
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional

from .core import (
    BinaryOption, Position, Positions, Outcome,
    AuthorizationError, StateError,
    require_address,
)


ONLY_OWNER = "Only owner can call this function"
ONLY_MARKET = "Only market contract can call this function"
ONLY_MARKET_AND_OWNER = "Only market and owner can call this function"


@dataclass
class LedgerStore:
    """
    Everything the Ledger persists.

    Attributes:
        owner: Address allowed to read and to appoint the market
        market: Address allowed to read and write (None until appointed)
        options: Option records indexed by id
        positions: option id -> staker -> Position
        participated: staker -> option ids in first-stake order
    """
    owner: str
    market: Optional[str] = None
    options: List[BinaryOption] = field(default_factory=list)
    positions: Dict[int, Positions] = field(default_factory=dict)
    participated: Dict[str, List[int]] = field(default_factory=dict)


class Ledger:
    """
    Storage of binary options with owner/market access control.

    The store is constructor-injected so that a Ledger can be rebuilt on top
    of existing data. Only the holder of the market address can change it.

    Example:
        ledger = Ledger("owner", verbose=False)
        ledger.set_market("owner", "market")
        option_id = ledger.create_option("market", "BTC > 100k", start, 1200, 10)
        ledger.create_position("market", option_id, "alice", 999, True)
    """

    def __init__(self, owner: str, store: Optional[LedgerStore] = None, verbose: bool = True):
        """
        Create a ledger.

        Args:
            owner: Owner address (ignored when an existing store is supplied)
            store: Existing store to operate on (default: a fresh one)
            verbose: Print a line for every write (default: True)
        """
        self.store = store if store is not None else LedgerStore(owner=require_address(owner, "owner"))
        self.verbose = verbose

    # ========================================================================
    # ACCESS CONTROL
    # ========================================================================

    def _require_owner(self, caller: str) -> None:
        if caller != self.store.owner:
            raise AuthorizationError(ONLY_OWNER)

    def _require_market(self, caller: str) -> None:
        if self.store.market is None or caller != self.store.market:
            raise AuthorizationError(ONLY_MARKET)

    def _require_reader(self, caller: str) -> None:
        if caller != self.store.owner and (self.store.market is None or caller != self.store.market):
            raise AuthorizationError(ONLY_MARKET_AND_OWNER)

    def get_owner(self) -> str:
        return self.store.owner

    def get_market(self) -> Optional[str]:
        return self.store.market

    def set_market(self, caller: str, market: str) -> None:
        """Appoint the single address allowed to write. Owner only."""
        self._require_owner(caller)
        self.store.market = require_address(market, "market")
        if self.verbose:
            print(f"📝 Ledger market set to {market}")

    # ========================================================================
    # Stateful PROTOCOL (used by Runtime.atomic)
    # ========================================================================

    def snapshot(self) -> LedgerStore:
        return self.store

    def restore(self, snapshot: LedgerStore) -> None:
        # Refill the live store so an injected LedgerStore stays shared.
        for f in fields(LedgerStore):
            setattr(self.store, f.name, getattr(snapshot, f.name))

    # ========================================================================
    # WRITES (market only)
    # ========================================================================

    def _option(self, option_id: int) -> BinaryOption:
        if not 0 <= option_id < len(self.store.options):
            raise StateError("Binary option does not exist")
        return self.store.options[option_id]

    def create_option(
        self,
        caller: str,
        title: str,
        start: int,
        duration: int,
        commission_rate_bps: int,
    ) -> int:
        """Append a new option with empty staker lists and return its id."""
        self._require_market(caller)
        option_id = len(self.store.options)
        self.store.options.append(BinaryOption(
            id=option_id,
            title=title,
            start=start,
            duration=duration,
            commission_rate_bps=commission_rate_bps,
        ))
        self.store.positions[option_id] = {}
        if self.verbose:
            print(f"📝 Option {option_id} created: {title!r} [{start}, {start + duration})")
        return option_id

    def create_position(
        self,
        caller: str,
        option_id: int,
        staker: str,
        net_amount: int,
        is_long: bool,
    ) -> None:
        """
        Add a net stake to a staker's position on one side.

        The staker joins that side's list on first stake only; the option id
        joins the staker's participation list on first stake only.
        """
        self._require_market(caller)
        option = self._option(option_id)
        positions = self.store.positions[option_id]
        position = positions.get(staker)
        if position is None:
            position = positions[staker] = Position()

        if is_long:
            position.long_stake += net_amount
            option.total_long_stake += net_amount
            if staker not in option.long_stakers:
                option.long_stakers.append(staker)
        else:
            position.short_stake += net_amount
            option.total_short_stake += net_amount
            if staker not in option.short_stakers:
                option.short_stakers.append(staker)

        history = self.store.participated.setdefault(staker, [])
        if option_id not in history:
            history.append(option_id)

    def add_commission(self, caller: str, option_id: int, amount: int) -> None:
        """Accumulate commission collected against an option."""
        self._require_market(caller)
        self._option(option_id).commission_collected += amount

    def end_option(self, caller: str, option_id: int, outcome_is_long: bool) -> None:
        """
        Record the outcome and mark the option concluded.

        Does not reject a second conclusion; the market checks that first.
        """
        self._require_market(caller)
        option = self._option(option_id)
        option.outcome = Outcome.from_bool(outcome_is_long)
        option.concluded = True
        if self.verbose:
            print(f"📝 Option {option_id} concluded: {option.outcome.name}")

    # ========================================================================
    # READS (owner or market)
    # ========================================================================

    def read_option(self, caller: str, option_id: int) -> BinaryOption:
        """
        Return a copy of an option.

        Ids that were never created read as an empty record, as unset storage does.
        """
        self._require_reader(caller)
        if 0 <= option_id < len(self.store.options):
            return self.store.options[option_id].copy()
        return BinaryOption(id=option_id, title="", start=0, duration=0, commission_rate_bps=0)

    def read_position(self, caller: str, option_id: int, staker: str) -> Position:
        self._require_reader(caller)
        position = self.store.positions.get(option_id, {}).get(staker)
        if position is None:
            return Position()
        return Position(position.long_stake, position.short_stake)

    def read_long_position(self, caller: str, option_id: int, staker: str) -> int:
        return self.read_position(caller, option_id, staker).long_stake

    def read_short_position(self, caller: str, option_id: int, staker: str) -> int:
        return self.read_position(caller, option_id, staker).short_stake

    def read_positions(self, caller: str, option_id: int) -> Dict[str, Position]:
        """Copies of every position on an option, keyed by staker."""
        self._require_reader(caller)
        return {
            staker: Position(p.long_stake, p.short_stake)
            for staker, p in self.store.positions.get(option_id, {}).items()
        }

    def read_participated_options(self, caller: str, staker: str) -> List[int]:
        self._require_reader(caller)
        return list(self.store.participated.get(staker, []))

    def read_active_options(self, caller: str) -> List[int]:
        self._require_reader(caller)
        return [o.id for o in self.store.options if not o.concluded]

    def read_concluded_options(self, caller: str) -> List[int]:
        self._require_reader(caller)
        return [o.id for o in self.store.options if o.concluded]

    def read_option_counter(self, caller: str) -> int:
        self._require_reader(caller)
        return len(self.store.options)

    def __repr__(self) -> str:
        return f"Ledger(owner={self.store.owner}, market={self.store.market}, options={len(self.store.options)})"
