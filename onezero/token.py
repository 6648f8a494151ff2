"""
token.py - Capped Dividend Token with Epoch-Based Commission Accrual

The DividendToken is a capped, transferable balance ledger whose holders share
the commission the market forwards at settlement.

=== ACCRUAL MODEL ===

Time since genesis is cut into periods of period_duration seconds. The first
distribution landing in a period opens a CommissionEpoch for it and snapshots
total supply; later distributions in the same period only add to the amount.

Every balance change appends (period, balance) to the holder's checkpoints.
Once a period has an epoch, changes in it are recorded under the next period
so the epoch keeps the balances its supply snapshot counted.
A holder's share of an epoch is:

    epoch.amount_accrued * balance_at(period) // epoch.total_supply_snapshot

where balance_at is the latest checkpoint at or before the period. A claim
sums the shares of every epoch after the holder's last claimed period up to
and including the current one, then moves the pointer to the current period.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from .core import (
    CommissionEpoch, TOKEN_DECIMALS, SYSTEM_ADDRESS,
    AuthorizationError, InputError, NothingToClaimError,
    require_address, require_amount,
)
from .checkpoints import VersionedMap
from .runtime import Runtime


ONLY_OWNER = "Only owner can call this function"
ONLY_MARKET = "Only market can call this function"
NOTHING_TO_CLAIM = "No commission to claim"

# 1e15 value units per whole token: 1e18 value mints 1000 tokens.
DEFAULT_EXCHANGE_RATE = 10 ** 15

# Pointer value meaning "before period 0".
NEVER_CLAIMED = -1


def compute_claimable(
    epochs: Mapping[int, CommissionEpoch],
    checkpoints: VersionedMap,
    holder: str,
    last_claimed: int,
    current_period: int,
) -> int:
    """
    Commission owed to holder for epochs in (last_claimed, current_period].

    Pure function: reads epochs and checkpoints, changes nothing.
    Each epoch share is floored separately before summing.
    """
    owed = 0
    for period in sorted(epochs):
        if period <= last_claimed or period > current_period:
            continue
        epoch = epochs[period]
        if epoch.total_supply_snapshot == 0:
            continue
        balance = checkpoints.value_at(holder, period)
        owed += epoch.amount_accrued * balance // epoch.total_supply_snapshot
    return owed


@dataclass
class TokenState:
    """Everything the DividendToken persists; swapped wholesale on rollback."""
    owner: str
    cap: int
    exchange_rate: int
    market: Optional[str] = None
    total_supply: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    holders: List[str] = field(default_factory=list)
    checkpoints: VersionedMap = field(default_factory=lambda: VersionedMap(default=0))
    epochs: Dict[int, CommissionEpoch] = field(default_factory=dict)
    last_claimed: Dict[str, int] = field(default_factory=dict)


class DividendToken:
    """
    Capped token paying out market commission to its holders.

    Example:
        token = DividendToken(runtime, "One Zero", "OZ", cap=100 * 10**18,
                              period_duration=10, owner="owner", verbose=False)
        token.set_market("owner", "market")
        token.transfer("owner", "alice", 50 * 10**18)
        # market forwards 10**11 at settlement
        runtime.advance(60)
        token.claim_commission("alice")   # 5 * 10**10
    """

    def __init__(
        self,
        runtime: Runtime,
        name: str,
        symbol: str,
        cap: int,
        period_duration: int,
        owner: str,
        exchange_rate: int = DEFAULT_EXCHANGE_RATE,
        initial_allocation: Optional[int] = None,
        address: str = "token",
        verbose: bool = True,
    ):
        """
        Create the token and allocate the initial supply to the owner.

        Args:
            runtime: Runtime providing the clock and the value book
            name: Token name
            symbol: Token symbol
            cap: Maximum total supply in smallest units
            period_duration: Length of one accrual period in seconds
            owner: Owner address (a holder from genesis)
            exchange_rate: Value units per whole token charged by mint()
            initial_allocation: Supply minted to the owner (default: the full cap)
            address: Address holding distributed commission and mint proceeds
            verbose: Print a line for every state change (default: True)

        Raises:
            InputError: If cap, period_duration or exchange_rate is not positive,
                        or the allocation is negative or above the cap
        """
        if cap <= 0:
            raise InputError("Cap must be greater than 0")
        if period_duration <= 0:
            raise InputError("Period duration must be greater than 0")
        if exchange_rate <= 0:
            raise InputError("Price per token (in wei) must be greater than 0")
        allocation = cap if initial_allocation is None else initial_allocation
        if allocation < 0 or allocation > cap:
            raise InputError("Cap exceeded")

        self.runtime = runtime
        self.name = name
        self.symbol = symbol
        self.period_duration = period_duration
        self.address = require_address(address, "token address")
        self.genesis_time = runtime.current_time
        self.verbose = verbose

        self.state = TokenState(
            owner=require_address(owner, "owner"),
            cap=cap,
            exchange_rate=exchange_rate,
        )
        # The owner is a holder from genesis, zero allocation or not.
        self.state.holders.append(owner)
        self.state.balances[owner] = allocation
        self.state.checkpoints.record(owner, 0, allocation)
        self.state.total_supply = allocation

        runtime.attach(self)

    # ========================================================================
    # Stateful PROTOCOL (used by Runtime.atomic)
    # ========================================================================

    def snapshot(self) -> TokenState:
        return self.state

    def restore(self, snapshot: TokenState) -> None:
        self.state = snapshot

    # ========================================================================
    # ACCESS CONTROL AND CONFIGURATION
    # ========================================================================

    def _require_owner(self, caller: str) -> None:
        if caller != self.state.owner:
            raise AuthorizationError(ONLY_OWNER)

    def set_market(self, caller: str, market: str) -> None:
        """Appoint the only address allowed to distribute commission."""
        with self.runtime.atomic():
            self._require_owner(caller)
            self.state.market = require_address(market, "market")
            if self.verbose:
                print(f"🪙 {self.symbol} commission source set to {market}")

    def update_cap(self, caller: str, new_cap: int) -> None:
        with self.runtime.atomic():
            self._require_owner(caller)
            if new_cap <= 0:
                raise InputError("Cap must be greater than 0")
            if new_cap < self.state.total_supply:
                raise InputError(
                    "Cap must be greater than the current number of circulating tokens"
                )
            self.state.cap = new_cap

    def update_exchange_rate(self, caller: str, new_rate: int) -> None:
        with self.runtime.atomic():
            self._require_owner(caller)
            if new_rate <= 0:
                raise InputError("Price per token (in wei) must be greater than 0")
            self.state.exchange_rate = new_rate

    # ========================================================================
    # BALANCES
    # ========================================================================

    def current_period(self) -> int:
        return (self.runtime.current_time - self.genesis_time) // self.period_duration

    def _set_balance(self, holder: str, balance: int, period: int) -> None:
        """
        Write a balance, checkpoint it and keep the holder list in step.

        Once a period has an epoch its snapshot is fixed, so later changes in
        that period are checkpointed under the next period instead.
        """
        version = period + 1 if period in self.state.epochs else period
        self.state.balances[holder] = balance
        self.state.checkpoints.record(holder, version, balance)
        holders = self.state.holders
        if balance > 0 and holder not in holders:
            holders.append(holder)
        elif balance == 0 and holder in holders:
            holders.remove(holder)

    def mint(self, caller: str, value: int) -> int:
        """
        Buy tokens with native value at the current exchange rate.

        tokens = value * 10**18 // exchange_rate. The value stays at the
        token address.

        Returns:
            Number of token units minted

        Raises:
            InputError: If no value is sent or it buys nothing, if the cap would be
                        exceeded, or if caller is the token or system address
        """
        with self.runtime.atomic():
            period = self.current_period()
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InputError("No value transferred, unable to mint token")
            tokens = value * 10 ** TOKEN_DECIMALS // self.state.exchange_rate
            if tokens == 0:
                raise InputError("No value transferred, unable to mint token")
            if self.state.total_supply + tokens > self.state.cap:
                raise InputError("Cap exceeded")
            if caller in (self.address, SYSTEM_ADDRESS):
                raise InputError(f"{caller} cannot mint")

            self.runtime.transfer_value(caller, self.address, value, f"mint:{self.symbol}")
            self._set_balance(caller, self.balance_of(caller) + tokens, period)
            self.state.total_supply += tokens
            if self.verbose:
                print(f"🪙 Minted {tokens} {self.symbol} to {caller}")
            return tokens

    def transfer(self, caller: str, to: str, amount: int) -> None:
        """
        Move tokens between holders.

        Raises:
            InputError: If amount is not positive, exceeds the balance, or the
                        recipient is the zero address
        """
        with self.runtime.atomic():
            period = self.current_period()
            require_amount(amount, "transfer amount")
            require_address(to, "recipient")
            balance = self.balance_of(caller)
            if balance < amount:
                raise InputError(f"{caller} holds {balance} {self.symbol}, cannot transfer {amount}")
            if to == caller:
                return
            self._set_balance(caller, balance - amount, period)
            self._set_balance(to, self.balance_of(to) + amount, period)
            if self.verbose:
                print(f"🪙 {amount} {self.symbol}: {caller}→{to}")

    # ========================================================================
    # COMMISSION
    # ========================================================================

    def distribute_commission(self, caller: str, amount: int) -> CommissionEpoch:
        """
        Add commission to the epoch of the current period.

        The value moves from caller to the token address. The epoch snapshot
        of total supply is taken by the first distribution of a period only.

        Raises:
            AuthorizationError: If caller is not the configured market
        """
        with self.runtime.atomic():
            period = self.current_period()
            if self.state.market is None or caller != self.state.market:
                raise AuthorizationError(ONLY_MARKET)
            require_amount(amount, "commission")

            self.runtime.transfer_value(caller, self.address, amount, f"commission:period{period}")
            existing = self.state.epochs.get(period)
            if existing is None:
                epoch = CommissionEpoch(period, self.state.total_supply, amount)
            else:
                epoch = CommissionEpoch(
                    period, existing.total_supply_snapshot, existing.amount_accrued + amount
                )
            self.state.epochs[period] = epoch
            if self.verbose:
                print(f"💰 Distributed {amount} to {self.symbol} holders (period {period})")
            return epoch

    def claimable_commission(self, holder: str) -> int:
        """Commission a claim by holder would pay right now."""
        return compute_claimable(
            self.state.epochs,
            self.state.checkpoints,
            holder,
            self.state.last_claimed.get(holder, NEVER_CLAIMED),
            self.current_period(),
        )

    def claim_commission(self, caller: str) -> int:
        """
        Pay caller its share of every epoch since its last claim.

        Returns:
            Amount paid

        Raises:
            NothingToClaimError: If nothing is owed. The operation unwinds, the
                                 pointer included; no owed period is lost by it.
        """
        with self.runtime.atomic():
            period = self.current_period()
            owed = compute_claimable(
                self.state.epochs,
                self.state.checkpoints,
                caller,
                self.state.last_claimed.get(caller, NEVER_CLAIMED),
                period,
            )
            self.state.last_claimed[caller] = period
            if owed == 0:
                raise NothingToClaimError(NOTHING_TO_CLAIM)

            self.runtime.transfer_value(self.address, caller, owed, f"claim:{self.symbol}")
            if self.verbose:
                print(f"💰 {caller} claimed {owed} (through period {period})")
            return owed

    # ========================================================================
    # QUERIES
    # ========================================================================

    def balance_of(self, holder: str) -> int:
        return self.state.balances.get(holder, 0)

    def total_supply(self) -> int:
        return self.state.total_supply

    def get_holders(self) -> List[str]:
        return list(self.state.holders)

    def get_owner(self) -> str:
        return self.state.owner

    def get_market(self) -> Optional[str]:
        return self.state.market

    def get_cap(self) -> int:
        return self.state.cap

    def get_exchange_rate(self) -> int:
        return self.state.exchange_rate

    def get_epoch(self, period: int) -> Optional[CommissionEpoch]:
        return self.state.epochs.get(period)

    def last_claimed_period(self, holder: str) -> int:
        return self.state.last_claimed.get(holder, NEVER_CLAIMED)

    def checkpoints_of(self, holder: str) -> List[Tuple[int, int]]:
        """(period, balance) history of a holder, oldest first."""
        return self.state.checkpoints.history(holder)

    def __repr__(self) -> str:
        return (
            f"DividendToken({self.symbol}, supply={self.state.total_supply}/{self.state.cap}, "
            f"holders={len(self.state.holders)}, epochs={len(self.state.epochs)})"
        )
