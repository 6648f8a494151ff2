"""
market.py - Binary Option Lifecycle, Staking and Settlement

The Market is the orchestrator: the only writer to the Ledger and the only
commission source of the DividendToken.

Lifecycle of an option:

    PENDING  --(start)-->  ACTIVE  --(start + duration)-->  EXPIRED  --(conclude)-->  CONCLUDED

Positions are accepted in ACTIVE only. conclude() is accepted in EXPIRED only
and is irreversible. It marks the option concluded in the Ledger before any
value leaves the market, so a recipient that calls back in during a payout
finds the option already concluded.

Winners are paid according to the configured PayoutMode:

    PUSH (default): winners are paid inside conclude(); a single recipient
                    refusing value unwinds the whole settlement.
    PULL:           the settlement records what each winner is owed and
                    withdraw() pays it out later, one winner at a time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .core import (
    BinaryOption, Settlement, MarketConfig, PayoutMode, OptionStatus,
    BPS_DENOMINATOR, SYSTEM_ADDRESS,
    AuthorizationError, StateError, InputError, NothingToClaimError,
    require_address, require_amount, compute_commission,
)
from .ledger import Ledger
from .runtime import Runtime
from .settlement import compute_settlement
from .token import DividendToken


ONLY_OWNER = "Only owner can call this function"
ONLY_OWNER_AND_ADMINS = "Only owner and admins can call this function"
DURATION_NOT_PASSED = "Duration for binary option has not passed"
ALREADY_CONCLUDED = "Binary option has already been concluded"
NOT_STARTED = "Binary option has not started"
EXPIRED = "Binary option has expired"
UNKNOWN_OPTION = "Binary option does not exist"


@dataclass
class MarketState:
    """
    Everything the Market persists; swapped wholesale on rollback.

    Attributes:
        owner: Holder of the owner role
        admins: Addresses allowed to create options, in grant order
        minimum_option_duration: Shortest duration add_binary_option accepts
        entitlements: Winnings recorded in PULL mode and not yet withdrawn
        settlements: Settlement record of every concluded option
    """
    owner: str
    minimum_option_duration: int
    admins: List[str] = field(default_factory=list)
    entitlements: Dict[str, int] = field(default_factory=dict)
    settlements: Dict[int, Settlement] = field(default_factory=dict)


class Market:
    """
    Prediction market over binary options.

    Example:
        market = Market(runtime, ledger, token, owner="owner", verbose=False)
        ledger.set_market("owner", market.address)
        token.set_market("owner", market.address)

        option_id = market.add_binary_option("owner", "ETH > 5k", start, 1200, 10)
        runtime.advance_time(start)
        market.add_position("alice", option_id, True, 10**18)
    """

    def __init__(
        self,
        runtime: Runtime,
        ledger: Ledger,
        token: DividendToken,
        owner: str,
        address: str = "market",
        config: Optional[MarketConfig] = None,
        verbose: bool = True,
    ):
        """
        Create a market.

        Args:
            runtime: Runtime providing the clock, the value book and atomic()
            ledger: Option store; its market address must be set to address
            token: Dividend token receiving commission at settlement
            owner: Owner address
            address: Address the market holds stakes under and calls the Ledger as
            config: Tunables (default: MarketConfig())
            verbose: Print a line for every state change (default: True)
        """
        self.runtime = runtime
        self.ledger = ledger
        self.token = token
        self.address = require_address(address, "market address")
        self.config = config if config is not None else MarketConfig()
        self.verbose = verbose
        self.state = MarketState(
            owner=require_address(owner, "owner"),
            minimum_option_duration=self.config.minimum_option_duration,
        )
        runtime.attach(ledger)
        runtime.attach(self)

    @property
    def payout_mode(self) -> PayoutMode:
        return self.config.payout_mode

    # ========================================================================
    # Stateful PROTOCOL (used by Runtime.atomic)
    # ========================================================================

    def snapshot(self) -> MarketState:
        return self.state

    def restore(self, snapshot: MarketState) -> None:
        self.state = snapshot

    # ========================================================================
    # ROLES
    # ========================================================================

    def _require_owner(self, caller: str) -> None:
        if caller != self.state.owner:
            raise AuthorizationError(ONLY_OWNER)

    def _require_owner_or_admin(self, caller: str) -> None:
        if caller != self.state.owner and caller not in self.state.admins:
            raise AuthorizationError(ONLY_OWNER_AND_ADMINS)

    def update_admin(self, caller: str, address: str, is_admin: bool) -> None:
        """Grant or revoke the admin role. Owner only."""
        with self.runtime.atomic():
            self._require_owner(caller)
            require_address(address, "admin")
            if is_admin and address not in self.state.admins:
                self.state.admins.append(address)
            elif not is_admin and address in self.state.admins:
                self.state.admins.remove(address)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """
        Hand the owner role to another address. Owner only.

        Raises:
            InputError: If new_owner is empty or the zero address
        """
        with self.runtime.atomic():
            self._require_owner(caller)
            self.state.owner = require_address(new_owner, "new owner")
            if self.verbose:
                print(f"🔑 Market ownership: {caller}→{new_owner}")

    def set_minimum_duration(self, caller: str, duration: int) -> None:
        with self.runtime.atomic():
            self._require_owner(caller)
            if duration < 0:
                raise InputError(f"Minimum duration must be non-negative, got {duration}")
            self.state.minimum_option_duration = duration

    # ========================================================================
    # OPTIONS AND POSITIONS
    # ========================================================================

    def add_binary_option(
        self,
        caller: str,
        title: str,
        start: int,
        duration: int,
        commission_rate_bps: int,
    ) -> int:
        """
        Create an option. Owner or admin only.

        Returns:
            Id of the new option (ids are dense and start at 0)

        Raises:
            AuthorizationError: If caller is neither owner nor admin
            InputError: If duration is below the minimum or the rate is outside 0..10000 bps
        """
        with self.runtime.atomic():
            self._require_owner_or_admin(caller)
            if duration < self.state.minimum_option_duration:
                raise InputError(
                    f"Duration must be at least {self.state.minimum_option_duration} seconds, got {duration}"
                )
            if not 0 <= commission_rate_bps <= BPS_DENOMINATOR:
                raise InputError(
                    f"Commission rate must be between 0 and {BPS_DENOMINATOR} bps, got {commission_rate_bps}"
                )
            option_id = self.ledger.create_option(
                self.address, title, start, duration, commission_rate_bps
            )
            if self.verbose:
                print(f"📈 Option {option_id} listed by {caller}: {title!r} ({commission_rate_bps} bps)")
            return option_id

    def _existing_option(self, option_id: int) -> BinaryOption:
        if not 0 <= option_id < self.ledger.read_option_counter(self.address):
            raise StateError(UNKNOWN_OPTION)
        return self.ledger.read_option(self.address, option_id)

    def add_position(self, caller: str, option_id: int, go_long: bool, value: int) -> int:
        """
        Stake value on one side of an active option.

        The full value moves from caller to the market. Commission is
        value * rate // 10000; the rest is recorded as the caller's stake.
        Commission stays with the market until the option is concluded.

        Returns:
            Net stake recorded

        Raises:
            StateError: If the option is unknown, concluded, not started or expired
            InputError: If value is not a positive int, or caller is the market
                        or system address
        """
        with self.runtime.atomic():
            now = self.runtime.current_time
            option = self._existing_option(option_id)
            if option.concluded:
                raise StateError(ALREADY_CONCLUDED)
            if now < option.start:
                raise StateError(NOT_STARTED)
            if now >= option.expiry:
                raise StateError(EXPIRED)
            require_amount(value, "stake")
            if caller in (self.address, SYSTEM_ADDRESS):
                raise InputError(f"{caller} cannot take positions")

            commission, net = compute_commission(value, option.commission_rate_bps)
            side = "long" if go_long else "short"
            self.runtime.transfer_value(caller, self.address, value, f"stake:{option_id}:{side}")
            if commission:
                self.ledger.add_commission(self.address, option_id, commission)
            self.ledger.create_position(self.address, option_id, caller, net, go_long)
            if self.verbose:
                print(f"🎯 {caller} {side} {net} on option {option_id} (commission {commission})")
            return net

    # ========================================================================
    # SETTLEMENT
    # ========================================================================

    def conclude(self, caller: str, option_id: int, outcome_is_long: bool) -> Settlement:
        """
        Settle an expired option for the given outcome.

        Called by the AutomationGateway, which supplies the outcome. Order of
        effects: conclude in the Ledger, record the settlement, pay or record
        winnings, then forward the collected commission to the token.

        Returns:
            The Settlement record

        Raises:
            StateError: If the option is unknown, not yet expired, or already concluded
        """
        with self.runtime.atomic():
            now = self.runtime.current_time
            option = self._existing_option(option_id)
            if now < option.expiry:
                raise StateError(DURATION_NOT_PASSED)
            if option.concluded:
                raise StateError(ALREADY_CONCLUDED)

            positions = self.ledger.read_positions(self.address, option_id)
            settlement = compute_settlement(option, positions, outcome_is_long)

            self.ledger.end_option(self.address, option_id, outcome_is_long)
            self.state.settlements[option_id] = settlement

            if self.config.payout_mode is PayoutMode.PUSH:
                for payout in settlement.payouts:
                    self.runtime.transfer_value(
                        self.address, payout.address, payout.amount, f"payout:{option_id}"
                    )
            else:
                for payout in settlement.payouts:
                    owed = self.state.entitlements.get(payout.address, 0)
                    self.state.entitlements[payout.address] = owed + payout.amount

            if settlement.commission > 0:
                self.token.distribute_commission(self.address, settlement.commission)

            if self.verbose:
                print(
                    f"✓ Option {option_id} concluded {settlement.outcome.name} by {caller}: "
                    f"pool={settlement.pool}, winners={len(settlement.payouts)}, "
                    f"commission={settlement.commission}, residual={settlement.residual}"
                )
            return settlement

    def withdraw(self, caller: str) -> int:
        """
        Pay out everything caller is owed from PULL-mode settlements.

        Returns:
            Amount paid

        Raises:
            NothingToClaimError: If nothing is owed to caller
        """
        with self.runtime.atomic():
            owed = self.state.entitlements.pop(caller, 0)
            if owed == 0:
                raise NothingToClaimError("No winnings to withdraw")
            self.runtime.transfer_value(self.address, caller, owed, "withdraw")
            if self.verbose:
                print(f"💸 {caller} withdrew {owed}")
            return owed

    # ========================================================================
    # QUERIES
    # ========================================================================

    def is_admin(self, address: str) -> bool:
        return address in self.state.admins

    def get_owner(self) -> str:
        return self.state.owner

    def get_minimum_duration(self) -> int:
        return self.state.minimum_option_duration

    def get_binary_option(self, option_id: int) -> BinaryOption:
        return self.ledger.read_option(self.address, option_id)

    def get_option_status(self, option_id: int) -> OptionStatus:
        return self._existing_option(option_id).status(self.runtime.current_time)

    def get_user_participated_options(self, caller: str) -> List[int]:
        """Ids of every option caller has staked on, in first-stake order."""
        return self.ledger.read_participated_options(self.address, caller)

    def get_active_binary_options(self) -> List[int]:
        return self.ledger.read_active_options(self.address)

    def get_concluded_binary_options(self) -> List[int]:
        return self.ledger.read_concluded_options(self.address)

    def get_user_long_position(self, option_id: int, address: str) -> int:
        return self.ledger.read_long_position(self.address, option_id, address)

    def get_user_short_position(self, option_id: int, address: str) -> int:
        return self.ledger.read_short_position(self.address, option_id, address)

    def pending_withdrawal(self, address: str) -> int:
        return self.state.entitlements.get(address, 0)

    def get_settlement(self, option_id: int) -> Optional[Settlement]:
        return self.state.settlements.get(option_id)

    def __repr__(self) -> str:
        return (
            f"Market({self.address}, owner={self.state.owner}, "
            f"mode={self.config.payout_mode.value}, settled={len(self.state.settlements)})"
        )
