"""
Core types and pure helpers for the prediction market.

This module provides the foundational data structures shared by every component:
1. Constants: basis point denominator, token decimals, reserved addresses
2. Enums: Outcome, OptionStatus, PayoutMode
3. Exceptions: MarketError and the categorical error types
4. Immutable records: Transfer, Payout, Settlement, CommissionEpoch, MarketConfig
5. Mutable records held by the Ledger: BinaryOption, Position
6. Protocols: Receiver, OutcomeSource

All amounts and timestamps are plain ints (smallest value unit / seconds).
Integer floor division is the only rounding rule used anywhere.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Commission rates are expressed in basis points of the staked value.
BPS_DENOMINATOR = 10_000

# Whole-token scaling used by the dividend token (10**18 smallest units per token).
TOKEN_DECIMALS = 18

# Reserved address that can never own anything.
ZERO_ADDRESS = "0x0"

# Reserved address used to fund accounts from outside the system.
SYSTEM_ADDRESS = "system"

# Default floor for option durations (20 minutes).
DEFAULT_MINIMUM_OPTION_DURATION = 1200


# ============================================================================
# ENUMS
# ============================================================================

class Outcome(Enum):
    """Tri-state result of a binary option. The integer values mirror storage order."""
    UNDETERMINED = 0
    LONG = 1
    SHORT = 2

    @classmethod
    def from_bool(cls, outcome_is_long: bool) -> 'Outcome':
        return cls.LONG if outcome_is_long else cls.SHORT


class OptionStatus(Enum):
    """
    Lifecycle state of a binary option at a point in time.

    PENDING: now < start
    ACTIVE: start <= now < start + duration (positions accepted)
    EXPIRED: now >= start + duration, not yet concluded (eligible for conclusion)
    CONCLUDED: terminal
    """
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CONCLUDED = "concluded"


class PayoutMode(Enum):
    """
    How winners are paid at conclusion.

    PUSH: winnings are transferred synchronously inside the settlement.
          A single refusing recipient aborts the whole settlement.
    PULL: settlement records entitlements; winners call withdraw() later.
    """
    PUSH = "push"
    PULL = "pull"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class MarketError(Exception):
    """Base exception for all market-related errors."""
    pass


class AuthorizationError(MarketError):
    """Raised when the caller lacks the role required by an operation."""
    pass


class StateError(MarketError):
    """Raised when an option is not in the lifecycle state an operation requires."""
    pass


class InputError(MarketError):
    """Raised when an argument is out of its allowed range."""
    pass


class NothingToClaimError(MarketError):
    """Raised when a claim or withdrawal would pay out nothing."""
    pass


class InsufficientFunds(MarketError):
    """Raised when a value transfer exceeds the source balance."""
    pass


class TransferRejected(MarketError):
    """Raised by a receiver that refuses incoming value."""
    pass


# ============================================================================
# HELPERS
# ============================================================================

def require_address(address: str, what: str = "address") -> str:
    """Validate an address and return it unchanged."""
    if not isinstance(address, str) or not address.strip():
        raise InputError(f"{what} cannot be empty")
    if address == ZERO_ADDRESS:
        raise InputError(f"{what} cannot be the zero address")
    return address


def require_amount(amount: int, what: str = "amount") -> int:
    """Validate a strictly positive integer amount."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InputError(f"{what} must be an int, got {type(amount).__name__}")
    if amount <= 0:
        raise InputError(f"{what} must be positive, got {amount}")
    return amount


def compute_commission(value: int, commission_rate_bps: int) -> Tuple[int, int]:
    """
    Split a staked value into (commission, net stake).

    commission = value * rate // 10000, so rounding loss always favours the staker.
    """
    commission = value * commission_rate_bps // BPS_DENOMINATOR
    return commission, value - commission


# ============================================================================
# IMMUTABLE RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single movement of native value between two addresses.

    Attributes:
        amount: Value moved (strictly positive int)
        source: Address debited
        dest: Address credited
        memo: Why the value moved (e.g. "stake:0", "payout:0", "commission:0")
        sequence: Position in the runtime transfer log (-1 until logged)
        timestamp: Runtime time of the transfer
    """
    amount: int
    source: str
    dest: str
    memo: str
    sequence: int = -1
    timestamp: int = 0

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"Transfer amount must be int, got {type(self.amount)}")
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Transfer({self.amount}: {self.source}→{self.dest} [{self.memo}])"


@dataclass(frozen=True, slots=True)
class Payout:
    """Amount owed to one winner by one settlement."""
    address: str
    amount: int


@dataclass(frozen=True, slots=True)
class Settlement:
    """
    Immutable result of concluding a binary option.

    Attributes:
        option_id: Option concluded
        outcome: Winning side
        pool: Total net stake of both sides
        winning_total: Net stake of the winning side
        payouts: Winners in staker insertion order (empty when nobody won)
        commission: Commission forwarded to the dividend token
        residual: Part of the pool not paid to anyone (floor dust, or the
                  whole pool when the winning side is empty)
    """
    option_id: int
    outcome: Outcome
    pool: int
    winning_total: int
    payouts: Tuple[Payout, ...]
    commission: int
    residual: int

    @property
    def total_paid(self) -> int:
        return sum(p.amount for p in self.payouts)

    def payout_for(self, address: str) -> int:
        return sum(p.amount for p in self.payouts if p.address == address)


@dataclass(frozen=True, slots=True)
class CommissionEpoch:
    """
    Commission accrued within one period of the dividend token.

    total_supply_snapshot is taken at the first distribution of the period and
    is never refreshed by later distributions in the same period.
    """
    period_index: int
    total_supply_snapshot: int
    amount_accrued: int


@dataclass(frozen=True, slots=True)
class MarketConfig:
    """
    Tunables of the market.

    Attributes:
        minimum_option_duration: Shortest duration accepted by add_binary_option
        payout_mode: PUSH (pay during settlement, the default) or PULL (record
            entitlements paid out by withdraw)
    """
    minimum_option_duration: int = DEFAULT_MINIMUM_OPTION_DURATION
    payout_mode: PayoutMode = PayoutMode.PUSH

    def __post_init__(self):
        if self.minimum_option_duration < 0:
            raise ValueError(
                f"minimum_option_duration must be non-negative, got {self.minimum_option_duration}"
            )
        if not isinstance(self.payout_mode, PayoutMode):
            raise ValueError(f"payout_mode must be a PayoutMode, got {self.payout_mode!r}")


# ============================================================================
# LEDGER RECORDS
# ============================================================================

@dataclass(slots=True)
class BinaryOption:
    """
    A time-boxed proposition with a long and a short side.

    Only the Ledger mutates these records; readers receive copies.
    Staker lists are insertion-ordered and hold each address at most once.
    """
    id: int
    title: str
    start: int
    duration: int
    commission_rate_bps: int
    commission_collected: int = 0
    outcome: Outcome = Outcome.UNDETERMINED
    total_long_stake: int = 0
    long_stakers: List[str] = field(default_factory=list)
    total_short_stake: int = 0
    short_stakers: List[str] = field(default_factory=list)
    concluded: bool = False

    @property
    def expiry(self) -> int:
        return self.start + self.duration

    @property
    def pool(self) -> int:
        return self.total_long_stake + self.total_short_stake

    def status(self, now: int) -> OptionStatus:
        if self.concluded:
            return OptionStatus.CONCLUDED
        if now < self.start:
            return OptionStatus.PENDING
        if now < self.expiry:
            return OptionStatus.ACTIVE
        return OptionStatus.EXPIRED

    def copy(self) -> 'BinaryOption':
        return BinaryOption(
            id=self.id,
            title=self.title,
            start=self.start,
            duration=self.duration,
            commission_rate_bps=self.commission_rate_bps,
            commission_collected=self.commission_collected,
            outcome=self.outcome,
            total_long_stake=self.total_long_stake,
            long_stakers=list(self.long_stakers),
            total_short_stake=self.total_short_stake,
            short_stakers=list(self.short_stakers),
            concluded=self.concluded,
        )


@dataclass(slots=True)
class Position:
    """A staker's net stake on both sides of one option."""
    long_stake: int = 0
    short_stake: int = 0

    def stake(self, is_long: bool) -> int:
        return self.long_stake if is_long else self.short_stake


# Per-option positions: staker address -> Position.
Positions = Dict[str, Position]


# ============================================================================
# PROTOCOLS
# ============================================================================

class Receiver(Protocol):
    """
    Hook invoked after an address is credited with value.

    A receiver may raise (e.g. TransferRejected) to refuse the value, which
    unwinds the enclosing atomic operation, or may call back into the system.
    """

    def __call__(self, transfer: Transfer) -> None:
        ...


@runtime_checkable
class OutcomeSource(Protocol):
    """
    Protocol for the external oracle deciding which side of an option won.

    outcome_for() returns True for LONG and False for SHORT.
    """

    def outcome_for(self, option_id: int, timestamp: int) -> bool:
        ...
