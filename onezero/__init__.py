"""
onezero - Binary-Outcome Prediction Market with Commission Dividends

Participants stake value on the long or short side of time-boxed options.
Expired options are concluded through a permissionless gateway, winners
share the pool pro rata, and the commission skimmed from every stake is paid
to holders of a dividend token.

Usage:
    from onezero import (
        Runtime, Ledger, DividendToken, Market, AutomationGateway,
        StaticOutcomeSource,
    )

    runtime = Runtime(initial_time=1_700_000_000)
    token = DividendToken(runtime, "One Zero", "OZ", cap=100 * 10**18,
                          period_duration=10, owner="owner")
    ledger = Ledger("owner")
    market = Market(runtime, ledger, token, owner="owner")
    ledger.set_market("owner", market.address)
    token.set_market("owner", market.address)

    option_id = market.add_binary_option("owner", "ETH > 5k", runtime.current_time + 10, 1200, 10)
    runtime.fund("alice", 10**18)
    runtime.advance(20)
    market.add_position("alice", option_id, True, 10**18)

    gateway = AutomationGateway(runtime, market, StaticOutcomeSource(default=True))
    gateway.step(runtime.current_time + 1200)
    runtime.balance_of("alice")   # paid during settlement
"""

# Core types
from .core import (
    Outcome,
    OptionStatus,
    PayoutMode,
    MarketError,
    AuthorizationError,
    StateError,
    InputError,
    NothingToClaimError,
    InsufficientFunds,
    TransferRejected,
    Transfer,
    Payout,
    Settlement,
    CommissionEpoch,
    MarketConfig,
    BinaryOption,
    Position,
    Receiver,
    OutcomeSource,
    compute_commission,
    BPS_DENOMINATOR,
    TOKEN_DECIMALS,
    ZERO_ADDRESS,
    SYSTEM_ADDRESS,
    DEFAULT_MINIMUM_OPTION_DURATION,
)

# Runtime
from .runtime import Runtime, Stateful

# Versioned history
from .checkpoints import VersionedMap

# Store
from .ledger import Ledger, LedgerStore

# Settlement math
from .settlement import (
    compute_payouts,
    compute_settlement,
    stake_totals_consistent,
    aggregate_payouts,
)

# Dividend token
from .token import DividendToken, TokenState, compute_claimable, DEFAULT_EXCHANGE_RATE

# Market
from .market import Market, MarketState

# Outcome sources
from .outcome_source import StaticOutcomeSource, CallableOutcomeSource, ThresholdOutcomeSource

# Keeper gateway
from .automation import AutomationGateway

__version__ = "0.1.0"
