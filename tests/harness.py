"""
harness.py - Test Helpers for Wiring the Market

Builds a complete system (runtime, token, ledger, market, gateway) the way a
deployment would, plus small helpers to open, stake on and settle options.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

from onezero import (
    Runtime, Ledger, DividendToken, Market, AutomationGateway,
    MarketConfig, PayoutMode, Settlement, StaticOutcomeSource, Transfer,
    TransferRejected,
)


E18 = 10 ** 18
T0 = 1_700_000_000
CAP = 100 * E18
PERIOD = 10
MINIMUM_DURATION = 1200
RATE_BPS = 10

OWNER = "owner"
KEEPER = "keeper"


@dataclass
class Deployment:
    """Every component of one wired-up system."""
    runtime: Runtime
    ledger: Ledger
    token: DividendToken
    market: Market
    gateway: AutomationGateway
    outcomes: StaticOutcomeSource

    def open_option(self, duration: int = MINIMUM_DURATION, rate: int = RATE_BPS,
                    delay: int = 10, title: str = "test binary option") -> int:
        """List an option starting `delay` seconds from now."""
        return self.market.add_binary_option(
            OWNER, title, self.runtime.current_time + delay, duration, rate
        )

    def start(self, option_id: int) -> None:
        """Move the clock to the start of an option."""
        option = self.market.get_binary_option(option_id)
        self.runtime.advance_time(max(self.runtime.current_time, option.start))

    def expire(self, option_id: int) -> None:
        """Move the clock to the expiry of an option."""
        option = self.market.get_binary_option(option_id)
        self.runtime.advance_time(max(self.runtime.current_time, option.expiry))

    def stake(self, user: str, option_id: int, go_long: bool, value: int) -> int:
        """Fund a user with exactly value and stake it."""
        self.runtime.fund(user, value)
        return self.market.add_position(user, option_id, go_long, value)

    def settle(self, option_id: int, outcome_is_long: bool) -> Settlement:
        self.outcomes.set_outcome(option_id, outcome_is_long)
        return self.gateway.execute(KEEPER, [option_id])[0]


def deploy(
    payout_mode: PayoutMode = PayoutMode.PUSH,
    admins: Optional[Dict[str, bool]] = None,
    initial_allocation: Optional[int] = None,
    minimum_duration: int = MINIMUM_DURATION,
) -> Deployment:
    """Build a runtime, token, ledger, market and gateway wired together."""
    runtime = Runtime(initial_time=T0, verbose=False)
    token = DividendToken(
        runtime, "CommissionToken", "CT", cap=CAP, period_duration=PERIOD,
        owner=OWNER, initial_allocation=initial_allocation, verbose=False,
    )
    ledger = Ledger(OWNER, verbose=False)
    market = Market(
        runtime, ledger, token, owner=OWNER,
        config=MarketConfig(minimum_option_duration=minimum_duration, payout_mode=payout_mode),
        verbose=False,
    )
    ledger.set_market(OWNER, market.address)
    token.set_market(OWNER, market.address)
    for address, flag in (admins if admins is not None else {"user1": True, "user2": True}).items():
        market.update_admin(OWNER, address, flag)

    outcomes = StaticOutcomeSource()
    gateway = AutomationGateway(runtime, market, outcomes, keeper=KEEPER)
    return Deployment(runtime, ledger, token, market, gateway, outcomes)


def system_state(d: Deployment):
    """Comparable copy of everything the system persists."""
    token_state = d.token.state
    return (
        d.runtime.current_time,
        dict(d.runtime.balances),
        list(d.runtime.transfer_log),
        repr(d.ledger.store),
        (
            dict(token_state.balances),
            token_state.total_supply,
            token_state.cap,
            token_state.exchange_rate,
            list(token_state.holders),
            dict(token_state.epochs),
            dict(token_state.last_claimed),
            {h: d.token.checkpoints_of(h) for h in token_state.checkpoints.keys()},
        ),
        repr(d.market.state),
    )


class RejectingReceiver:
    """Receiver that refuses every incoming transfer."""

    def __init__(self):
        self.refused: List[Transfer] = []

    def __call__(self, transfer: Transfer) -> None:
        self.refused.append(transfer)
        raise TransferRejected(f"{transfer.dest} refuses {transfer.amount}")


class ReentrantReceiver:
    """Receiver that tries to conclude the paying option again on receipt."""

    def __init__(self, deployment: Deployment, option_id: int):
        self.deployment = deployment
        self.option_id = option_id
        self.errors: List[Exception] = []
        self.received: List[Transfer] = []

    def __call__(self, transfer: Transfer) -> None:
        self.received.append(transfer)
        try:
            self.deployment.gateway.execute(transfer.dest, [self.option_id])
        except Exception as exc:  # recorded for the test to inspect
            self.errors.append(exc)
