"""
conftest.py - Shared pytest fixtures for market tests

Provides common fixtures used across unit, functional and conformance tests:
- A quiet runtime starting at a fixed time
- Fully wired deployments in push (default) and pull payout mode
- A standalone ledger store and a standalone dividend token
"""

import pytest

from onezero import Runtime, Ledger, DividendToken, PayoutMode

from tests.harness import deploy, T0, CAP, PERIOD, OWNER


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def runtime():
    """Quiet runtime at T0."""
    return Runtime(initial_time=T0, verbose=False)


@pytest.fixture
def store_ledger():
    """Ledger with `market` appointed as writer."""
    ledger = Ledger(OWNER, verbose=False)
    ledger.set_market(OWNER, "market")
    return ledger


@pytest.fixture
def token(runtime):
    """Token with the full cap allocated to the owner and `market` as commission source."""
    token = DividendToken(
        runtime, "CommissionToken", "CT", cap=CAP, period_duration=PERIOD,
        owner=OWNER, verbose=False,
    )
    token.set_market(OWNER, "market")
    return token


# =============================================================================
# DEPLOYMENT FIXTURES
# =============================================================================

@pytest.fixture
def system():
    """Deployment with the default push payouts and user1 and user2 as admins."""
    return deploy()


@pytest.fixture
def pull_system():
    """Pull-mode deployment with user1 and user2 as admins."""
    return deploy(payout_mode=PayoutMode.PULL)
