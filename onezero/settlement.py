"""
settlement.py - Pure Functions for Binary Option Settlement

The settlement algorithm turns a pool of net stakes plus a binary outcome
into exact integer payouts. Nothing here touches state: functions take option
records and positions and return immutable results. The Market applies them.

=== PAYOUT RULE ===

    pool          = total_long_stake + total_short_stake
    winning_total = stake of the side that won
    payout(s)     = pool * stake(s) // winning_total     for each winner s

Winners are visited in staker insertion order. Floor division leaves dust in
the pool that is not redistributed; it is reported as the settlement residual
together with the whole pool when the winning side is empty.
"""

from __future__ import annotations
from typing import Dict, List, Mapping, Sequence, Tuple

from .core import (
    BinaryOption, Position, Payout, Settlement, Outcome,
    StateError,
)


def compute_payouts(
    pool: int,
    winning_total: int,
    stakes: Sequence[Tuple[str, int]],
) -> Tuple[Payout, ...]:
    """
    Pro-rata split of pool among stakes. Pure function.

    Args:
        pool: Value to distribute
        winning_total: Sum of the winning stakes (the denominator)
        stakes: (address, stake) pairs in payment order

    Returns:
        Payouts in the same order; addresses owed nothing are omitted.
        Empty when winning_total is zero.
    """
    if winning_total <= 0:
        return ()
    payouts: List[Payout] = []
    for address, stake in stakes:
        amount = pool * stake // winning_total
        if amount > 0:
            payouts.append(Payout(address=address, amount=amount))
    return tuple(payouts)


def winning_side(option: BinaryOption, outcome_is_long: bool) -> Tuple[int, List[str]]:
    """(winning_total, winning_stakers) for an outcome."""
    if outcome_is_long:
        return option.total_long_stake, list(option.long_stakers)
    return option.total_short_stake, list(option.short_stakers)


def compute_settlement(
    option: BinaryOption,
    positions: Mapping[str, Position],
    outcome_is_long: bool,
) -> Settlement:
    """
    Compute the settlement of an option for an outcome. Pure function.

    Args:
        option: Option record (not concluded)
        positions: staker -> Position for this option
        outcome_is_long: True if the long side won

    Returns:
        Settlement with ordered payouts, forwarded commission and residual.

    Raises:
        StateError: If the option is already concluded

    Example (long wins, 10 bps):
        long  {u1: 0.999e18, u2: 1.998e18}, short {u3: 2.997e18}
        pool = 5.994e18
        u1 -> 5.994e18 * 0.999e18 // 2.997e18 = 1.998e18
        u2 -> 5.994e18 * 1.998e18 // 2.997e18 = 3.996e18
    """
    if option.concluded:
        raise StateError("Binary option has already been concluded")

    pool = option.pool
    winning_total, winners = winning_side(option, outcome_is_long)
    stakes = [
        (address, positions[address].stake(outcome_is_long) if address in positions else 0)
        for address in winners
    ]
    payouts = compute_payouts(pool, winning_total, stakes)
    paid = sum(p.amount for p in payouts)

    return Settlement(
        option_id=option.id,
        outcome=Outcome.from_bool(outcome_is_long),
        pool=pool,
        winning_total=winning_total,
        payouts=payouts,
        commission=option.commission_collected,
        residual=pool - paid,
    )


def stake_totals_consistent(option: BinaryOption, positions: Mapping[str, Position]) -> bool:
    """
    Check the bookkeeping invariant of an option.

    total_long_stake equals the sum of long stakes over long_stakers (and the
    same for the short side), and the staker lists hold no duplicates.
    """
    if len(set(option.long_stakers)) != len(option.long_stakers):
        return False
    if len(set(option.short_stakers)) != len(option.short_stakers):
        return False
    long_sum = sum(positions[s].long_stake for s in option.long_stakers if s in positions)
    short_sum = sum(positions[s].short_stake for s in option.short_stakers if s in positions)
    return long_sum == option.total_long_stake and short_sum == option.total_short_stake


def aggregate_payouts(settlements: Sequence[Settlement]) -> Dict[str, int]:
    """Total owed per address across several settlements."""
    owed: Dict[str, int] = {}
    for settlement in settlements:
        for payout in settlement.payouts:
            owed[payout.address] = owed.get(payout.address, 0) + payout.amount
    return owed
