"""
market_example.py - Step-by-Step Prediction Market Example

Demonstrates the complete lifecycle of a binary option:
1. Setup: Create runtime, dividend token, ledger and market, appoint the market
2. Listing: The owner lists a binary option
3. Staking: Three participants stake on the long and short sides
4. Settlement: A keeper scans for expired options and concludes them
5. Payouts: Winners withdraw, token holders claim the commission

Run this file directly:
    python market_example.py
"""

from onezero import (
    Runtime, Ledger, DividendToken, Market, AutomationGateway,
    MarketConfig, PayoutMode, ThresholdOutcomeSource,
    TOKEN_DECIMALS,
)


E18 = 10 ** TOKEN_DECIMALS


def eth(amount: int) -> str:
    """Format an amount of smallest units as whole units."""
    return f"{amount / E18:,.6f}"


def main(payout_mode: PayoutMode = PayoutMode.PUSH):
    print("=" * 70)
    print(f"BINARY OPTION - COMPLETE LIFECYCLE EXAMPLE ({payout_mode.name} PAYOUTS)")
    print("=" * 70)

    # =========================================================================
    # STEP 1: SETUP
    # =========================================================================
    print("\n" + "=" * 70)
    print("STEP 1: SETUP")
    print("=" * 70)

    runtime = Runtime(initial_time=1_700_000_000)
    token = DividendToken(runtime, "One Zero", "OZ", cap=100 * E18, period_duration=10, owner="owner")
    ledger = Ledger("owner")
    market = Market(runtime, ledger, token, owner="owner",
                    config=MarketConfig(payout_mode=payout_mode))
    ledger.set_market("owner", market.address)
    token.set_market("owner", market.address)
    token.transfer("owner", "carol", 40 * E18)

    for user, amount in [("alice", 1), ("bob", 2), ("dave", 3)]:
        runtime.fund(user, amount * E18)

    # =========================================================================
    # STEP 2: LISTING
    # =========================================================================
    print("\n" + "=" * 70)
    print("STEP 2: LIST THE OPTION")
    print("=" * 70)

    start = runtime.current_time + 10
    option_id = market.add_binary_option("owner", "BTC >= 100k at expiry", start, 1200, 10)
    option = market.get_binary_option(option_id)
    print(f"Window: [{option.start}, {option.expiry})  commission: {option.commission_rate_bps} bps")

    # =========================================================================
    # STEP 3: STAKING
    # =========================================================================
    print("\n" + "=" * 70)
    print("STEP 3: STAKE")
    print("=" * 70)

    runtime.advance_time(start)
    market.add_position("alice", option_id, True, 1 * E18)
    market.add_position("bob", option_id, True, 2 * E18)
    market.add_position("dave", option_id, False, 3 * E18)

    option = market.get_binary_option(option_id)
    print(f"Long:  {eth(option.total_long_stake)} from {option.long_stakers}")
    print(f"Short: {eth(option.total_short_stake)} from {option.short_stakers}")
    print(f"Commission collected: {eth(option.commission_collected)}")

    # =========================================================================
    # STEP 4: SETTLEMENT
    # =========================================================================
    print("\n" + "=" * 70)
    print("STEP 4: KEEPER SETTLEMENT")
    print("=" * 70)

    oracle = ThresholdOutcomeSource({option_id: 100_000})
    oracle.add_observation(start, 97_400)
    oracle.add_observation(option.expiry - 60, 100_350)
    gateway = AutomationGateway(runtime, market, oracle)

    print(f"scan() before expiry: {gateway.scan()}")
    settlements = gateway.run([option.expiry - 600, option.expiry])
    for settlement in settlements:
        print(f"Option {settlement.option_id}: {settlement.outcome.name} wins, "
              f"pool {eth(settlement.pool)}, residual {settlement.residual}")
        for payout in settlement.payouts:
            print(f"  {payout.address}: {eth(payout.amount)}")

    # =========================================================================
    # STEP 5: PAYOUTS
    # =========================================================================
    print("\n" + "=" * 70)
    print("STEP 5: WITHDRAW AND CLAIM")
    print("=" * 70)

    if payout_mode is PayoutMode.PULL:
        for user in ("alice", "bob"):
            market.withdraw(user)

    runtime.advance(10)
    for holder in token.get_holders():
        token.claim_commission(holder)

    for user in ("alice", "bob", "dave", "owner", "carol"):
        print(f"{user:>6}: {eth(runtime.balance_of(user))}")
    print(f"Value conserved: {runtime.total_value() == 0}")


if __name__ == "__main__":
    main(PayoutMode.PUSH)
    main(PayoutMode.PULL)
