"""
End-to-end market scenarios: listing, staking, keeper settlement, winner
withdrawals and commission claims by token holders.
"""
import pytest

from onezero import (
    Runtime, DividendToken, Ledger, Market, StaticOutcomeSource,
    PayoutMode, Outcome, OptionStatus, CallableOutcomeSource, AutomationGateway,
    NothingToClaimError,
)

from tests.harness import deploy, E18, OWNER, KEEPER, MINIMUM_DURATION


class TestFullLifecycle:

    def test_stakes_flow_to_winners_and_commission_to_holders(self):
        system = deploy(payout_mode=PayoutMode.PULL)
        runtime, market, token = system.runtime, system.market, system.token
        token.transfer(OWNER, "holder", 25 * E18)

        option_id = system.open_option()
        assert market.get_option_status(option_id) is OptionStatus.PENDING
        system.start(option_id)
        assert market.get_option_status(option_id) is OptionStatus.ACTIVE

        system.stake("user1", option_id, True, E18)
        system.stake("user2", option_id, True, 2 * E18)
        system.stake("user3", option_id, False, 3 * E18)

        system.expire(option_id)
        assert market.get_option_status(option_id) is OptionStatus.EXPIRED

        system.outcomes.default = True
        settled = system.gateway.step(runtime.current_time)
        assert [s.option_id for s in settled] == [option_id]
        assert market.get_binary_option(option_id).outcome is Outcome.LONG

        pool = 6 * E18 * 9990 // 10000
        assert market.withdraw("user1") == pool // 3
        assert market.withdraw("user2") == pool * 2 // 3
        with pytest.raises(NothingToClaimError):
            market.withdraw("user3")

        runtime.advance(10)
        commission = 6 * 10 ** 15
        assert token.claim_commission("holder") == commission // 4
        assert token.claim_commission(OWNER) == commission * 3 // 4
        assert runtime.total_value() == 0
        assert runtime.balance_of(market.address) == 0
        assert runtime.balance_of(token.address) == 0

    def test_keeper_loop_over_many_options(self):
        system = deploy()
        runtime, market = system.runtime, system.market
        durations = [MINIMUM_DURATION + 100 * i for i in range(5)]
        ids = [system.open_option(duration=d) for d in durations]

        system.start(ids[0])
        for option_id in ids:
            system.stake("user1", option_id, True, E18)
            system.stake("user2", option_id, False, E18)

        gateway = AutomationGateway(
            runtime, market, CallableOutcomeSource(lambda option_id, ts: option_id % 2 == 0), keeper=KEEPER
        )
        start = runtime.current_time
        settlements = gateway.run(range(start, start + 2000, 60))

        assert [s.option_id for s in settlements] == ids
        assert market.get_active_binary_options() == []
        assert market.get_concluded_binary_options() == ids
        net = E18 - 10 ** 15
        assert runtime.balance_of("user1") == 3 * 2 * net
        assert runtime.balance_of("user2") == 2 * 2 * net
        assert runtime.balance_of(system.token.address) == 5 * 2 * 10 ** 15

    def test_ownership_handover_keeps_admins(self):
        system = deploy()
        market = system.market
        market.transfer_ownership(OWNER, "new_owner")
        market.update_admin("new_owner", "user3", True)
        assert market.is_admin("user1")
        assert market.add_binary_option("user3", "t", system.runtime.current_time, MINIMUM_DURATION, 0) == 0

    def test_zero_rate_option_forwards_nothing(self):
        system = deploy(payout_mode=PayoutMode.PULL)
        option_id = system.open_option(rate=0)
        system.start(option_id)
        system.stake("user1", option_id, True, E18)
        system.expire(option_id)
        settlement = system.settle(option_id, True)
        assert settlement.commission == 0
        assert system.token.get_epoch(system.token.current_period()) is None
        assert system.market.withdraw("user1") == E18

    def test_default_market_pays_winners_during_settlement(self):
        runtime = Runtime(initial_time=1_700_000_000, verbose=False)
        token = DividendToken(runtime, "One Zero", "OZ", cap=100 * E18,
                              period_duration=10, owner=OWNER, verbose=False)
        ledger = Ledger(OWNER, verbose=False)
        market = Market(runtime, ledger, token, owner=OWNER, verbose=False)
        ledger.set_market(OWNER, market.address)
        token.set_market(OWNER, market.address)

        option_id = market.add_binary_option(OWNER, "ETH > 5k", runtime.current_time + 10, MINIMUM_DURATION, 10)
        runtime.fund("alice", E18)
        runtime.advance(20)
        market.add_position("alice", option_id, True, E18)

        gateway = AutomationGateway(runtime, market, StaticOutcomeSource(default=True), keeper=KEEPER)
        gateway.step(market.get_binary_option(option_id).expiry)

        assert runtime.balance_of("alice") == E18 - 10 ** 15
        assert market.pending_withdrawal("alice") == 0
        with pytest.raises(NothingToClaimError):
            market.withdraw("alice")
