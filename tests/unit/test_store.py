"""
Tests for the Ledger store: role gates, writes and reads.
"""
import pytest

from onezero import Ledger, LedgerStore, Outcome, AuthorizationError, StateError, InputError


ONLY_OWNER = "Only owner can call this function"
ONLY_READERS = "Only market and owner can call this function"
ONLY_MARKET = "Only market contract can call this function"


# =============================================================================
# ACCESS CONTROL
# =============================================================================

class TestAccessControl:

    def test_only_owner_sets_market(self):
        ledger = Ledger("owner", verbose=False)
        with pytest.raises(AuthorizationError, match=ONLY_OWNER):
            ledger.set_market("user1", "market")

    def test_owner_sets_market(self):
        ledger = Ledger("owner", verbose=False)
        ledger.set_market("owner", "market")
        assert ledger.get_market() == "market"
        assert ledger.get_owner() == "owner"

    def test_zero_market_rejected(self):
        ledger = Ledger("owner", verbose=False)
        with pytest.raises(InputError):
            ledger.set_market("owner", "0x0")

    def test_no_writes_before_market_set(self):
        ledger = Ledger("owner", verbose=False)
        with pytest.raises(AuthorizationError, match=ONLY_MARKET):
            ledger.create_option("owner", "t", 0, 1200, 10)

    @pytest.mark.parametrize("read", [
        lambda l, c: l.read_option(c, 0),
        lambda l, c: l.read_position(c, 0, "user1"),
        lambda l, c: l.read_long_position(c, 0, "user1"),
        lambda l, c: l.read_short_position(c, 0, "user1"),
        lambda l, c: l.read_participated_options(c, "user1"),
        lambda l, c: l.read_active_options(c),
        lambda l, c: l.read_concluded_options(c),
        lambda l, c: l.read_option_counter(c),
    ])
    def test_reads_rejected_for_outsiders(self, store_ledger, read):
        with pytest.raises(AuthorizationError, match=ONLY_READERS):
            read(store_ledger, "user1")

    @pytest.mark.parametrize("caller", ["owner", "market"])
    def test_owner_and_market_can_read(self, store_ledger, caller):
        assert store_ledger.read_option_counter(caller) == 0

    @pytest.mark.parametrize("write", [
        lambda l, c: l.create_option(c, "t", 0, 1200, 10),
        lambda l, c: l.create_position(c, 0, "user1", 100, True),
        lambda l, c: l.add_commission(c, 0, 1),
        lambda l, c: l.end_option(c, 0, True),
    ])
    def test_owner_cannot_write(self, store_ledger, write):
        with pytest.raises(AuthorizationError, match=ONLY_MARKET):
            write(store_ledger, "owner")


# =============================================================================
# OPTIONS AND POSITIONS
# =============================================================================

class TestWrites:

    def test_create_option_ids_are_dense(self, store_ledger):
        assert store_ledger.create_option("market", "a", 10, 1200, 10) == 0
        assert store_ledger.create_option("market", "b", 10, 1700, 10) == 1
        assert store_ledger.read_option_counter("owner") == 2

    def test_new_option_is_empty(self, store_ledger):
        store_ledger.create_option("market", "test binary option", 10, 1200, 10)
        option = store_ledger.read_option("owner", 0)
        assert option.title == "test binary option"
        assert option.outcome is Outcome.UNDETERMINED
        assert option.long_stakers == [] and option.short_stakers == []
        assert option.total_long_stake == option.total_short_stake == 0
        assert option.commission_collected == 0
        assert not option.concluded

    def test_positions_accumulate(self, store_ledger):
        store_ledger.create_option("market", "t", 10, 1200, 10)
        store_ledger.create_position("market", 0, "user1", 999, True)
        store_ledger.create_position("market", 0, "user1", 1, True)
        store_ledger.create_position("market", 0, "user1", 5, False)

        option = store_ledger.read_option("market", 0)
        assert option.long_stakers == ["user1"]
        assert option.short_stakers == ["user1"]
        assert option.total_long_stake == 1000
        assert store_ledger.read_long_position("owner", 0, "user1") == 1000
        assert store_ledger.read_short_position("owner", 0, "user1") == 5
        assert store_ledger.read_participated_options("owner", "user1") == [0]

    def test_staker_order_is_insertion_order(self, store_ledger):
        store_ledger.create_option("market", "t", 10, 1200, 10)
        for user in ["user3", "user1", "user3", "user2"]:
            store_ledger.create_position("market", 0, user, 1, True)
        assert store_ledger.read_option("owner", 0).long_stakers == ["user3", "user1", "user2"]

    def test_add_commission(self, store_ledger):
        store_ledger.create_option("market", "t", 10, 1200, 10)
        store_ledger.add_commission("market", 0, 7)
        store_ledger.add_commission("market", 0, 3)
        assert store_ledger.read_option("owner", 0).commission_collected == 10

    def test_end_option(self, store_ledger):
        store_ledger.create_option("market", "t", 10, 1200, 10)
        store_ledger.create_option("market", "u", 10, 1200, 10)
        store_ledger.end_option("market", 1, False)
        option = store_ledger.read_option("owner", 1)
        assert option.concluded
        assert option.outcome is Outcome.SHORT
        assert store_ledger.read_active_options("owner") == [0]
        assert store_ledger.read_concluded_options("owner") == [1]

    def test_write_to_unknown_option(self, store_ledger):
        with pytest.raises(StateError, match="does not exist"):
            store_ledger.create_position("market", 3, "user1", 1, True)

    def test_unknown_option_reads_as_empty(self, store_ledger):
        option = store_ledger.read_option("owner", 42)
        assert option.id == 42
        assert option.title == ""
        assert not option.concluded
        assert store_ledger.read_long_position("owner", 42, "user1") == 0

    def test_reads_are_copies(self, store_ledger):
        store_ledger.create_option("market", "t", 10, 1200, 10)
        store_ledger.create_position("market", 0, "user1", 5, True)
        store_ledger.read_option("owner", 0).long_stakers.append("intruder")
        store_ledger.read_positions("owner", 0)["user1"].long_stake = 10 ** 9
        assert store_ledger.read_option("owner", 0).long_stakers == ["user1"]
        assert store_ledger.read_long_position("owner", 0, "user1") == 5


class TestInjectedStore:

    def test_ledger_operates_on_existing_store(self, store_ledger):
        store_ledger.create_option("market", "t", 10, 1200, 10)
        rebuilt = Ledger("ignored", store=store_ledger.store, verbose=False)
        assert rebuilt.get_owner() == "owner"
        assert rebuilt.read_option_counter("market") == 1

    def test_store_defaults(self):
        store = LedgerStore(owner="owner")
        assert store.market is None
        assert store.options == []

    def test_rollback_keeps_injected_store_shared(self, runtime):
        store = LedgerStore(owner="owner")
        ledger = Ledger("owner", store=store, verbose=False)
        ledger.set_market("owner", "market")
        runtime.attach(ledger)

        with pytest.raises(StateError):
            with runtime.atomic():
                ledger.create_option("market", "t", 10, 1200, 10)
                ledger.create_position("market", 5, "alice", 100, True)

        assert ledger.store is store
        assert store.options == []
        ledger.create_option("market", "t", 10, 1200, 10)
        assert len(store.options) == 1
