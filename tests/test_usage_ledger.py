"""Usage ledger: item counts, totals and the cash/card split."""

from dataclasses import replace

from core.usage_ledger import UsageLedger
from services.catalog_service import default_catalog_items

ROOM = "room-1"


class TestCounts:
    def test_increment_and_total(self, state):
        UsageLedger.increment_item(state, ROOM, "default-time")
        UsageLedger.increment_item(state, ROOM, "default-beer")
        UsageLedger.increment_item(state, ROOM, "default-beer")
        assert UsageLedger.compute_total(state, ROOM) == 30000 + 2 * 5000

    def test_decrement_floors_at_zero(self, state):
        UsageLedger.decrement_item(state, ROOM, "default-soju")
        assert state.usage_for(ROOM).quantity("default-soju") == 0

    def test_unknown_room_is_noop(self, state):
        assert UsageLedger.increment_item(state, "ghost", "default-time") is None
        assert "ghost" not in state.usage_by_room

    def test_unknown_item_ids_excluded_from_total(self, state):
        UsageLedger.increment_item(state, ROOM, "removed-item")
        UsageLedger.increment_item(state, ROOM, "default-drink")
        assert UsageLedger.compute_total(state, ROOM) == 5000
        assert state.usage_for(ROOM).quantity("removed-item") == 1

    def test_empty_room_total_is_zero(self, state):
        assert UsageLedger.compute_total(state, "room-2") == 0


class TestPaymentSplit:
    def test_card_follows_total_minus_cash(self, state):
        UsageLedger.increment_item(state, ROOM, "default-time")
        UsageLedger.set_cash_amount(state, ROOM, 10000)
        assert state.usage_for(ROOM).card_amount == 20000

        UsageLedger.increment_item(state, ROOM, "default-drink")
        assert state.usage_for(ROOM).card_amount == 25000

    def test_cash_above_total_leaves_card_zero(self, state):
        UsageLedger.increment_item(state, ROOM, "default-drink")
        UsageLedger.set_cash_amount(state, ROOM, 9000)
        assert state.usage_for(ROOM).card_amount == 0

    def test_cash_is_sanitized(self, state):
        UsageLedger.set_cash_amount(state, ROOM, -300)
        assert state.usage_for(ROOM).cash_amount == 0
        UsageLedger.set_cash_amount(state, ROOM, 1234.9)
        assert state.usage_for(ROOM).cash_amount == 1234

    def test_card_override_survives_total_change(self, state):
        UsageLedger.increment_item(state, ROOM, "default-time")
        UsageLedger.set_card_amount(state, ROOM, 7000)
        UsageLedger.increment_item(state, ROOM, "default-time")

        usage = state.usage_for(ROOM)
        assert usage.card_overridden is True
        assert usage.card_amount == 7000

    def test_setting_cash_clears_override(self, state):
        UsageLedger.increment_item(state, ROOM, "default-time")
        UsageLedger.set_card_amount(state, ROOM, 7000)
        UsageLedger.set_cash_amount(state, ROOM, 0)

        usage = state.usage_for(ROOM)
        assert usage.card_overridden is False
        assert usage.card_amount == 30000

    def test_catalog_change_resyncs_card(self, state):
        UsageLedger.increment_item(state, ROOM, "default-time")
        cheaper = [replace(entry, price=20000) if entry.category == "time" else entry
                   for entry in default_catalog_items()]
        UsageLedger.apply_catalog(state, cheaper)
        assert state.usage_for(ROOM).card_amount == 20000


class TestMemoAndReset:
    def test_memo(self, state):
        UsageLedger.set_memo(state, ROOM, "단골 손님")
        assert state.usage_for(ROOM).memo == "단골 손님"

    def test_reset_clears_usage_but_not_room(self, state):
        UsageLedger.increment_item(state, ROOM, "default-time")
        UsageLedger.set_memo(state, ROOM, "memo")
        UsageLedger.reset_usage(state, ROOM)

        usage = state.usage_for(ROOM)
        assert usage.item_counts == {}
        assert usage.memo == ""
        assert usage.cash_amount == 0


class TestNormalizeUsage:
    def test_legacy_category_keys_are_migrated(self):
        catalog = default_catalog_items()
        usage = UsageLedger.normalize_usage({"time": 2, "beer": 1, "memo": "old"}, catalog)
        assert usage.item_counts == {"default-time": 2, "default-beer": 1}
        assert usage.memo == "old"

    def test_item_counts_win_over_legacy_keys(self):
        catalog = default_catalog_items()
        usage = UsageLedger.normalize_usage(
            {"itemCounts": {"default-time": 3}, "time": 1, "cashAmount": "5000"}, catalog
        )
        assert usage.item_counts["default-time"] == 3
        assert usage.cash_amount == 5000

    def test_garbage_input(self):
        usage = UsageLedger.normalize_usage("nonsense", default_catalog_items())
        assert usage.item_counts == {}
        assert usage.cash_amount == 0
