"""Settlement: usage becomes an immutable sale record."""

from core.business_session_manager import BusinessSessionManager
from core.entities import SALE_SETTLED, RoomStatus
from core.room_manager import RoomManager
from core.settlement_engine import SettlementEngine
from core.usage_ledger import UsageLedger
from services.summary_service import build_business_summary

ROOM = "room-1"


class TestSettle:
    def test_forty_thousand_scenario(self, state, clock):
        RoomManager.set_room_status(state, ROOM, RoomStatus.IN_PROGRESS)
        started_at = clock()
        UsageLedger.increment_item(state, ROOM, "default-time")
        UsageLedger.increment_item(state, ROOM, "default-beer")
        UsageLedger.increment_item(state, ROOM, "default-beer")
        UsageLedger.set_cash_amount(state, ROOM, 10000)
        UsageLedger.set_memo(state, ROOM, "생일")
        clock.advance(hours=1)

        sale = SettlementEngine.settle(state, ROOM)

        assert sale.total == 40000
        assert sale.cash_amount == 10000
        assert sale.card_amount == 30000
        assert sale.memo == "생일"
        assert sale.room_name == "1번방"
        assert sale.start_time == started_at
        assert sale.end_time == clock()
        assert sale.business_session_id == state.active_session_id
        assert [(line.item_id, line.quantity) for line in sale.line_items] == [
            ("default-time", 1),
            ("default-beer", 2),
        ]

        room = state.find_room(ROOM)
        assert room.status == RoomStatus.WAITING
        assert room.start_time is None
        assert room.end_time == clock()
        assert state.usage_for(ROOM).item_counts == {}
        assert state.sales_history == [sale]
        assert state.outbox[-1].event_type == SALE_SETTLED

    def test_never_started_room_gets_zero_length_record(self, state, clock):
        UsageLedger.increment_item(state, ROOM, "default-drink")
        sale = SettlementEngine.settle(state, ROOM)

        assert sale.start_time == sale.end_time == clock()
        assert sale.total == 5000
        assert sale.business_session_id is None

    def test_card_override_is_recorded(self, state):
        UsageLedger.increment_item(state, ROOM, "default-time")
        UsageLedger.set_card_amount(state, ROOM, 12345)
        assert SettlementEngine.settle(state, ROOM).card_amount == 12345

    def test_unknown_room_is_noop(self, state):
        assert SettlementEngine.settle(state, "ghost") is None
        assert state.sales_history == []

    def test_settlement_does_not_close_session(self, state):
        RoomManager.set_room_status(state, ROOM, RoomStatus.IN_PROGRESS)
        SettlementEngine.settle(state, ROOM)
        assert BusinessSessionManager.is_active(state)

    def test_price_snapshot_survives_catalog_change(self, state):
        UsageLedger.increment_item(state, ROOM, "default-soju")
        sale = SettlementEngine.settle(state, ROOM)
        UsageLedger.apply_catalog(state, [])
        assert sale.line_items[0].unit_price == 10000
        assert sale.total == 10000


class TestBusinessDay:
    def test_end_to_end_day(self, state, clock):
        BusinessSessionManager.start(state)
        session_id = state.active_session_id

        RoomManager.set_room_status(state, "room-1", RoomStatus.IN_PROGRESS)
        RoomManager.set_room_status(state, "room-2", RoomStatus.IN_PROGRESS)
        UsageLedger.increment_item(state, "room-1", "default-time")
        UsageLedger.increment_item(state, "room-2", "default-time")
        UsageLedger.increment_item(state, "room-2", "default-soju")
        UsageLedger.set_cash_amount(state, "room-2", 40000)
        clock.advance(hours=2)

        SettlementEngine.settle(state, "room-1")
        summary = build_business_summary(state)
        assert summary["sales_total"] == 30000
        assert summary["in_progress_room_names"] == ["2번방"]

        SettlementEngine.settle(state, "room-2")
        BusinessSessionManager.end(state)

        summary = build_business_summary(state)
        assert summary["is_active"] is False
        assert summary["session"].id == session_id
        assert summary["sales_total"] == 70000
        assert summary["sales_total_display"] == "70,000"
        assert summary["cash_total"] == 40000
        assert summary["card_total"] == 30000
        assert summary["settled_count"] == 2
        assert summary["in_progress_room_count"] == 0
        assert [sale.room_id for sale in SettlementEngine.sales_for_session(state, session_id)] == [
            "room-1",
            "room-2",
        ]
