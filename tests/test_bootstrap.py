"""Startup: ledger rebuilt from the mirror database and the local snapshot."""

from core.entities import RoomStatus
from core.outbox import OutboxDispatcher
from core.room_manager import RoomManager
from core.settlement_engine import SettlementEngine
from core.store import LedgerState, get_ledger_state
from core.usage_ledger import UsageLedger
from services.bootstrap_service import bootstrap_ledger


class TestBootstrap:
    def test_fresh_database(self, db, clock):
        state = bootstrap_ledger(db, state=LedgerState(clock=clock))

        assert get_ledger_state() is state
        assert [room.name for room in state.rooms] == ["1번방", "2번방", "3번방", "4번방"]
        assert state.catalog[0].category == "time"
        assert state.active_session_id is None
        assert state.selected_room_id == state.rooms[0].id

    def test_restart_restores_session_sales_and_live_rooms(self, db, clock, session_factory, tmp_path):
        path = str(tmp_path / "ledger_state.json")
        first = bootstrap_ledger(db, path, LedgerState(clock=clock))
        dispatcher = OutboxDispatcher(first, session_factory)
        time_id = first.catalog[0].id
        room_a, room_b = first.rooms[0].id, first.rooms[1].id

        RoomManager.set_room_status(first, room_a, RoomStatus.IN_PROGRESS)
        UsageLedger.increment_item(first, room_a, time_id)
        sale = SettlementEngine.settle(first, room_a)
        RoomManager.set_room_status(first, room_b, RoomStatus.IN_PROGRESS)
        UsageLedger.increment_item(first, room_b, time_id)
        assert dispatcher.drain() == []

        second = bootstrap_ledger(db, path, LedgerState(clock=clock))

        assert second.active_session_id == first.active_session_id
        assert [record.id for record in second.sales_history] == [sale.id]
        room = second.find_room(room_b)
        assert room.status == RoomStatus.IN_PROGRESS
        assert room.start_time == clock()
        assert second.usage_for(room_b).quantity(time_id) == 1
        assert second.usage_for(room_b).card_amount == 30000
