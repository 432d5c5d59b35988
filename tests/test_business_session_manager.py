"""Business session lifecycle."""

from core.business_session_manager import BusinessSessionManager
from core.entities import SESSION_ENDED, SESSION_STARTED, RoomStatus
from core.room_manager import RoomManager
from core.usage_ledger import UsageLedger


class TestStart:
    def test_start_opens_single_session(self, state, clock):
        session = BusinessSessionManager.start(state)

        assert session.start_time == clock()
        assert state.active_session_id == session.id
        assert BusinessSessionManager.is_active(state)
        assert [event.event_type for event in state.outbox] == [SESSION_STARTED]

    def test_start_twice_is_noop(self, state):
        first = BusinessSessionManager.start(state)
        assert BusinessSessionManager.start(state) is None
        assert state.active_session_id == first.id
        assert len(state.business_sessions) == 1
        assert len(state.outbox) == 1


class TestEnd:
    def test_end_without_session_is_noop(self, state):
        assert BusinessSessionManager.end(state) is None
        assert state.outbox == []

    def test_end_resets_rooms_and_usage(self, state, clock):
        RoomManager.set_room_status(state, "room-1", RoomStatus.IN_PROGRESS)
        UsageLedger.increment_item(state, "room-1", "default-time")
        UsageLedger.increment_item(state, "room-3", "default-beer")
        clock.advance(hours=6)

        session = BusinessSessionManager.end(state)

        assert session.end_time == clock()
        assert state.active_session_id is None
        for room in state.rooms:
            assert room.status == RoomStatus.WAITING
            assert room.start_time is None
            assert room.end_time == clock()
        assert all(not usage.item_counts for usage in state.usage_by_room.values())
        assert state.outbox[-1].event_type == SESSION_ENDED
        assert state.outbox[-1].data == {"id": session.id, "end_at": clock()}

    def test_end_then_start_opens_new_session(self, state, clock):
        first = BusinessSessionManager.start(state)
        BusinessSessionManager.end(state)
        clock.advance(days=1)
        second = BusinessSessionManager.start(state)

        assert second.id != first.id
        assert BusinessSessionManager.get_latest_session(state) is second
        assert [session.is_open for session in state.business_sessions] == [False, True]
