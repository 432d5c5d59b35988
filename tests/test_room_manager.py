"""Room registration, status transitions and selection."""

import pytest

from core.entities import RoomIdentity, RoomStatus
from core.exceptions import InvalidStateTransition, RoomNotFound
from core.room_manager import RoomManager
from core.state_machine import RoomStateMachine
from core.usage_ledger import UsageLedger


class TestRegisterRooms:
    def test_first_room_selected(self, state):
        assert [room.name for room in state.rooms] == ["1번방", "2번방", "3번방", "4번방"]
        assert state.selected_room_id == "room-1"
        assert all(room.status == RoomStatus.WAITING for room in state.rooms)

    def test_reregister_keeps_live_state(self, state):
        RoomManager.set_room_status(state, "room-2", RoomStatus.IN_PROGRESS)
        UsageLedger.increment_item(state, "room-2", "default-time")

        RoomManager.register_rooms(state, [
            RoomIdentity(id="room-2", name="VIP"),
            RoomIdentity(id="room-5", name="5번방"),
        ])

        room = state.find_room("room-2")
        assert room.name == "VIP"
        assert room.status == RoomStatus.IN_PROGRESS
        assert state.usage_for("room-2").quantity("default-time") == 1
        assert set(state.usage_by_room) == {"room-2", "room-5"}
        assert state.selected_room_id == "room-2"

    def test_empty_list_is_ignored(self, state):
        RoomManager.register_rooms(state, [])
        assert len(state.rooms) == 4

    def test_accepts_plain_dicts(self, state):
        RoomManager.register_rooms(state, [{"id": "a", "name": "A"}])
        assert [room.id for room in state.rooms] == ["a"]


class TestStatus:
    def test_start_stamps_time_and_auto_opens_session(self, state, clock):
        room = RoomManager.set_room_status(state, "room-1", RoomStatus.IN_PROGRESS)

        assert room.start_time == clock()
        assert room.end_time is None
        session = state.find_session(state.active_session_id)
        assert session.start_time == room.start_time

    def test_repeated_start_keeps_start_time(self, state, clock):
        RoomManager.set_room_status(state, "room-1", "in_progress")
        first = state.find_room("room-1").start_time
        clock.advance(minutes=5)
        RoomManager.set_room_status(state, "room-1", "in_progress")
        assert state.find_room("room-1").start_time == first

    def test_pause_keeps_timestamps(self, state, clock):
        RoomManager.set_room_status(state, "room-1", RoomStatus.IN_PROGRESS)
        started = clock()
        clock.advance(minutes=30)
        room = RoomManager.set_room_status(state, "room-1", RoomStatus.WAITING)
        assert room.status == RoomStatus.WAITING
        assert room.start_time == started

    def test_invalid_status_rolls_back(self, state):
        version = state.version
        with pytest.raises(InvalidStateTransition):
            RoomManager.set_room_status(state, "room-1", "closed")
        assert state.version == version
        assert state.active_session_id is None

    def test_unknown_room_is_noop(self, state):
        assert RoomManager.set_room_status(state, "ghost", RoomStatus.IN_PROGRESS) is None
        assert state.active_session_id is None

    def test_invariant_holds_after_start(self, state):
        room = RoomManager.set_room_status(state, "room-1", RoomStatus.IN_PROGRESS)
        assert RoomStateMachine.check_invariant(room) is None


class TestSelectionAndLookup:
    def test_select_room(self, state):
        RoomManager.select_room(state, "room-3")
        assert RoomManager.get_selected_room(state).id == "room-3"

    def test_select_unknown_room_keeps_selection(self, state):
        assert RoomManager.select_room(state, "ghost") is None
        assert state.selected_room_id == "room-1"

    def test_get_room_raises(self, state):
        with pytest.raises(RoomNotFound):
            RoomManager.get_room(state, "ghost")


class TestRoomEditing:
    def test_add_room(self, state):
        room = RoomManager.add_room(state, RoomIdentity(id="room-5", name="5번방"))
        assert room.status == RoomStatus.WAITING
        assert state.rooms[-1].id == "room-5"

    def test_rename_trims_and_ignores_blank(self, state):
        RoomManager.rename_room(state, "room-1", "  노래방 A ")
        assert state.find_room("room-1").name == "노래방 A"
        assert RoomManager.rename_room(state, "room-1", "   ") is None
        assert state.find_room("room-1").name == "노래방 A"

    def test_remove_moves_selection(self, state):
        assert RoomManager.remove_room(state, "room-1") is True
        assert state.selected_room_id == "room-2"
        assert "room-1" not in state.usage_by_room

    def test_last_room_cannot_be_removed(self, state):
        RoomManager.register_rooms(state, [RoomIdentity(id="only", name="1번방")])
        assert RoomManager.remove_room(state, "only") is False
        assert len(state.rooms) == 1
