"""
Room Manager: 방의 전체 생명주기 관리

역할:
1. 방 식별 정보 등록/교체 (외부 목록 반영)
2. 방 상태 전이 (대기 ↔ 진행중) + 영업 자동 시작
3. 방 선택
4. 방 추가/이름 변경/삭제를 식별 목록 교체로 반영
5. 방 조회

원칙:
- 단일 책임: 방만 관리, 정산은 SettlementEngine
- 특수 상황 제거: 모든 상태 변경은 RoomStateMachine 을 거침
- 모르는 방에 대한 변경 요청은 no-op (UI 중복 클릭에 안전)
"""
import logging
from typing import Iterable, List, Optional

from core.business_session_manager import BusinessSessionManager
from core.entities import Room, RoomIdentity, RoomStatus, Usage
from core.exceptions import RoomNotFound
from core.state_machine import RoomStateMachine
from core.store import LedgerState, transactional

logger = logging.getLogger(__name__)


def _to_identity(value) -> RoomIdentity:
    if isinstance(value, RoomIdentity):
        return value
    if isinstance(value, Room):
        return RoomIdentity(id=value.id, name=value.name)
    return RoomIdentity(id=str(value["id"]), name=str(value["name"]))


class RoomManager:
    """방 생명주기 관리자"""

    @staticmethod
    @transactional
    def register_rooms(state: LedgerState, identities: Iterable) -> List[Room]:
        """
        방 식별 목록 교체

        흐름:
        1. 새 목록에 남아 있는 방은 상태/타임스탬프 유지
        2. 새 목록에 없는 방은 제거, 사용 내역도 함께 제거
        3. 선택된 방이 제거되면 첫 번째 방으로 선택 이동

        주의:
            - 빈 목록은 무시 (방이 하나도 없는 상태를 만들지 않음)
        """
        identities = [_to_identity(identity) for identity in identities]
        if not identities:
            logger.info("Empty room identity list ignored")
            return state.rooms

        existing = {room.id: room for room in state.rooms}
        next_rooms = []
        for identity in identities:
            previous = existing.get(identity.id)
            next_rooms.append(Room(
                id=identity.id,
                name=identity.name,
                status=previous.status if previous else RoomStatus.WAITING,
                start_time=previous.start_time if previous else None,
                end_time=previous.end_time if previous else None,
            ))

        kept_ids = {room.id for room in next_rooms}
        dropped = [room_id for room_id in existing if room_id not in kept_ids]
        if dropped:
            logger.info(f"Rooms dropped from registry: {', '.join(dropped)}")

        state.rooms = next_rooms
        state.usage_by_room = {
            room.id: state.usage_by_room.get(room.id) or Usage()
            for room in next_rooms
        }
        if state.selected_room_id not in kept_ids:
            state.selected_room_id = next_rooms[0].id

        return state.rooms

    @staticmethod
    @transactional
    def set_room_status(state: LedgerState, room_id: str, status) -> Optional[Room]:
        """
        방 상태 전이

        흐름:
        1. 방 조회 (모르는 방이면 no-op)
        2. 진행중으로 바꿀 때 활성 영업 세션이 없으면 같은 시각으로 자동 시작
           (운영자가 영업시작 버튼을 놓쳐도 매출이 세션 밖으로 빠지지 않게)
        3. RoomStateMachine 으로 전이

        반환:
            변경된(또는 이미 그 상태인) Room, 모르는 방이면 None

        예외:
            InvalidStateTransition: 알 수 없는 상태 값
        """
        room = state.find_room(room_id)
        if room is None:
            logger.debug(f"Status change for unknown room {room_id} ignored")
            return None

        target = RoomStateMachine.coerce_status(status)
        changed_at = state.now()

        if target == RoomStatus.IN_PROGRESS and room.status != RoomStatus.IN_PROGRESS:
            if not BusinessSessionManager.is_active(state):
                logger.info(f"Auto-starting business session for room {room_id}")
                BusinessSessionManager.start(state, at=changed_at)

        RoomStateMachine.transition(room, target, changed_at)
        return room

    @staticmethod
    @transactional
    def select_room(state: LedgerState, room_id: str) -> Optional[Room]:
        room = state.find_room(room_id)
        if room is None:
            return None
        state.selected_room_id = room.id
        return room

    @staticmethod
    @transactional
    def add_room(state: LedgerState, identity) -> Room:
        identity = _to_identity(identity)
        existing = [_to_identity(room) for room in state.rooms if room.id != identity.id]
        RoomManager.register_rooms(state, existing + [identity])
        return state.find_room(identity.id)

    @staticmethod
    @transactional
    def rename_room(state: LedgerState, room_id: str, name: str) -> Optional[Room]:
        """이름 변경. 공백뿐인 이름은 무시"""
        room = state.find_room(room_id)
        trimmed = (name or "").strip()
        if room is None or not trimmed:
            return None
        room.name = trimmed
        return room

    @staticmethod
    @transactional
    def remove_room(state: LedgerState, room_id: str) -> bool:
        """
        방 삭제 (마지막 남은 방은 삭제하지 않음)

        반환:
            실제로 삭제했으면 True
        """
        if state.find_room(room_id) is None or len(state.rooms) <= 1:
            return False
        remaining = [_to_identity(room) for room in state.rooms if room.id != room_id]
        RoomManager.register_rooms(state, remaining)
        return True

    @staticmethod
    def get_room(state: LedgerState, room_id: str) -> Room:
        """
        방 조회

        예외:
            RoomNotFound: 방이 존재하지 않음
        """
        room = state.find_room(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    @staticmethod
    def get_selected_room(state: LedgerState) -> Optional[Room]:
        room = state.find_room(state.selected_room_id) if state.selected_room_id else None
        if room is None and state.rooms:
            return state.rooms[0]
        return room

    @staticmethod
    def in_progress_rooms(state: LedgerState) -> List[Room]:
        return [room for room in state.rooms if room.status == RoomStatus.IN_PROGRESS]
