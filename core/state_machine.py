"""
방 상태 머신

모든 방 상태 변경은 이곳을 거치며, 상태와 타임스탬프의 불변식을 함께 관리합니다.

전이 규칙:
- WAITING -> IN_PROGRESS: start_time = 지금, end_time = None
- IN_PROGRESS -> WAITING: 상태만 변경 (타임스탬프 유지, 일시 정지)
- 같은 상태로의 전이: 아무 변화 없음 (중복 클릭에 안전)

정산/영업 마감으로 방을 비울 때는 reset() 을 사용합니다:
- status = WAITING, start_time = None, end_time = 지금
"""
import logging
from datetime import datetime
from typing import Optional

from core.entities import Room, RoomStatus
from core.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)


class RoomStateMachine:
    TRANSITIONS = {
        RoomStatus.WAITING: {RoomStatus.IN_PROGRESS},
        RoomStatus.IN_PROGRESS: {RoomStatus.WAITING},
    }

    @staticmethod
    def coerce_status(value) -> RoomStatus:
        """
        문자열/enum 을 RoomStatus 로 변환

        예외:
            InvalidStateTransition: 알 수 없는 상태 값
        """
        try:
            return RoomStatus(value)
        except ValueError:
            raise InvalidStateTransition(f"Unknown room status: {value!r}")

    @classmethod
    def can_transition(cls, current: RoomStatus, target: RoomStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, room: Room, target, at: datetime) -> bool:
        """
        방 상태 전이

        반환:
            실제로 상태가 바뀌었으면 True, 같은 상태라 무시했으면 False
        """
        target = cls.coerce_status(target)
        if room.status == target:
            logger.debug(f"Room {room.id} already {target.value}, ignored")
            return False
        if not cls.can_transition(room.status, target):
            raise InvalidStateTransition(
                f"Cannot transition room {room.id} from {room.status.value} to {target.value}"
            )

        if target == RoomStatus.IN_PROGRESS:
            room.start_time = at
            room.end_time = None
        room.status = target

        logger.info(f"Room {room.id} ({room.name}) -> {target.value}")
        return True

    @staticmethod
    def reset(room: Room, at: datetime) -> None:
        room.status = RoomStatus.WAITING
        room.start_time = None
        room.end_time = at

    @staticmethod
    def check_invariant(room: Room) -> Optional[str]:
        """불변식 위반 시 설명 문자열, 정상이면 None"""
        if room.status == RoomStatus.IN_PROGRESS:
            if room.start_time is None:
                return "in_progress room without start_time"
            if room.end_time is not None:
                return "in_progress room with end_time"
        return None
