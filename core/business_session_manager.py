"""
Business Session Manager: 영업 세션(하루 영업)의 생명주기 관리

역할:
1. 영업 시작 (활성 세션은 항상 최대 1개)
2. 영업 마감 (모든 방을 대기로 되돌리고 사용 내역 초기화)
3. 활성 세션 조회

원칙:
- 중복 호출은 no-op: 이미 영업 중일 때 start(), 영업 중이 아닐 때 end()
- 마감은 무조건 수행: 미정산 방 경고는 호출자(HTTP 계층)의 책임
"""
import logging
from datetime import datetime
from typing import Optional

from core.entities import (
    SESSION_ENDED,
    SESSION_STARTED,
    BusinessSession,
    RoomStatus,
    Usage,
    new_id,
)
from core.state_machine import RoomStateMachine
from core.store import LedgerState, transactional

logger = logging.getLogger(__name__)


class BusinessSessionManager:
    """영업 세션 관리자"""

    @staticmethod
    def is_active(state: LedgerState) -> bool:
        return state.active_session_id is not None

    @staticmethod
    def get_active_session(state: LedgerState) -> Optional[BusinessSession]:
        if state.active_session_id is None:
            return None
        return state.find_session(state.active_session_id)

    @staticmethod
    def get_latest_session(state: LedgerState) -> Optional[BusinessSession]:
        return state.business_sessions[-1] if state.business_sessions else None

    @staticmethod
    @transactional
    def start(state: LedgerState, at: Optional[datetime] = None) -> Optional[BusinessSession]:
        """
        영업 시작

        매개변수:
            state: LedgerState
            at: 시작 시각 (생략 시 지금). 방 진행 시작에 따른 자동 시작은
                방의 start_time 과 같은 시각을 넘겨줌

        반환:
            새로 연 세션, 이미 영업 중이면 None
        """
        if state.active_session_id is not None:
            logger.info(
                f"Business session {state.active_session_id} already active, start ignored"
            )
            return None

        session = BusinessSession(id=new_id(), start_time=at or state.now())
        state.business_sessions.append(session)
        state.active_session_id = session.id
        state.emit(SESSION_STARTED, {"id": session.id, "start_at": session.start_time})

        logger.info(f"Business session {session.id} started at {session.start_time.isoformat()}")
        return session

    @staticmethod
    @transactional
    def end(state: LedgerState) -> Optional[BusinessSession]:
        """
        영업 마감

        효과:
        1. 활성 세션에 end_time 기록, 활성 포인터 해제
        2. 모든 방: WAITING, start_time = None, end_time = 마감 시각
        3. 모든 방의 사용 내역 초기화 (미정산 내역은 버려짐)

        반환:
            마감된 세션, 영업 중이 아니면 None
        """
        session = BusinessSessionManager.get_active_session(state)
        if session is None:
            logger.info("No active business session, end ignored")
            return None

        closed_at = state.now()
        abandoned = [
            room.name for room in state.rooms
            if room.status == RoomStatus.IN_PROGRESS
            or any(state.usage_for(room.id).item_counts.values())
        ]
        if abandoned:
            logger.warning(
                f"Closing business session {session.id} with unsettled rooms: {', '.join(abandoned)}"
            )

        session.end_time = closed_at
        state.active_session_id = None
        for room in state.rooms:
            RoomStateMachine.reset(room, closed_at)
        state.usage_by_room = {room.id: Usage() for room in state.rooms}
        state.emit(SESSION_ENDED, {"id": session.id, "end_at": closed_at})

        logger.info(f"Business session {session.id} ended at {closed_at.isoformat()}")
        return session
