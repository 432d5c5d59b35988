"""
Business Session API Endpoints

역할:
1. 영업 시작 / 마감
2. 오늘 매출 요약, 세션 목록
3. 짧은 polling 용 상태 버전
4. 미러 저장 실패 알림 조회/비우기
"""
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
import logging

from core.business_session_manager import BusinessSessionManager
from core.exceptions import UnsettledRoomsRemain
from core.locks import ledger_lock
from core.outbox import OutboxDispatcher, get_outbox_dispatcher
from core.room_manager import RoomManager
from core.store import LedgerState, get_ledger_state
from schemas import (
    ActionResponse,
    BusinessSessionResponse,
    BusinessSummaryResponse,
    LedgerStateResponse,
    NotificationResponse,
)
from services.summary_service import build_business_summary

router = APIRouter(prefix="/api/business", tags=["business"])
logger = logging.getLogger(__name__)


def _summary_response(state: LedgerState) -> BusinessSummaryResponse:
    summary = build_business_summary(state)
    session = summary.pop("session")
    return BusinessSummaryResponse(
        session=BusinessSessionResponse(**asdict(session)) if session else None,
        **summary
    )


@router.get("/state", response_model=LedgerStateResponse)
def get_state(state: LedgerState = Depends(get_ledger_state)):
    """
    상태 버전 조회

    클라이언트는 version 이 바뀌었을 때만 /api/rooms 등을 다시 조회
    """
    with ledger_lock():
        return LedgerStateResponse(
            version=state.version,
            active_session_id=state.active_session_id,
            selected_room_id=state.selected_room_id,
            pending_mirror_events=len(state.outbox),
            notification_count=len(state.notifications),
        )


@router.post("/start", response_model=BusinessSessionResponse)
def start_business(
    background_tasks: BackgroundTasks,
    state: LedgerState = Depends(get_ledger_state),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
):
    """
    영업 시작 (이미 영업 중이면 기존 세션을 그대로 반환)
    """
    try:
        with ledger_lock():
            BusinessSessionManager.start(state)
            session = BusinessSessionManager.get_active_session(state)

        background_tasks.add_task(dispatcher.drain)
        return BusinessSessionResponse(**asdict(session))

    except Exception as e:
        logger.error(f"Failed to start business session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/end", response_model=BusinessSummaryResponse)
def end_business(
    background_tasks: BackgroundTasks,
    force: bool = Query(False, description="진행중인 방이 있어도 마감"),
    state: LedgerState = Depends(get_ledger_state),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
):
    """
    영업 마감

    진행중인 방이 있으면 409 와 방 이름 목록을 돌려줌 (force=true 면 그대로 마감).
    마감하면 모든 방이 대기로 돌아가고 정산되지 않은 사용 내역은 버려짐.

    반환:
        마감된 세션 기준 매출 요약
    """
    try:
        with ledger_lock():
            in_progress = RoomManager.in_progress_rooms(state)
            if in_progress and not force:
                raise UnsettledRoomsRemain([room.name for room in in_progress])

            BusinessSessionManager.end(state)
            response = _summary_response(state)

        background_tasks.add_task(dispatcher.drain)
        return response

    except UnsettledRoomsRemain as e:
        raise HTTPException(
            status_code=409,
            detail={"message": "아직 진행중인 방이 있습니다.", "rooms": e.room_names},
        )
    except Exception as e:
        logger.error(f"Failed to end business session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/summary", response_model=BusinessSummaryResponse)
def get_summary(state: LedgerState = Depends(get_ledger_state)):
    """오늘 매출 요약 (활성 세션, 없으면 최근 세션 기준)"""
    with ledger_lock():
        return _summary_response(state)


@router.get("/sessions", response_model=List[BusinessSessionResponse])
def list_sessions(state: LedgerState = Depends(get_ledger_state)):
    with ledger_lock():
        return [BusinessSessionResponse(**asdict(session)) for session in state.business_sessions]


@router.get("/notifications", response_model=List[NotificationResponse])
def list_notifications(state: LedgerState = Depends(get_ledger_state)):
    with ledger_lock():
        return [NotificationResponse(**asdict(notification)) for notification in state.notifications]


@router.delete("/notifications", response_model=ActionResponse)
def clear_notifications(state: LedgerState = Depends(get_ledger_state)):
    with ledger_lock():
        state.notifications.clear()
    return ActionResponse(status="ok")
