"""
Room API Endpoints

역할:
1. 방 목록/상세 (사용 내역, 총액 포함)
2. 방 상태 전이 (대기 ↔ 진행중), 방 선택
3. 사용 내역 변경 (품목 수량, 메모, 현금/카드 금액, 초기화)
4. 정산
5. 방 추가/이름 변경/삭제 (room_source 저장 후 코어에 반영)

모든 상태 접근은 ledger_lock() 안에서, 미러 저장은 BackgroundTasks 로.
"""
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from core.business_session_manager import BusinessSessionManager
from core.entities import RoomStatus
from core.exceptions import BusinessSessionNotActive, RoomNotFound
from core.locks import ledger_lock
from core.outbox import OutboxDispatcher, get_outbox_dispatcher
from core.room_manager import RoomManager
from core.settlement_engine import SettlementEngine
from core.store import LedgerState, get_ledger_state
from core.usage_ledger import UsageLedger
from database import Settings, get_db, get_settings
from schemas import (
    AmountUpdate,
    MemoUpdate,
    RoomCreate,
    RoomRename,
    RoomResponse,
    RoomStatusUpdate,
    SaleRecordResponse,
)
from services import room_source
from services.catalog_service import parse_amount
from services.summary_service import build_room_view, build_rooms_overview

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)

NO_ACTIVE_SESSION_MESSAGE = "영업시작 버튼을 먼저 눌러주세요."
LAST_ROOM_MESSAGE = "마지막 방은 삭제할 수 없습니다."


def _room_response(state: LedgerState, room_id: str) -> RoomResponse:
    return RoomResponse(**build_room_view(state, room_id))


@router.get("", response_model=List[RoomResponse])
def list_rooms(state: LedgerState = Depends(get_ledger_state)):
    """전체 방 목록 (등록 순서)"""
    with ledger_lock():
        return [RoomResponse(**view) for view in build_rooms_overview(state)]


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: str, state: LedgerState = Depends(get_ledger_state)):
    try:
        with ledger_lock():
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.post("/{room_id}/select", response_model=RoomResponse)
def select_room(room_id: str, state: LedgerState = Depends(get_ledger_state)):
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            RoomManager.select_room(state, room_id)
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.post("/{room_id}/status", response_model=RoomResponse)
def set_room_status(
    room_id: str,
    status_data: RoomStatusUpdate,
    background_tasks: BackgroundTasks,
    state: LedgerState = Depends(get_ledger_state),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """
    방 상태 전이

    진행중으로 바꿀 때:
    - require_business_session 설정이면 영업 중이 아닐 때 409
    - 아니면 코어가 영업 세션을 자동으로 시작 (미러 저장은 백그라운드)
    """
    try:
        with ledger_lock():
            room = RoomManager.get_room(state, room_id)
            if (
                settings.require_business_session
                and status_data.status == RoomStatus.IN_PROGRESS
                and room.status != RoomStatus.IN_PROGRESS
                and not BusinessSessionManager.is_active(state)
            ):
                raise BusinessSessionNotActive(NO_ACTIVE_SESSION_MESSAGE)

            RoomManager.set_room_status(state, room_id, status_data.status)
            response = _room_response(state, room_id)

        background_tasks.add_task(dispatcher.drain)
        return response

    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except BusinessSessionNotActive as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to change room status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{room_id}/items/{item_id}/increment", response_model=RoomResponse)
def increment_item(room_id: str, item_id: str, state: LedgerState = Depends(get_ledger_state)):
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            UsageLedger.increment_item(state, room_id, item_id)
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.post("/{room_id}/items/{item_id}/decrement", response_model=RoomResponse)
def decrement_item(room_id: str, item_id: str, state: LedgerState = Depends(get_ledger_state)):
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            UsageLedger.decrement_item(state, room_id, item_id)
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.put("/{room_id}/memo", response_model=RoomResponse)
def set_memo(room_id: str, memo_data: MemoUpdate, state: LedgerState = Depends(get_ledger_state)):
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            UsageLedger.set_memo(state, room_id, memo_data.memo)
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.put("/{room_id}/cash", response_model=RoomResponse)
def set_cash_amount(room_id: str, amount_data: AmountUpdate, state: LedgerState = Depends(get_ledger_state)):
    """현금 금액 입력 → 카드 금액은 max(0, 총액 - 현금) 으로 자동 계산"""
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            UsageLedger.set_cash_amount(state, room_id, parse_amount(amount_data.amount))
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.put("/{room_id}/card", response_model=RoomResponse)
def set_card_amount(room_id: str, amount_data: AmountUpdate, state: LedgerState = Depends(get_ledger_state)):
    """카드 금액 직접 지정 (현금 금액을 다시 입력하면 자동 계산으로 돌아감)"""
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            UsageLedger.set_card_amount(state, room_id, parse_amount(amount_data.amount))
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.post("/{room_id}/reset", response_model=RoomResponse)
def reset_usage(room_id: str, state: LedgerState = Depends(get_ledger_state)):
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            UsageLedger.reset_usage(state, room_id)
            return _room_response(state, room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")


@router.post("/{room_id}/settle", response_model=SaleRecordResponse)
def settle_room(
    room_id: str,
    background_tasks: BackgroundTasks,
    state: LedgerState = Depends(get_ledger_state),
    dispatcher: OutboxDispatcher = Depends(get_outbox_dispatcher),
):
    """
    방 정산

    흐름:
    1. 로컬 원장에 매출 기록 + 방/사용 내역 초기화 (원자적)
    2. 응답 반환
    3. 백그라운드에서 미러 저장 (실패하면 알림만 남김)
    """
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            sale = SettlementEngine.settle(state, room_id)

        background_tasks.add_task(dispatcher.drain)
        return SaleRecordResponse(**asdict(sale))

    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except Exception as e:
        logger.error(f"Failed to settle room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("", response_model=RoomResponse)
def add_room(
    room_data: RoomCreate,
    db: Session = Depends(get_db),
    state: LedgerState = Depends(get_ledger_state),
):
    try:
        identity = room_source.add_room(db, room_data.name)
        with ledger_lock():
            RoomManager.add_room(state, identity)
            return _room_response(state, identity.id)

    except Exception as e:
        logger.error(f"Failed to add room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.patch("/{room_id}", response_model=RoomResponse)
def rename_room(
    room_id: str,
    room_data: RoomRename,
    db: Session = Depends(get_db),
    state: LedgerState = Depends(get_ledger_state),
):
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)

        identity = room_source.rename_room(db, room_id, room_data.name)
        with ledger_lock():
            RoomManager.rename_room(state, room_id, identity.name)
            return _room_response(state, room_id)

    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except Exception as e:
        logger.error(f"Failed to rename room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{room_id}", response_model=List[RoomResponse])
def remove_room(
    room_id: str,
    db: Session = Depends(get_db),
    state: LedgerState = Depends(get_ledger_state),
):
    """
    방 삭제 (마지막 방은 삭제 불가)

    진행 중이던 사용 내역도 함께 버려짐
    """
    try:
        with ledger_lock():
            RoomManager.get_room(state, room_id)
            if len(state.rooms) <= 1:
                raise HTTPException(status_code=409, detail=LAST_ROOM_MESSAGE)

        room_source.deactivate_room(db, room_id)
        with ledger_lock():
            RoomManager.remove_room(state, room_id)
            return [RoomResponse(**view) for view in build_rooms_overview(state)]

    except HTTPException:
        raise
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    except Exception as e:
        logger.error(f"Failed to remove room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
