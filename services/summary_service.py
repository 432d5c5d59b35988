"""
요약 서비스: 원장 상태에서 화면용 파생 값 계산

순수 계산 로직이며 상태를 바꾸지 않습니다. 호출자는 ledger_lock() 안에서 호출합니다.
"""
from typing import Any, Dict, List, Optional

from core.business_session_manager import BusinessSessionManager
from core.entities import RoomStatus
from core.exceptions import RoomNotFound
from core.settlement_engine import SettlementEngine
from core.store import LedgerState
from core.usage_ledger import UsageLedger
from services.catalog_service import format_currency


def build_room_view(state: LedgerState, room_id: str) -> Dict[str, Any]:
    """
    방 하나의 현재 상태 + 사용 내역 + 파생 금액

    예외:
        RoomNotFound: 방이 존재하지 않음
    """
    room = state.find_room(room_id)
    if room is None:
        raise RoomNotFound(room_id)

    usage = state.usage_for(room_id)
    total = UsageLedger.compute_total(state, room_id)
    paid = usage.cash_amount + usage.card_amount
    return {
        "id": room.id,
        "name": room.name,
        "status": room.status,
        "start_time": room.start_time,
        "end_time": room.end_time,
        "is_selected": room.id == state.selected_room_id,
        "usage": {
            "item_counts": dict(usage.item_counts),
            "memo": usage.memo,
            "cash_amount": usage.cash_amount,
            "card_amount": usage.card_amount,
            "card_overridden": usage.card_overridden,
            "total": total,
            "total_display": format_currency(total),
            "paid": paid,
            "remaining": max(0, total - paid),
        },
    }


def build_rooms_overview(state: LedgerState) -> List[Dict[str, Any]]:
    return [build_room_view(state, room.id) for room in state.rooms]


def build_business_summary(state: LedgerState) -> Dict[str, Any]:
    """
    오늘 매출 요약

    대상 세션: 활성 세션, 없으면 가장 최근 세션
    - 대상 세션의 매출 합계와 정산 건수
    - 진행중(미정산) 방 개수와 이름 (마감 경고용)
    """
    active = BusinessSessionManager.get_active_session(state)
    target = active or BusinessSessionManager.get_latest_session(state)
    sales = SettlementEngine.sales_for_session(state, target.id) if target else []
    in_progress = [room.name for room in state.rooms if room.status == RoomStatus.IN_PROGRESS]
    sales_total = sum(sale.total for sale in sales)

    return {
        "is_active": active is not None,
        "session": target,
        "sales_total": sales_total,
        "sales_total_display": format_currency(sales_total),
        "cash_total": sum(sale.cash_amount for sale in sales),
        "card_total": sum(sale.card_amount for sale in sales),
        "settled_count": len(sales),
        "in_progress_room_count": len(in_progress),
        "in_progress_room_names": in_progress,
    }


def find_sales(state: LedgerState, session_id: Optional[str] = None) -> list:
    """session_id 가 없으면 전체 매출 이력"""
    if session_id is None:
        return list(state.sales_history)
    return SettlementEngine.sales_for_session(state, session_id)
