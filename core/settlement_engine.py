"""
Settlement Engine: 방 정산 (사용 내역 → 불변 매출 기록)

정산 흐름 (하나의 @transactional 안에서 수행, 부분 상태가 보이지 않음):
1. 방과 사용 내역 조회 (모르는 방이면 no-op)
2. 현재 카탈로그 단가로 품목별 스냅샷과 총액 계산
3. SaleRecord 생성
   - start_time = 방 start_time, 한 번도 시작하지 않은 방이면 지금 (길이 0 기록)
   - end_time = settled_at = 지금
   - business_session_id = 정산 시점의 활성 세션 (없으면 None)
4. 매출 이력에 추가 (정산 순서대로 append)
5. 방 초기화: WAITING, start_time = None, end_time = 지금
6. 사용 내역 초기화

정산은 영업 세션을 닫지 않습니다.
"""
import logging
from typing import List, Optional, Tuple

from core.entities import (
    SALE_SETTLED,
    SaleLineItem,
    SaleRecord,
    Usage,
    new_id,
)
from core.state_machine import RoomStateMachine
from core.store import LedgerState, transactional
from core.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


class SettlementEngine:
    """정산 엔진"""

    @staticmethod
    def build_line_items(state: LedgerState, usage: Usage) -> Tuple[SaleLineItem, ...]:
        """활성 카탈로그 순서대로, 수량이 있는 품목만 단가 스냅샷으로 변환"""
        return tuple(
            SaleLineItem(
                item_id=item.id,
                name=item.name,
                unit=item.unit,
                unit_price=item.price,
                quantity=usage.quantity(item.id),
            )
            for item in state.catalog
            if item.is_active and usage.quantity(item.id) > 0
        )

    @staticmethod
    @transactional
    def settle(state: LedgerState, room_id: str) -> Optional[SaleRecord]:
        """
        방 정산

        매개변수:
            state: LedgerState
            room_id: 정산할 방 id

        반환:
            생성된 SaleRecord, 모르는 방이면 None
        """
        room = state.find_room(room_id)
        if room is None:
            logger.info(f"Settlement for unknown room {room_id} ignored")
            return None

        usage = state.usage_for(room_id)
        line_items = SettlementEngine.build_line_items(state, usage)
        total = sum(line.amount for line in line_items)
        if usage.card_overridden:
            card_amount = usage.card_amount
        else:
            card_amount = UsageLedger.derived_card_amount(total, usage.cash_amount)

        settled_at = state.now()
        record = SaleRecord(
            id=new_id(),
            room_id=room.id,
            room_name=room.name,
            start_time=room.start_time or settled_at,
            end_time=settled_at,
            total=total,
            cash_amount=usage.cash_amount,
            card_amount=card_amount,
            memo=usage.memo,
            settled_at=settled_at,
            business_session_id=state.active_session_id,
            line_items=line_items,
        )

        state.sales_history.append(record)
        RoomStateMachine.reset(room, settled_at)
        state.usage_by_room[room_id] = Usage()
        state.emit(SALE_SETTLED, {"sale": record})

        logger.info(
            f"Room {room.id} ({room.name}) settled: total={total} "
            f"cash={record.cash_amount} card={record.card_amount} "
            f"session={record.business_session_id}"
        )
        return record

    @staticmethod
    def sales_for_session(state: LedgerState, session_id: Optional[str]) -> List[SaleRecord]:
        return [sale for sale in state.sales_history if sale.business_session_id == session_id]
