"""
Durable ledger sink: 영업 세션과 정산 기록을 미러 저장소에 기록

각 함수는 한 번만 시도하고, 실패하면 예외를 던집니다 (재시도는 호출자 정책).
로컬 원장은 이미 커밋된 상태이므로 여기서의 실패가 로컬 상태를 되돌리지 않습니다.

load_ledger_snapshot 은 시작 시 한 번 호출되어 메모리 상태를 복원합니다.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from core.entities import BusinessSession, SaleLineItem, SaleRecord
from database import transactional
from models import (
    BusinessSessionRow,
    BusinessSessionStatus,
    RoomSessionItemRow,
    RoomSessionRow,
    SettlementRow,
)

logger = logging.getLogger(__name__)


@dataclass
class LedgerSnapshot:
    sessions: List[BusinessSession] = field(default_factory=list)
    active_session_id: Optional[str] = None
    sales: List[SaleRecord] = field(default_factory=list)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite 는 tzinfo 를 저장하지 않으므로 naive 값은 UTC 로 간주
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@transactional
def record_session_start(db: Session, session_id: str, start_at: datetime) -> None:
    """영업 시작 기록 (이미 있으면 무시)"""
    if db.query(BusinessSessionRow).filter(BusinessSessionRow.id == session_id).first():
        logger.info(f"Business session {session_id} already recorded")
        return
    db.add(BusinessSessionRow(id=session_id, start_at=start_at, status=BusinessSessionStatus.OPEN))


@transactional
def record_session_end(db: Session, session_id: str, end_at: datetime) -> None:
    """
    영업 마감 기록

    예외:
        LookupError: 시작 기록이 없는 세션 (시작 미러링이 실패했던 경우)
    """
    row = db.query(BusinessSessionRow).filter(BusinessSessionRow.id == session_id).first()
    if not row:
        raise LookupError(f"Business session {session_id} not recorded")
    row.end_at = end_at
    row.status = BusinessSessionStatus.CLOSED


@transactional
def record_settlement(db: Session, sale: SaleRecord) -> None:
    """
    정산 기록: room_sessions + room_session_items + settlements

    영업 세션 밖에서의 정산(business_session_id = None)도 그대로 기록
    """
    if db.query(RoomSessionRow).filter(RoomSessionRow.id == sale.id).first():
        logger.info(f"Sale {sale.id} already recorded")
        return

    room_session = RoomSessionRow(
        id=sale.id,
        room_id=sale.room_id,
        business_session_id=sale.business_session_id,
        room_name_snapshot=sale.room_name,
        start_at=sale.start_time,
        end_at=sale.end_time,
        status="completed",
        total_amount=max(0, sale.total),
        memo=sale.memo,
    )
    room_session.items = [
        RoomSessionItemRow(
            item_id=line.item_id,
            item_name_snapshot=line.name,
            unit_snapshot=line.unit,
            unit_price_snapshot=max(0, line.unit_price),
            quantity=max(0, line.quantity),
        )
        for line in sale.line_items
        if line.quantity > 0
    ]
    room_session.settlement = SettlementRow(
        cash_amount=max(0, sale.cash_amount),
        card_amount=max(0, sale.card_amount),
        settled_at=sale.settled_at,
    )
    db.add(room_session)


def load_ledger_snapshot(db: Session) -> LedgerSnapshot:
    """
    미러 저장소에서 원장 복원

    활성 세션: status=open 인 첫 세션, 없으면 end_at 이 비어 있는 마지막 세션
    매출: 정산 기록과 end_at 이 모두 있는 room_sessions 만, end_at 순
    """
    session_rows = db.query(BusinessSessionRow).order_by(BusinessSessionRow.start_at).all()
    sessions = [
        BusinessSession(id=row.id, start_time=_as_utc(row.start_at), end_time=_as_utc(row.end_at))
        for row in session_rows
    ]

    active = next((row for row in session_rows if row.status == BusinessSessionStatus.OPEN), None)
    if active is None:
        active = next((row for row in reversed(session_rows) if row.end_at is None), None)

    room_session_rows = (
        db.query(RoomSessionRow)
        .options(selectinload(RoomSessionRow.items), selectinload(RoomSessionRow.settlement))
        .order_by(RoomSessionRow.end_at)
        .all()
    )
    sales = []
    for row in room_session_rows:
        settlement = row.settlement
        if settlement is None or row.end_at is None:
            continue
        sales.append(SaleRecord(
            id=row.id,
            room_id=row.room_id,
            room_name=row.room_name_snapshot,
            start_time=_as_utc(row.start_at),
            end_time=_as_utc(row.end_at),
            total=max(0, row.total_amount or 0),
            cash_amount=max(0, settlement.cash_amount or 0),
            card_amount=max(0, settlement.card_amount or 0),
            memo=row.memo or "",
            settled_at=_as_utc(settlement.settled_at),
            business_session_id=row.business_session_id,
            line_items=tuple(
                SaleLineItem(
                    item_id=item.item_id or "",
                    name=item.item_name_snapshot,
                    unit=item.unit_snapshot,
                    unit_price=item.unit_price_snapshot,
                    quantity=item.quantity,
                )
                for item in sorted(row.items, key=lambda item: item.id)
            ),
        ))

    logger.info(f"Loaded ledger snapshot: {len(sessions)} sessions, {len(sales)} sales")
    return LedgerSnapshot(
        sessions=sessions,
        active_session_id=active.id if active else None,
        sales=sales,
    )
