"""
시작 시 원장 복원

순서:
1. 카탈로그 (catalog_source)
2. 방 식별 목록 (room_source)
3. 영업 세션/매출 이력 (ledger_sink.load_ledger_snapshot)
4. 진행 중이던 방 상태/사용 내역 (local_snapshot)
5. 로컬 스냅샷 구독자 연결, 전역 상태로 등록
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from core.room_manager import RoomManager
from core.store import LedgerState, set_ledger_state, transactional
from core.usage_ledger import UsageLedger
from services.catalog_source import load_catalog
from services.ledger_sink import LedgerSnapshot, load_ledger_snapshot
from services.local_snapshot import LocalSnapshotWriter, load_local_snapshot, restore_live_state
from services.room_source import load_room_identities

logger = logging.getLogger(__name__)


@transactional
def hydrate_ledger(state: LedgerState, snapshot: LedgerSnapshot) -> LedgerState:
    state.business_sessions = list(snapshot.sessions)
    state.active_session_id = snapshot.active_session_id
    state.sales_history = list(snapshot.sales)
    return state


def bootstrap_ledger(db: Session, local_state_path: Optional[str] = None, state: Optional[LedgerState] = None) -> LedgerState:
    """
    미러 저장소와 로컬 스냅샷에서 LedgerState 를 만들어 전역 상태로 등록

    매개변수:
        db: SQLAlchemy Session
        local_state_path: 로컬 스냅샷 경로 (None/빈 문자열이면 사용 안 함)
        state: 미리 만든 상태 (테스트에서 시계 주입용)
    """
    state = state or LedgerState()

    UsageLedger.apply_catalog(state, load_catalog(db))
    RoomManager.register_rooms(state, load_room_identities(db))
    hydrate_ledger(state, load_ledger_snapshot(db))

    if local_state_path:
        data = load_local_snapshot(local_state_path)
        if data:
            restore_live_state(state, data)
        state.subscribe(LocalSnapshotWriter(local_state_path))

    set_ledger_state(state)
    logger.info(
        f"Ledger bootstrapped: {len(state.catalog)} items, {len(state.rooms)} rooms, "
        f"{len(state.sales_history)} sales, active session={state.active_session_id}"
    )
    return state
