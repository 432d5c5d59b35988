"""
명시적 상태 컨테이너

원장(ledger)의 모든 메모리 상태는 LedgerState 하나에 담기고,
모든 상태 변경은 @transactional 로 감싼 매니저 함수를 통해서만 일어납니다.

@transactional 이 보장하는 것:
1. 원자성: 함수 도중 예외가 나면 상태 전체가 호출 전으로 복원됨
2. 커밋: 성공하면 version 증가 + 구독자(subscriber) 알림
3. 중첩 호출: 바깥 호출 한 번만 커밋/알림 (예: 방 진행 시작 → 영업 자동 시작)

외부 저장소로의 미러링은 여기서 직접 하지 않습니다.
매니저가 state.emit() 으로 outbox 에 이벤트를 남기면,
core.outbox.OutboxDispatcher 가 별도로 비워 가며 저장합니다.
"""
import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from typing import Callable, Dict, List, Optional

from core.entities import (
    BusinessSession,
    CatalogItem,
    LedgerEvent,
    Notification,
    Room,
    SaleRecord,
    Usage,
    utc_now,
)
from core.exceptions import LedgerStateNotReady

logger = logging.getLogger(__name__)

# 롤백 대상 필드 (구독자, 시계, 알림은 제외)
_SNAPSHOT_FIELDS = (
    "rooms",
    "selected_room_id",
    "catalog",
    "usage_by_room",
    "business_sessions",
    "active_session_id",
    "sales_history",
    "outbox",
)

# 불변 레코드만 담는 append-only 필드: 리스트만 복사
_SHALLOW_FIELDS = ("sales_history",)


@dataclass
class LedgerState:
    rooms: List[Room] = field(default_factory=list)
    selected_room_id: Optional[str] = None
    catalog: List[CatalogItem] = field(default_factory=list)
    usage_by_room: Dict[str, Usage] = field(default_factory=dict)
    business_sessions: List[BusinessSession] = field(default_factory=list)
    active_session_id: Optional[str] = None
    sales_history: List[SaleRecord] = field(default_factory=list)
    outbox: List[LedgerEvent] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    version: int = 0
    clock: Callable[[], datetime] = field(default=utc_now, repr=False)
    _subscribers: List[Callable[["LedgerState"], None]] = field(default_factory=list, repr=False)
    _depth: int = field(default=0, repr=False)

    def now(self) -> datetime:
        return self.clock()

    # ============ 조회 ============

    def find_room(self, room_id: str) -> Optional[Room]:
        for room in self.rooms:
            if room.id == room_id:
                return room
        return None

    def find_session(self, session_id: str) -> Optional[BusinessSession]:
        for session in self.business_sessions:
            if session.id == session_id:
                return session
        return None

    def usage_for(self, room_id: str) -> Usage:
        """읽기 전용 조회. 기록이 없으면 빈 Usage 를 돌려주되 저장하지 않음"""
        return self.usage_by_room.get(room_id) or Usage()

    # ============ outbox ============

    def emit(self, event_type: str, data: dict) -> LedgerEvent:
        event = LedgerEvent(event_type=event_type, data=data, created_at=self.now())
        self.outbox.append(event)
        return event

    def drain_outbox(self) -> List[LedgerEvent]:
        events, self.outbox = self.outbox, []
        return events

    # ============ 구독 ============

    def subscribe(self, callback: Callable[["LedgerState"], None]) -> Callable[[], None]:
        """
        커밋될 때마다 callback(state) 호출

        반환:
            구독 해제 함수
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ============ 트랜잭션 지원 ============

    def snapshot(self) -> dict:
        return {
            name: list(getattr(self, name)) if name in _SHALLOW_FIELDS else copy.deepcopy(getattr(self, name))
            for name in _SNAPSHOT_FIELDS
        }

    def restore(self, snapshot: dict) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)

    def commit(self) -> None:
        self.version += 1
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception as e:
                # 구독자 실패는 이미 커밋된 상태에 영향을 주지 않음
                logger.error(f"Ledger subscriber {callback!r} failed: {e}", exc_info=True)


def transactional(func):
    """
    Transition decorator: 상태 전이의 원자성 보장

    사용법:
        @transactional
        def some_transition(state: LedgerState, ...):
            room.status = RoomStatus.WAITING
            state.usage_by_room[room.id] = Usage()
            # 커밋은 decorator 가 처리

    함수 내부에서 예외가 발생하면:
        - 상태를 호출 직전 스냅샷으로 복원
        - 예외는 다시 던짐 (상위에서 처리)

    주의:
        - 첫 번째 인자는 반드시 state: LedgerState
        - 중첩 호출 시 안쪽 호출은 그대로 실행만 하고, 커밋은 바깥 호출이 담당
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        state = None
        if args and isinstance(args[0], LedgerState):
            state = args[0]
        elif isinstance(kwargs.get("state"), LedgerState):
            state = kwargs["state"]

        if state is None:
            raise ValueError(
                f"@transactional requires 'state: LedgerState' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        if state._depth > 0:
            return func(*args, **kwargs)

        snapshot = state.snapshot()
        state._depth += 1
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Transition failed in {func.__name__}: {e}", exc_info=True)
            state.restore(snapshot)
            raise
        finally:
            state._depth -= 1

        state.commit()
        return result

    return wrapper


# ============ 애플리케이션 전역 상태 ============

_ledger_state: Optional[LedgerState] = None


def set_ledger_state(state: Optional[LedgerState]) -> None:
    global _ledger_state
    _ledger_state = state


def get_ledger_state() -> LedgerState:
    """
    FastAPI dependency: 애플리케이션 전역 LedgerState 제공

    lifespan 에서 bootstrap 하기 전에 호출되면 LedgerStateNotReady
    """
    if _ledger_state is None:
        raise LedgerStateNotReady("Ledger state has not been bootstrapped")
    return _ledger_state
