"""
Outbox Dispatcher: 로컬 상태 전이 → 미러 저장소

매니저들이 state.emit() 으로 쌓아 둔 이벤트를 꺼내 ledger_sink 에 기록합니다.

원칙:
- 로컬 커밋은 미러 저장을 기다리지 않음 (API 는 BackgroundTasks 로 drain 호출)
- 이벤트당 정확히 한 번 시도, 재시도/백오프 없음
- 실패는 권고성 알림(state.notifications)으로 남기고 로컬 상태는 되돌리지 않음
- 이벤트 순서 보장: drain 은 한 번에 하나씩만 실행 (세션 시작 → 정산 → 마감 순서 유지)
"""
import logging
import threading
from typing import Callable, Dict, List

from sqlalchemy.orm import Session

from core.entities import (
    SALE_SETTLED,
    SESSION_ENDED,
    SESSION_STARTED,
    LedgerEvent,
    Notification,
)
from core.exceptions import MirrorWriteFailed
from core.locks import ledger_lock
from core.store import LedgerState, get_ledger_state
from database import SessionLocal
from services import ledger_sink

logger = logging.getLogger(__name__)

FAILURE_MESSAGES = {
    SESSION_STARTED: "영업 시작 기록 DB 저장에 실패했습니다.",
    SESSION_ENDED: "영업 마감 기록 DB 저장에 실패했습니다.",
    SALE_SETTLED: "정산 데이터 DB 저장에 실패했습니다. 네트워크를 확인해 주세요.",
}


def _default_handlers() -> Dict[str, Callable[[Session, dict], None]]:
    return {
        SESSION_STARTED: lambda db, data: ledger_sink.record_session_start(db, data["id"], data["start_at"]),
        SESSION_ENDED: lambda db, data: ledger_sink.record_session_end(db, data["id"], data["end_at"]),
        SALE_SETTLED: lambda db, data: ledger_sink.record_settlement(db, data["sale"]),
    }


class OutboxDispatcher:
    """outbox 를 비우며 미러 저장소에 기록"""

    def __init__(self, state: LedgerState, session_factory: Callable[[], Session], handlers=None):
        self._state = state
        self._session_factory = session_factory
        self._handlers = handlers or _default_handlers()
        self._drain_lock = threading.Lock()

    def drain(self) -> List[MirrorWriteFailed]:
        """
        쌓인 이벤트를 모두 기록

        반환:
            실패 목록 (각 실패는 이미 로그와 알림으로 보고됨)
        """
        failures = []
        with self._drain_lock:
            with ledger_lock():
                events = self._state.drain_outbox()
            for event in events:
                try:
                    self._write(event)
                except MirrorWriteFailed as failure:
                    failures.append(failure)
                    self._notify(event, failure)
        return failures

    def _write(self, event: LedgerEvent) -> None:
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.warning(f"No mirror handler for event {event.event_type}, skipped")
            return

        db = self._session_factory()
        try:
            handler(db, event.data)
            logger.info(f"Mirrored {event.event_type}")
        except Exception as e:
            raise MirrorWriteFailed(event.event_type, e) from e
        finally:
            db.close()

    def _notify(self, event: LedgerEvent, failure: MirrorWriteFailed) -> None:
        logger.error(str(failure), exc_info=failure)
        message = FAILURE_MESSAGES.get(event.event_type, str(failure))
        with ledger_lock():
            self._state.notifications.append(
                Notification(event_type=event.event_type, message=message, created_at=self._state.now())
            )


_dispatcher = None


def get_outbox_dispatcher() -> OutboxDispatcher:
    """
    FastAPI dependency: 전역 상태에 연결된 dispatcher

    state 가 바뀌면(테스트/재부팅) 새로 만듦
    """
    global _dispatcher
    state = get_ledger_state()
    if _dispatcher is None or _dispatcher._state is not state:
        _dispatcher = OutboxDispatcher(state, SessionLocal)
    return _dispatcher
