"""
동시성 제어 도구

코어 자체는 단일 스레드/동기식이지만, FastAPI 는 동기 endpoint 를
threadpool 에서 실행하므로 요청들이 동시에 들어올 수 있습니다.
모든 상태 변경과 조회는 ledger_lock() 이라는 단일 진입점을 통해 직렬화합니다.

잠금 안에서 생긴 파일/저장소 I/O 는 call_after_release() 로 미뤄
잠금이 풀린 뒤에 실행합니다.

이 잠금은 같은 프로세스 안에서만 유효합니다.
여러 기기/탭이 같은 저장소를 동시에 수정하는 경우는 조정하지 않으며
(last-writer-wins), 이는 알려진 한계입니다.
"""
import threading
from contextlib import contextmanager
from typing import Callable

_ledger_lock = threading.RLock()
_held = threading.local()


@contextmanager
def ledger_lock():
    """
    원장 상태 잠금 (재진입 가능)

    사용 시나리오:
    - API 계층에서 매니저 함수를 호출할 때
    - outbox 를 비우거나 알림을 추가할 때

    예시:
        with ledger_lock():
            SettlementEngine.settle(state, room_id)
            view = build_room_view(state, room_id)

    주의:
        - 잠금 안에서 외부 저장소 I/O 를 하지 않음 (미러링은 잠금 밖에서)
        - 가장 바깥 잠금이 풀릴 때 call_after_release() 로 등록된 작업을 순서대로 실행
          (블록 안에서 예외가 나도 실행됨)
    """
    outermost = getattr(_held, "depth", 0) == 0
    pending = []
    try:
        with _ledger_lock:
            if outermost:
                _held.pending = pending
            _held.depth = getattr(_held, "depth", 0) + 1
            try:
                yield
            finally:
                _held.depth -= 1
                if outermost:
                    _held.pending = None
    finally:
        for callback in pending:
            callback()


def call_after_release(callback: Callable[[], None]) -> None:
    """
    현재 스레드가 ledger_lock() 을 잡고 있으면 잠금이 풀린 뒤로 미루고,
    아니면 바로 실행
    """
    pending = getattr(_held, "pending", None)
    if pending is None:
        callback()
    else:
        pending.append(callback)
