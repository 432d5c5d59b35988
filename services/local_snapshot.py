"""
Local snapshot: 진행 중인 방 상태와 사용 내역을 로컬 파일에 보관

정산되지 않은 사용 내역은 미러 저장소에 없으므로, 프로세스가 재시작되면 사라집니다.
LocalSnapshotWriter 를 LedgerState 구독자로 붙여 커밋마다 JSON 파일로 저장하고,
시작할 때 restore_live_state 로 되살립니다.

파일 형식 (version 2):
    {
      "version": 2,
      "selected_room_id": "...",
      "rooms": [{"id", "status", "start_time", "end_time"}],
      "usage_by_room": {"<room_id>": {"item_counts", "memo", "cash_amount", "card_amount", "card_overridden"}}
    }
version 1 파일의 사용 내역은 카테고리 키({"time": 1, "beer": 2})를 쓰며 UsageLedger.normalize_usage 가 변환합니다.
"""
import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from core.entities import RoomStatus
from core.locks import call_after_release
from core.store import LedgerState, transactional
from core.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 2


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def serialize_live_state(state: LedgerState) -> dict:
    return {
        "version": SNAPSHOT_VERSION,
        "selected_room_id": state.selected_room_id,
        "rooms": [
            {
                "id": room.id,
                "status": room.status.value,
                "start_time": _iso(room.start_time),
                "end_time": _iso(room.end_time),
            }
            for room in state.rooms
        ],
        "usage_by_room": {
            room_id: {
                "item_counts": dict(usage.item_counts),
                "memo": usage.memo,
                "cash_amount": usage.cash_amount,
                "card_amount": usage.card_amount,
                "card_overridden": usage.card_overridden,
            }
            for room_id, usage in state.usage_by_room.items()
        },
    }


def save_local_snapshot(state: LedgerState, path: str) -> None:
    write_snapshot_file(serialize_live_state(state), path)


def write_snapshot_file(data: dict, path: str) -> None:
    """임시 파일에 쓴 뒤 교체 (중간에 끊겨도 이전 파일이 남음)"""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(target.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
    os.replace(tmp, target)


def load_local_snapshot(path: str) -> Optional[dict]:
    """파일이 없거나 깨져 있으면 None"""
    target = Path(path)
    if not target.exists():
        return None
    try:
        with open(target, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable local snapshot {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


@transactional
def restore_live_state(state: LedgerState, data: dict) -> int:
    """
    스냅샷을 현재 상태에 반영 (현재 등록된 방만)

    카탈로그와 방 목록이 먼저 반영되어 있어야 함

    반환:
        복원한 방 개수
    """
    restored = 0
    rooms = {room.id: room for room in state.rooms}

    for raw in data.get("rooms") or []:
        if not isinstance(raw, dict):
            continue
        room = rooms.get(raw.get("id"))
        if room is None:
            continue
        try:
            status = RoomStatus(raw.get("status", RoomStatus.WAITING.value))
        except ValueError:
            status = RoomStatus.WAITING
        start_time = _parse_datetime(raw.get("start_time"))
        if status == RoomStatus.IN_PROGRESS and start_time is None:
            status = RoomStatus.WAITING
        room.status = status
        room.start_time = start_time
        room.end_time = None if status == RoomStatus.IN_PROGRESS else _parse_datetime(raw.get("end_time"))
        restored += 1

    usage_by_room = data.get("usage_by_room") or data.get("usageByRoom") or {}
    if isinstance(usage_by_room, dict):
        for room_id, raw_usage in usage_by_room.items():
            if room_id in rooms:
                state.usage_by_room[room_id] = UsageLedger.normalize_usage(raw_usage, state.catalog)

    selected = data.get("selected_room_id") or data.get("selectedRoomId")
    if selected in rooms:
        state.selected_room_id = selected

    # 복원한 현금 금액 기준으로 카드 금액 재계산
    UsageLedger.apply_catalog(state, state.catalog)

    logger.info(f"Restored live state for {restored} rooms from local snapshot")
    return restored


class LocalSnapshotWriter:
    """
    LedgerState 구독자: 커밋마다 로컬 스냅샷 저장

    커밋 시점(잠금 안)에는 상태를 직렬화만 하고, 파일 쓰기는 잠금이 풀린 뒤에 함.
    여러 요청의 쓰기 순서가 뒤바뀌어도 더 오래된 스냅샷이 최신 파일을 덮어쓰지 않음.
    """

    def __init__(self, path: str):
        self.path = path
        self._write_lock = threading.Lock()
        self._sequence = 0
        self._written = 0

    def __call__(self, state: LedgerState) -> None:
        self._sequence += 1
        sequence, data = self._sequence, serialize_live_state(state)
        call_after_release(lambda: self._write(sequence, data))

    def _write(self, sequence: int, data: dict) -> None:
        with self._write_lock:
            if sequence <= self._written:
                return
            try:
                write_snapshot_file(data, self.path)
            except OSError as e:
                logger.error(f"Failed to write local snapshot {self.path}: {e}", exc_info=True)
                return
            self._written = sequence

    def __repr__(self):
        return f"LocalSnapshotWriter({self.path!r})"
