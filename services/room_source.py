"""
방 식별 정보 원본: rooms 테이블

코어는 여기서 읽은 목록을 RoomManager.register_rooms 로 반영할 뿐이며,
방 상태/타임스탬프는 저장하지 않습니다.
"""
import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.entities import RoomIdentity, new_id
from core.exceptions import RoomNotFound
from database import transactional
from models import RoomRow

logger = logging.getLogger(__name__)

DEFAULT_ROOM_NAMES = ["1번방", "2번방", "3번방", "4번방"]


def default_room_name(display_order: int) -> str:
    return f"{display_order + 1}번방"


def _active_rows(db: Session) -> List[RoomRow]:
    rows = db.query(RoomRow).filter(RoomRow.is_active == True).all()
    return sorted(rows, key=lambda row: (row.display_order or 0, row.name))


@transactional
def _seed_default_rooms(db: Session) -> List[RoomRow]:
    rows = [
        RoomRow(id=new_id(), name=name, display_order=index, is_active=True)
        for index, name in enumerate(DEFAULT_ROOM_NAMES)
    ]
    db.add_all(rows)
    return rows


def load_room_identities(db: Session) -> List[RoomIdentity]:
    """
    활성 방 목록 (display_order, 이름 순)

    테이블이 비어 있으면 기본 방 4개를 만들고, 저장에 실패해도 그 목록으로 동작
    """
    rows = _active_rows(db)
    if not rows:
        defaults = [
            RoomRow(id=new_id(), name=name, display_order=index, is_active=True)
            for index, name in enumerate(DEFAULT_ROOM_NAMES)
        ]
        try:
            rows = _seed_default_rooms(db)
            logger.info(f"Seeded {len(rows)} default rooms")
        except SQLAlchemyError as e:
            logger.warning(f"Failed to seed default rooms, using local fallback: {e}")
            rows = defaults
    return [RoomIdentity(id=row.id, name=row.name) for row in rows]


@transactional
def add_room(db: Session, name: str = "") -> RoomIdentity:
    """새 방 추가. 이름이 비어 있으면 "N번방" """
    display_order = db.query(RoomRow).filter(RoomRow.is_active == True).count()
    row = RoomRow(
        id=new_id(),
        name=(name or "").strip() or default_room_name(display_order),
        display_order=display_order,
        is_active=True,
    )
    db.add(row)
    logger.info(f"Added room {row.id} ({row.name})")
    return RoomIdentity(id=row.id, name=row.name)


@transactional
def rename_room(db: Session, room_id: str, name: str) -> RoomIdentity:
    """
    방 이름 변경 (공백뿐인 이름은 무시)

    예외:
        RoomNotFound: 방이 존재하지 않음
    """
    row = db.query(RoomRow).filter(RoomRow.id == room_id).first()
    if not row:
        raise RoomNotFound(room_id)
    trimmed = (name or "").strip()
    if trimmed:
        row.name = trimmed
    return RoomIdentity(id=row.id, name=row.name)


@transactional
def deactivate_room(db: Session, room_id: str) -> None:
    """
    방 삭제 (soft delete)

    예외:
        RoomNotFound: 방이 존재하지 않음
    """
    row = db.query(RoomRow).filter(RoomRow.id == room_id).first()
    if not row:
        raise RoomNotFound(room_id)
    row.is_active = False
    logger.info(f"Deactivated room {room_id}")
