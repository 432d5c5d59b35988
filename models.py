"""
미러 저장소 테이블 (SQLAlchemy ORM)

로컬 원장이 source of truth 이고, 이 테이블들은 내구성을 위한 사본입니다.
- item_catalog: 과금 품목
- rooms: 방 식별 정보 (삭제는 is_active = False)
- business_sessions: 영업 세션 (open / closed)
- room_sessions: 정산된 방 이용 기록 (매출 한 건)
- room_session_items: 정산 시점 품목 스냅샷
- settlements: 결제 분할 (현금 / 카드)
"""
import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class BusinessSessionStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class CatalogItemRow(Base):
    __tablename__ = "item_catalog"

    id = Column(String(36), primary_key=True, default=_uuid)
    category = Column(String(50), nullable=True)
    name = Column(String(100), nullable=False)
    unit = Column(String(20), nullable=True)
    default_unit_price = Column(Integer, nullable=False, default=0)
    display_order = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)


class RoomRow(Base):
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    display_order = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)


class BusinessSessionRow(Base):
    __tablename__ = "business_sessions"

    id = Column(String(36), primary_key=True)
    start_at = Column(DateTime(timezone=True), nullable=False, index=True)
    end_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(Enum(BusinessSessionStatus), nullable=False, default=BusinessSessionStatus.OPEN)


class RoomSessionRow(Base):
    __tablename__ = "room_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    room_id = Column(String(36), nullable=False, index=True)
    business_session_id = Column(String(36), ForeignKey("business_sessions.id"), nullable=True, index=True)
    room_name_snapshot = Column(String(100), nullable=False)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="completed")
    total_amount = Column(Integer, nullable=False, default=0)
    memo = Column(Text, nullable=True)

    items = relationship("RoomSessionItemRow", back_populates="room_session", cascade="all, delete-orphan")
    settlement = relationship("SettlementRow", back_populates="room_session", uselist=False, cascade="all, delete-orphan")


class RoomSessionItemRow(Base):
    __tablename__ = "room_session_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_session_id = Column(String(36), ForeignKey("room_sessions.id"), nullable=False, index=True)
    # 카탈로그에서 삭제된 품목이면 None
    item_id = Column(String(36), nullable=True)
    item_name_snapshot = Column(String(100), nullable=False)
    unit_snapshot = Column(String(20), nullable=False)
    unit_price_snapshot = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)

    room_session = relationship("RoomSessionRow", back_populates="items")


class SettlementRow(Base):
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_session_id = Column(String(36), ForeignKey("room_sessions.id"), nullable=False, unique=True)
    cash_amount = Column(Integer, nullable=False, default=0)
    card_amount = Column(Integer, nullable=False, default=0)
    settled_at = Column(DateTime(timezone=True), nullable=False)

    room_session = relationship("RoomSessionRow", back_populates="settlement")
