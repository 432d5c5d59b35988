"""
도메인 엔티티

메모리 상의 원장(ledger)을 구성하는 순수 데이터 구조입니다.
DB 테이블(models.py)과는 분리되어 있으며, 코어는 이 구조만 다룹니다.
"""
import enum
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple


class RoomStatus(str, enum.Enum):
    """방 상태"""
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def sanitize_amount(value) -> int:
    """
    금액/수량 입력을 관대하게 정규화

    규칙:
    - 숫자로 변환할 수 없으면 0
    - 무한대/NaN 이면 0
    - 음수면 0
    - 소수점은 버림

    예시:
        sanitize_amount(-5) -> 0
        sanitize_amount(1999.9) -> 1999
        sanitize_amount("abc") -> 0
    """
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, math.floor(number))


@dataclass
class CatalogItem:
    """과금 품목 (시간, 음료, 소주, 맥주 ...)"""
    id: str
    name: str
    unit: str
    price: int
    category: str
    display_order: int
    is_active: bool = True


@dataclass(frozen=True)
class RoomIdentity:
    """외부에서 공급되는 방 식별 정보"""
    id: str
    name: str


@dataclass
class Room:
    id: str
    name: str
    status: RoomStatus = RoomStatus.WAITING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


@dataclass
class Usage:
    """
    방 하나의 진행 중인 사용 내역

    card_overridden 이 False 인 동안 card_amount 는
    max(0, total - cash_amount) 로 자동 계산됩니다.
    """
    item_counts: Dict[str, int] = field(default_factory=dict)
    memo: str = ""
    cash_amount: int = 0
    card_amount: int = 0
    card_overridden: bool = False

    def quantity(self, item_id: str) -> int:
        return self.item_counts.get(item_id, 0)


@dataclass
class BusinessSession:
    """영업 세션 (영업 시작 ~ 영업 마감)"""
    id: str
    start_time: datetime
    end_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(frozen=True)
class SaleLineItem:
    """정산 시점의 품목 가격 스냅샷"""
    item_id: str
    name: str
    unit: str
    unit_price: int
    quantity: int

    @property
    def amount(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class SaleRecord:
    """정산 완료된 매출 기록 (불변, append-only)"""
    id: str
    room_id: str
    room_name: str
    start_time: datetime
    end_time: datetime
    total: int
    cash_amount: int
    card_amount: int
    memo: str
    settled_at: datetime
    business_session_id: Optional[str]
    line_items: Tuple[SaleLineItem, ...] = ()


@dataclass(frozen=True)
class LedgerEvent:
    """
    Outbox 에 쌓이는 이벤트

    event_type 은 아래 상수 중 하나이며, data 는 sink 호출에 필요한 값을 담습니다.
    """
    event_type: str
    data: dict
    created_at: datetime


SESSION_STARTED = "SESSION_STARTED"
SESSION_ENDED = "SESSION_ENDED"
SALE_SETTLED = "SALE_SETTLED"

LEDGER_EVENT_TYPES: List[str] = [SESSION_STARTED, SESSION_ENDED, SALE_SETTLED]


@dataclass(frozen=True)
class Notification:
    """미러 저장 실패 등 운영자에게 보여줄 권고성 알림"""
    event_type: str
    message: str
    created_at: datetime
