"""
API Schemas

요청/응답 Pydantic 모델. 금액 입력은 문자열("40,000원")도 받아서
서버에서 관대하게 정규화합니다.
"""
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from core.entities import RoomStatus


# ============ 요청 ============

class RoomStatusUpdate(BaseModel):
    status: RoomStatus


class MemoUpdate(BaseModel):
    memo: str = ""


class AmountUpdate(BaseModel):
    amount: Union[int, float, str] = Field(0, description="금액 (음수/소수/문자는 정규화됨)")


class RoomCreate(BaseModel):
    name: str = ""


class RoomRename(BaseModel):
    name: str


class CatalogItemPayload(BaseModel):
    id: Optional[str] = None
    name: str = ""
    unit: str = ""
    price: Union[int, float, str] = 0
    category: str = ""
    display_order: int = 0
    is_active: bool = True


class CatalogUpdate(BaseModel):
    items: List[CatalogItemPayload]


# ============ 응답 ============

class ActionResponse(BaseModel):
    status: str = "ok"


class CatalogItemResponse(BaseModel):
    id: str
    name: str
    unit: str
    price: int
    category: str
    display_order: int
    is_active: bool


class UsageResponse(BaseModel):
    item_counts: Dict[str, int]
    memo: str
    cash_amount: int
    card_amount: int
    card_overridden: bool
    total: int
    total_display: str
    paid: int
    remaining: int


class RoomResponse(BaseModel):
    id: str
    name: str
    status: RoomStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_selected: bool = False
    usage: UsageResponse


class SaleLineItemResponse(BaseModel):
    item_id: str
    name: str
    unit: str
    unit_price: int
    quantity: int


class SaleRecordResponse(BaseModel):
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
    business_session_id: Optional[str] = None
    line_items: List[SaleLineItemResponse] = []


class BusinessSessionResponse(BaseModel):
    id: str
    start_time: datetime
    end_time: Optional[datetime] = None


class BusinessSummaryResponse(BaseModel):
    is_active: bool
    session: Optional[BusinessSessionResponse] = None
    sales_total: int
    sales_total_display: str
    cash_total: int
    card_total: int
    settled_count: int
    in_progress_room_count: int
    in_progress_room_names: List[str]


class LedgerStateResponse(BaseModel):
    """짧은 polling 용: version 이 바뀌었을 때만 다시 조회"""
    version: int
    active_session_id: Optional[str] = None
    selected_room_id: Optional[str] = None
    pending_mirror_events: int
    notification_count: int


class NotificationResponse(BaseModel):
    event_type: str
    message: str
    created_at: datetime
