"""
카탈로그 서비스: 과금 품목 목록 정규화

순수 계산 로직이며 상태 전이나 DB 접근은 하지 않습니다.

정규화 규칙:
- 활성 품목만 유지
- 단가는 0 이상 정수 (소수점 버림, 숫자가 아니면 0)
- 카테고리는 명시 필드 (None 일 때만 품목 이름에서 추론, 빈 문자열은 "etc")
- "time" 카테고리 품목은 항상 정확히 하나 존재 (없으면 맨 앞에 기본값 삽입 후 순서 재부여)
- 정렬: display_order, 그다음 이름 (대소문자 무시)
"""
from dataclasses import replace
from typing import Iterable, List, Optional

from core.entities import CatalogItem, sanitize_amount

DEFAULT_CATEGORY_ORDER = ["time", "drink", "soju", "beer"]

# (카테고리, 이름 키워드) - 구버전 데이터 호환용 부분 문자열 매칭.
# 새 카테고리 키워드가 생기면 여기에도 규칙을 추가해야 함
CATEGORY_KEYWORDS = [
    ("time", "시간"),
    ("drink", "음료"),
    ("soju", "소주"),
    ("beer", "맥주"),
]

DEFAULT_ITEM_NAME = "품목"
DEFAULT_UNIT = "개"
TIME_UNIT = "시간"

DEFAULT_CATALOG_ITEMS = [
    CatalogItem(id="default-time", name="시간", unit="시간", price=30000,
                category="time", display_order=0, is_active=True),
    CatalogItem(id="default-drink", name="음료", unit="개", price=5000,
                category="drink", display_order=1, is_active=True),
    CatalogItem(id="default-soju", name="소주", unit="개", price=10000,
                category="soju", display_order=2, is_active=True),
    CatalogItem(id="default-beer", name="맥주", unit="개", price=5000,
                category="beer", display_order=3, is_active=True),
]


def default_catalog_items() -> List[CatalogItem]:
    return [replace(item) for item in DEFAULT_CATALOG_ITEMS]


def to_catalog_category(value: Optional[str]) -> str:
    """
    카테고리 문자열 정규화

    예시:
        to_catalog_category("Time") -> "time"
        to_catalog_category("2시간 이용") -> "time"
        to_catalog_category("과자") -> "과자"
        to_catalog_category(None) -> "etc"
    """
    if not value:
        return "etc"
    normalized = value.strip().lower()
    for category, keyword in CATEGORY_KEYWORDS:
        if normalized == category or keyword in normalized:
            return category
    return normalized or "etc"


def resolve_category(category: Optional[str], name: Optional[str]) -> str:
    """
    저장된 행의 카테고리 (읽기 경로)

    category 가 None 일 때만 이름에서 추론. 빈 문자열도 명시 값이므로 "etc"

    예시:
        resolve_category(None, "소주") -> "soju"
        resolve_category("", "소주") -> "etc"
    """
    return to_catalog_category(name if category is None else category)


def payload_category(category: Optional[str], name: Optional[str]) -> str:
    """저장할 카테고리 (쓰기 경로): 빈 카테고리는 이름으로, 이름도 비면 "etc" """
    return to_catalog_category(category or name or "etc")


def auto_unit(category: str) -> str:
    return TIME_UNIT if category == "time" else DEFAULT_UNIT


def _field(row, *names, default=None):
    for name in names:
        if isinstance(row, dict):
            if row.get(name) is not None:
                return row[name]
        elif getattr(row, name, None) is not None:
            return getattr(row, name)
    return default


def to_catalog_item(row) -> CatalogItem:
    """외부 원본 행(dict 또는 객체)을 CatalogItem 으로 변환"""
    raw_name = _field(row, "name")
    name = str(raw_name or "").strip() or DEFAULT_ITEM_NAME
    unit = str(_field(row, "unit", default="")).strip() or DEFAULT_UNIT
    is_active = _field(row, "is_active", "isActive", default=True)
    return CatalogItem(
        id=str(_field(row, "id", default="")),
        name=name,
        unit=unit,
        price=sanitize_amount(_field(row, "default_unit_price", "price", default=0)),
        category=resolve_category(_field(row, "category"), raw_name),
        display_order=sanitize_amount(_field(row, "display_order", "displayOrder", default=0)),
        is_active=is_active is not False,
    )


def sort_catalog_items(items: Iterable[CatalogItem]) -> List[CatalogItem]:
    """display_order, 그다음 이름 (대소문자 무시, 같으면 원문 순)"""
    return sorted(items, key=lambda item: (item.display_order, item.name.casefold(), item.name))


def has_time_item(items: Iterable[CatalogItem]) -> bool:
    return any(resolve_category(item.category, item.name) == "time" for item in items)


def ensure_time_item(items: List[CatalogItem]) -> List[CatalogItem]:
    """time 품목이 없으면 기본 시간 품목을 맨 앞에 넣고 순서를 0..n-1 로 다시 부여"""
    if has_time_item(items):
        return list(items)
    with_time = [replace(DEFAULT_CATALOG_ITEMS[0])] + list(items)
    return [replace(item, display_order=index) for index, item in enumerate(with_time)]


def normalize_catalog(rows: Iterable) -> List[CatalogItem]:
    """
    외부 원본 → 정규화된 활성 카탈로그

    활성 품목이 하나도 없으면 기본 카탈로그
    여러 번 적용해도 결과가 같음 (idempotent)
    """
    items = [item for item in (to_catalog_item(row) for row in rows) if item.is_active]
    if not items:
        return default_catalog_items()
    return sort_catalog_items(ensure_time_item(sort_catalog_items(items)))


def prepare_catalog_for_save(items: Iterable) -> List[CatalogItem]:
    """
    저장 직전 정규화 (가격 설정 화면의 편집 결과)

    - 이름이 비어 있으면 "품목 N"
    - 카테고리 재계산, 단위는 카테고리에서 자동 결정 (time → 시간, 그 외 → 개)
    - 화면 순서대로 display_order 0..n-1, 모두 활성
    """
    # 빈 이름은 위치 번호로 채워야 하므로 원본 이름을 그대로 보존
    converted = []
    for item in items:
        raw_name = str(_field(item, "name", default="")).strip()
        converted.append(replace(
            to_catalog_item(item),
            name=raw_name,
            category=payload_category(_field(item, "category"), raw_name),
        ))
    prepared = []
    for index, item in enumerate(ensure_time_item(converted)):
        prepared.append(replace(
            item,
            name=item.name or f"{DEFAULT_ITEM_NAME} {index + 1}",
            unit=auto_unit(item.category),
            price=sanitize_amount(item.price),
            display_order=index,
            is_active=True,
        ))
    if not prepared:
        return default_catalog_items()
    return prepared


def reorder_saved_catalog(items: Iterable[CatalogItem]) -> List[CatalogItem]:
    """저장 후 다시 읽은 목록: 기본 카테고리는 기본 위치로, 나머지는 현재 위치로"""
    reordered = []
    for index, item in enumerate(ensure_time_item(list(items))):
        if item.category in DEFAULT_CATEGORY_ORDER:
            order = DEFAULT_CATEGORY_ORDER.index(item.category)
        else:
            order = index
        reordered.append(replace(item, display_order=order))
    return sort_catalog_items(reordered)


def format_currency(amount) -> str:
    """
    금액 표시 (ko-KR 천 단위 구분)

    예시:
        format_currency(40000) -> "40,000"
        format_currency(-3) -> "0"
    """
    return f"{sanitize_amount(amount):,}"


def parse_amount(text) -> int:
    """
    자유 입력 문자열에서 금액 추출

    천 단위 구분자와 통화 문자는 버리고, 소수점 이하는 버림.
    음수 입력은 0

    예시:
        parse_amount("40,000원") -> 40000
        parse_amount("1234.5") -> 1234
        parse_amount("-500") -> 0
        parse_amount("") -> 0
    """
    if not isinstance(text, str):
        return sanitize_amount(text)
    if text.strip().startswith("-"):
        return 0
    integer_part = text.split(".", 1)[0]
    digits = "".join(ch for ch in integer_part if ch in "0123456789")
    return sanitize_amount(digits) if digits else 0
