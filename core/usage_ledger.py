"""
Usage Ledger: 방별 사용 내역(품목 수량, 메모, 결제 분할) 관리

총액 계산:
    total(room) = Σ (활성 카탈로그 품목의 수량 × 단가)

    카탈로그에 없는 품목 id(삭제/비활성화된 품목)는 총액 계산에서 조용히 제외되지만,
    저장된 수량 자체는 지우지 않습니다. 카탈로그가 바뀌어도 계산이 깨지지 않게 하기 위함.

결제 분할:
    카드 금액을 직접 지정하지 않은 동안(card_overridden=False)에는
    card_amount = max(0, total - cash_amount) 가 항상 유지됩니다.
    총액이 바뀌는 모든 연산(수량 변경, 카탈로그 교체) 뒤에 다시 계산합니다.
"""
import logging
from typing import Iterable, List, Optional

from core.entities import CatalogItem, Usage, sanitize_amount
from core.store import LedgerState, transactional

logger = logging.getLogger(__name__)

# 구버전 로컬 데이터는 품목 id 대신 카테고리 이름으로 수량을 저장했음
LEGACY_CATEGORY_KEYS = ("time", "drink", "soju", "beer")


class UsageLedger:
    """방별 사용 내역 관리자"""

    # ============ 계산 ============

    @staticmethod
    def compute_total(state: LedgerState, room_id: str) -> int:
        usage = state.usage_by_room.get(room_id)
        if usage is None:
            return 0
        return sum(
            usage.quantity(item.id) * item.price
            for item in state.catalog
            if item.is_active
        )

    @staticmethod
    def derived_card_amount(total: int, cash_amount: int) -> int:
        return max(0, total - cash_amount)

    @staticmethod
    def _sync_card_amount(state: LedgerState, room_id: str) -> None:
        usage = state.usage_by_room.get(room_id)
        if usage is None or usage.card_overridden:
            return
        total = UsageLedger.compute_total(state, room_id)
        usage.card_amount = UsageLedger.derived_card_amount(total, usage.cash_amount)

    @staticmethod
    def _editable_usage(state: LedgerState, room_id: str) -> Optional[Usage]:
        """등록된 방이면 Usage 를 (없으면 생성해서) 돌려주고, 모르는 방이면 None"""
        if state.find_room(room_id) is None:
            logger.debug(f"Usage change for unknown room {room_id} ignored")
            return None
        return state.usage_by_room.setdefault(room_id, Usage())

    # ============ 수량 ============

    @staticmethod
    @transactional
    def increment_item(state: LedgerState, room_id: str, item_id: str) -> Optional[Usage]:
        usage = UsageLedger._editable_usage(state, room_id)
        if usage is None:
            return None
        usage.item_counts[item_id] = usage.quantity(item_id) + 1
        UsageLedger._sync_card_amount(state, room_id)
        return usage

    @staticmethod
    @transactional
    def decrement_item(state: LedgerState, room_id: str, item_id: str) -> Optional[Usage]:
        usage = UsageLedger._editable_usage(state, room_id)
        if usage is None:
            return None
        usage.item_counts[item_id] = max(0, usage.quantity(item_id) - 1)
        UsageLedger._sync_card_amount(state, room_id)
        return usage

    # ============ 메모 / 결제 ============

    @staticmethod
    @transactional
    def set_memo(state: LedgerState, room_id: str, memo: str) -> Optional[Usage]:
        usage = UsageLedger._editable_usage(state, room_id)
        if usage is None:
            return None
        usage.memo = memo if isinstance(memo, str) else ""
        return usage

    @staticmethod
    @transactional
    def set_cash_amount(state: LedgerState, room_id: str, amount) -> Optional[Usage]:
        """
        현금 금액 입력

        효과:
            cash_amount = 정규화된 금액
            카드 금액 직접 지정 해제 → card_amount = max(0, total - cash_amount)
        """
        usage = UsageLedger._editable_usage(state, room_id)
        if usage is None:
            return None
        usage.cash_amount = sanitize_amount(amount)
        usage.card_overridden = False
        UsageLedger._sync_card_amount(state, room_id)
        return usage

    @staticmethod
    @transactional
    def set_card_amount(state: LedgerState, room_id: str, amount) -> Optional[Usage]:
        """카드 금액 직접 지정 (이후 총액이 바뀌어도 자동 계산하지 않음)"""
        usage = UsageLedger._editable_usage(state, room_id)
        if usage is None:
            return None
        usage.card_amount = sanitize_amount(amount)
        usage.card_overridden = True
        return usage

    @staticmethod
    @transactional
    def reset_usage(state: LedgerState, room_id: str) -> Optional[Usage]:
        """사용 내역 전체 초기화. 방 상태/타임스탬프는 건드리지 않음"""
        if state.find_room(room_id) is None:
            logger.debug(f"Usage reset for unknown room {room_id} ignored")
            return None
        usage = Usage()
        state.usage_by_room[room_id] = usage
        logger.info(f"Usage of room {room_id} reset")
        return usage

    # ============ 카탈로그 ============

    @staticmethod
    @transactional
    def apply_catalog(state: LedgerState, items: Iterable[CatalogItem]) -> List[CatalogItem]:
        """
        카탈로그 교체 (정규화는 호출자가 catalog_service 로 미리 수행)

        단가가 바뀌면 총액도 바뀌므로 모든 방의 카드 금액을 다시 계산
        """
        state.catalog = list(items)
        for room_id in list(state.usage_by_room):
            UsageLedger._sync_card_amount(state, room_id)
        logger.info(f"Catalog applied with {len(state.catalog)} items")
        return state.catalog

    @staticmethod
    def normalize_usage(raw, catalog: Iterable[CatalogItem]) -> Usage:
        """
        저장된(로컬 스냅샷) 사용 내역을 현재 형식으로 변환

        구버전 형식 {"time": 2, "drink": 1, ...} 은 같은 카테고리 품목의 수량으로 옮김.
        id 기준 수량이 있으면 그것을 우선함.
        """
        source = raw if isinstance(raw, dict) else {}
        raw_counts = source.get("item_counts")
        if not isinstance(raw_counts, dict):
            raw_counts = source.get("itemCounts")
        if not isinstance(raw_counts, dict):
            raw_counts = {}

        counts = {item_id: sanitize_amount(value) for item_id, value in raw_counts.items()}
        for item in catalog:
            if counts.get(item.id, 0) > 0:
                continue
            if item.category in LEGACY_CATEGORY_KEYS:
                legacy = sanitize_amount(source.get(item.category, 0))
                if legacy > 0:
                    counts[item.id] = legacy

        memo = source.get("memo")
        return Usage(
            item_counts=counts,
            memo=memo if isinstance(memo, str) else "",
            cash_amount=sanitize_amount(source.get("cash_amount", source.get("cashAmount", 0))),
            card_amount=sanitize_amount(source.get("card_amount", source.get("cardAmount", 0))),
            card_overridden=bool(source.get("card_overridden", False)),
        )
