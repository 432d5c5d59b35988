"""
Catalog API Endpoints

가격 설정: 품목 목록 조회와 저장
"""
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from core.locks import ledger_lock
from core.store import LedgerState, get_ledger_state
from core.usage_ledger import UsageLedger
from database import get_db
from schemas import CatalogItemResponse, CatalogUpdate
from services.catalog_source import save_catalog

router = APIRouter(prefix="/api/catalog", tags=["catalog"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[CatalogItemResponse])
def get_catalog(state: LedgerState = Depends(get_ledger_state)):
    with ledger_lock():
        return [CatalogItemResponse(**asdict(item)) for item in state.catalog]


@router.put("", response_model=List[CatalogItemResponse])
def update_catalog(
    catalog_data: CatalogUpdate,
    db: Session = Depends(get_db),
    state: LedgerState = Depends(get_ledger_state),
):
    """
    카탈로그 저장

    흐름:
    1. 정규화 후 item_catalog 에 저장 (시간 품목 보장, 단위 자동, 빠진 품목 비활성화)
    2. 저장된 목록을 원장에 반영 → 모든 방의 총액/카드 금액 재계산
    """
    try:
        saved = save_catalog(db, [item.model_dump() for item in catalog_data.items])
        with ledger_lock():
            UsageLedger.apply_catalog(state, saved)
            return [CatalogItemResponse(**asdict(item)) for item in state.catalog]

    except Exception as e:
        logger.error(f"Failed to save catalog: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
