"""
Sales API Endpoints

정산 완료된 매출 이력 조회 (정산 순서)
"""
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from core.locks import ledger_lock
from core.store import LedgerState, get_ledger_state
from schemas import SaleRecordResponse
from services.summary_service import find_sales

router = APIRouter(prefix="/api/sales", tags=["sales"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[SaleRecordResponse])
def list_sales(
    session_id: Optional[str] = Query(None, description="영업 세션 id (생략 시 전체)"),
    state: LedgerState = Depends(get_ledger_state),
):
    with ledger_lock():
        if session_id is not None and state.find_session(session_id) is None:
            raise HTTPException(status_code=404, detail="Business session not found")
        return [SaleRecordResponse(**asdict(sale)) for sale in find_sales(state, session_id)]
