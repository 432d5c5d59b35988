"""
카탈로그 원본: item_catalog 테이블 읽기/쓰기

- load_catalog: 활성 품목을 읽어 정규화. 테이블이 비어 있으면 기본 품목을 심음
- save_catalog: 편집 결과 저장 (기존 행 갱신, 새 행 추가, 빠진 행 비활성화)
"""
import logging
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.entities import CatalogItem
from database import transactional
from models import CatalogItemRow
from services.catalog_service import (
    default_catalog_items,
    normalize_catalog,
    prepare_catalog_for_save,
    reorder_saved_catalog,
)

logger = logging.getLogger(__name__)


@transactional
def _seed_default_catalog(db: Session) -> List[CatalogItemRow]:
    rows = [
        CatalogItemRow(
            name=item.name,
            unit=item.unit,
            default_unit_price=item.price,
            category=item.category,
            display_order=index,
            is_active=True,
        )
        for index, item in enumerate(default_catalog_items())
    ]
    db.add_all(rows)
    db.flush()
    return rows


def load_catalog(db: Session) -> List[CatalogItem]:
    """
    활성 카탈로그 읽기

    테이블이 비어 있으면 기본 품목(시간/음료/소주/맥주)을 저장하고 그것을 돌려줌.
    저장에 실패해도 기본값으로 동작함.
    """
    rows = (
        db.query(CatalogItemRow)
        .filter(CatalogItemRow.is_active == True)
        .order_by(CatalogItemRow.display_order)
        .all()
    )
    if rows:
        return normalize_catalog(rows)

    try:
        seeded = _seed_default_catalog(db)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to seed default catalog, using in-memory defaults: {e}")
        return default_catalog_items()

    logger.info(f"Seeded default catalog with {len(seeded)} items")
    return normalize_catalog(seeded)


@transactional
def _write_catalog(db: Session, items: List[CatalogItem]) -> None:
    active_ids = {
        row_id for (row_id,) in
        db.query(CatalogItemRow.id).filter(CatalogItemRow.is_active == True).all()
    }
    kept_ids = set()

    for item in items:
        row = db.query(CatalogItemRow).filter(CatalogItemRow.id == item.id).first() if item.id else None
        if row is None:
            row = CatalogItemRow(id=item.id) if item.id else CatalogItemRow()
            db.add(row)
        row.name = item.name
        row.unit = item.unit
        row.default_unit_price = item.price
        row.category = item.category
        row.display_order = item.display_order
        row.is_active = True
        db.flush()
        kept_ids.add(row.id)

    to_deactivate = active_ids - kept_ids
    if to_deactivate:
        db.query(CatalogItemRow).filter(
            CatalogItemRow.id.in_(to_deactivate)
        ).update({CatalogItemRow.is_active: False}, synchronize_session=False)
        logger.info(f"Deactivated {len(to_deactivate)} catalog items")


def save_catalog(db: Session, items: Iterable) -> List[CatalogItem]:
    """
    카탈로그 저장

    반환:
        저장 후 다시 읽은 정규화 목록 (기본 카테고리는 기본 위치로 정렬)

    예외:
        SQLAlchemyError: 저장 실패 (rollback 됨)
    """
    prepared = prepare_catalog_for_save(items)
    _write_catalog(db, prepared)
    return reorder_saved_catalog(load_catalog(db))
