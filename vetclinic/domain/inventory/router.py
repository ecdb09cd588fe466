"""Inventory router"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import Caller, require_staff
from ...database import get_db
from ...shared.errors import PartialBatchFailure
from .schemas import InventoryAdjustRequest, InventoryAdjustResponse
from .service import InventoryLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def get_inventory_ledger(db: Session = Depends(get_db)) -> InventoryLedger:
    """Dependency injection for InventoryLedger"""
    return InventoryLedger(db)


@router.patch("", response_model=InventoryAdjustResponse)
async def adjust_inventory(
    data: InventoryAdjustRequest,
    caller: Caller = Depends(require_staff),
    ledger: InventoryLedger = Depends(get_inventory_ledger),
):
    """
    Remove stock for a list of products.

    Items are applied independently. When any item fails the response is
    207 with the full per-item outcome.
    """
    logger.info(f"📦 Inventory adjustment of {len(data.items)} item(s) by {caller.subject}")
    outcome = ledger.adjust_batch((item.product_id, item.quantity) for item in data.items)
    if outcome.has_failures:
        raise PartialBatchFailure(outcome)
    return outcome.to_dict()
