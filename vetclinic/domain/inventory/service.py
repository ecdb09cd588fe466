"""
Inventory ledger

Stock only ever moves through conditional_decrement, so a quantity can never
go negative no matter how many requests race for the last units.
"""

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...shared.errors import ClinicError, InsufficientStock, NotFound, ValidationError
from ...shared.results import PartialResult, collect
from ...shared.validators import utcnow
from .repository import InventoryRepository

logger = logging.getLogger(__name__)


class InventoryLedger:
    def __init__(self, db: Session):
        self.db = db
        self.repo = InventoryRepository()

    def decrement(self, product_id: int, quantity: int, commit: bool = True) -> int:
        """
        Remove quantity units of a product; returns the remaining stock.

        With commit=False the decrement joins the caller's transaction
        (invoice creation) and the caller decides whether it sticks.
        """
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", product_id=product_id, quantity=quantity)

        try:
            if not self.repo.conditional_decrement(self.db, product_id, quantity, utcnow()):
                available = self.repo.get_stock(self.db, product_id)
                if commit:
                    self.db.rollback()
                if available is None:
                    raise NotFound("Product", product_id)
                logger.warning(
                    f"⚠️ Insufficient stock for product {product_id}: requested {quantity}, available {available}"
                )
                raise InsufficientStock(product_id, quantity, available)

            remaining = self.repo.get_stock(self.db, product_id)
            if commit:
                self.db.commit()
        except ClinicError:
            raise
        except SQLAlchemyError as e:
            if commit:
                self.db.rollback()
            logger.error(f"❌ Stock decrement failed for product {product_id}: {e}")
            raise

        logger.info(f"📦 Product {product_id} stock -{quantity} (remaining {remaining})")
        return remaining

    def adjust_batch(self, adjustments: Iterable[tuple[int, int]]) -> PartialResult[int, dict]:
        """
        Apply (product_id, quantity) removals one by one.

        Each item commits or fails on its own; the outcome lists every item.
        """

        def apply(adjustment: tuple[int, int]) -> dict:
            product_id, quantity = adjustment
            remaining = self.decrement(product_id, quantity)
            return {"product_id": product_id, "stock_quantity": remaining}

        outcome = collect(
            adjustments,
            apply,
            on_storage_error=self.db.rollback,
            key=lambda adjustment: adjustment[0],
        )

        if outcome.has_failures:
            logger.warning(f"⚠️ Inventory batch: {len(outcome.failed)} of {len(outcome.items)} adjustment(s) failed")
        else:
            logger.info(f"✅ Inventory batch applied: {len(outcome.items)} adjustment(s)")
        return outcome
