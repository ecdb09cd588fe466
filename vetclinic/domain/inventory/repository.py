"""Inventory repository - Conditional stock writes"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models_invoice import Product


class InventoryRepository:
    """Repository for product stock operations"""

    @staticmethod
    def get_stock(db: Session, product_id: int) -> Optional[int]:
        row = db.query(Product.stock_quantity).filter(Product.id == product_id).first()
        return row[0] if row else None

    @staticmethod
    def conditional_decrement(db: Session, product_id: int, quantity: int, now: datetime) -> bool:
        """
        UPDATE products SET stock_quantity = stock_quantity - q
        WHERE id = ? AND stock_quantity >= q

        The row lock taken by the UPDATE serializes concurrent decrements;
        returns False when the guard did not match. Does not commit.
        """
        updated = (
            db.query(Product)
            .filter(Product.id == product_id, Product.stock_quantity >= quantity)
            .update(
                {
                    Product.stock_quantity: Product.stock_quantity - quantity,
                    Product.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        return updated == 1
