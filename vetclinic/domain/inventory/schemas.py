"""Inventory schemas"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class InventoryAdjustment(BaseModel):
    """Remove `quantity` units of a product from stock"""

    product_id: int
    quantity: int


class InventoryAdjustRequest(BaseModel):
    items: list[InventoryAdjustment] = Field(..., min_length=1)


class AdjustmentResult(BaseModel):
    key: int
    success: bool
    result: Optional[Any] = None
    error: Optional[str] = None
    detail: Optional[str] = None


class InventoryAdjustResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    results: list[AdjustmentResult]
