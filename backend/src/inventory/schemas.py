"""Pydantic schemas for manual stock adjustments"""

from typing import List, Optional

from pydantic import BaseModel, Field


class StockItemRequest(BaseModel):
    """One product variant to adjust.

    Validation is deliberately loose here: malformed items are reported in
    the per-item results instead of failing the whole request.
    """
    code: Optional[str] = None
    name: Optional[str] = None
    variant: Optional[str] = None
    quantity: Optional[int] = None


class BulkStockRequest(BaseModel):
    items: List[StockItemRequest] = Field(default_factory=list)


class StockItemResult(BaseModel):
    ok: bool
    code: Optional[str] = None
    name: Optional[str] = None
    variant: Optional[str] = None
    quantity: Optional[int] = None
    remaining: Optional[int] = None
    error: Optional[str] = None


class BulkStockResponse(BaseModel):
    results: List[StockItemResult]
