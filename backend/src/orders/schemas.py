"""Pydantic schemas for order status changes"""

from typing import Optional

from pydantic import BaseModel, Field


class StatusChangeRequest(BaseModel):
    """Manual status change.

    status is either a canonical token (shipped, delivered, returned,
    cancelled) mapped to its sheet label, or a literal sheet label.
    """
    status: str = Field(..., min_length=1, max_length=100)


class StatusChangeResponse(BaseModel):
    rowId: str
    previousStatus: Optional[str] = None
    status: str
    cell: Optional[str] = None
    stockEffect: Optional[str] = None
