from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class InitiateBuyRequest(BaseModel):
    land_id: str
    proposed_price: Decimal = Field(..., gt=0)
    message: Optional[str] = Field(default=None, max_length=4000)


class SellerDeclineRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class AdminApproveRequest(BaseModel):
    comments: Optional[str] = Field(default=None, max_length=2000)


class AdminRejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class TimelineEntryResponse(BaseModel):
    seq: int
    event: str
    performedById: str
    description: str
    timestampIso: str


class BuyRequestResponse(BaseModel):
    buyRequestId: str
    landId: str
    sellerId: str
    buyerId: str
    transactionType: str
    agreedPrice: str
    message: Optional[str] = None
    status: str
    rejectionReason: Optional[str] = None
    adminComments: Optional[str] = None
    decidedById: Optional[str] = None
    decidedAtIso: Optional[str] = None
    timeline: List[TimelineEntryResponse]
    version: int
    createdAtIso: Optional[str] = None
    updatedAtIso: Optional[str] = None
