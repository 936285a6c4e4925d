from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ListForSaleRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    asking_price: Decimal = Field(..., gt=0)
    description: Optional[str] = Field(default=None, max_length=4000)
    images: List[str] = Field(default_factory=list, max_length=10)


class EditListingRequest(BaseModel):
    """
    Only marketInfo can be edited; owner, status and location are out of reach here.
    """
    model_config = ConfigDict(extra="forbid")

    asking_price: Optional[Decimal] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, max_length=4000)
    images: Optional[List[str]] = Field(default=None, max_length=10)


class LikeResponse(BaseModel):
    landId: str
    liked: bool
