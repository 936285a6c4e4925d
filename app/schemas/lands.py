#app/schemas/lands.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import (
    DocumentType,
    LandClassification,
    LandType,
    VerificationStatus,
)


# -----------------------
# Requests
# -----------------------


class Boundaries(BaseModel):
    model_config = ConfigDict(extra="forbid")

    north: Optional[str] = None
    south: Optional[str] = None
    east: Optional[str] = None
    west: Optional[str] = None


class DocumentIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    document_type: DocumentType = DocumentType.OTHER
    document_number: Optional[str] = None
    document_date: Optional[datetime] = None
    registration_office: Optional[str] = None
    document_url: Optional[str] = Field(default=None, description="handle returned by the document store")
    content_hash: Optional[str] = None


class LandCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    asset_id: Optional[str] = Field(default=None, description="derived from state/district when omitted")

    state: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    taluka: str = Field(..., min_length=1)
    village: str = Field(..., min_length=1)
    survey_number: str = Field(..., min_length=1)
    sub_division: Optional[str] = None
    pincode: str = Field(..., min_length=1)

    area_acres: Decimal = Field(default=Decimal("0"), ge=0)
    area_guntas: Decimal = Field(default=Decimal("0"), ge=0)
    area_sqft: Decimal = Field(default=Decimal("0"), ge=0)

    boundaries: Boundaries = Field(default_factory=Boundaries)
    land_type: LandType
    classification: Optional[LandClassification] = None

    documents: List[DocumentIn] = Field(default_factory=list)

    def record_fields(self) -> Dict[str, Any]:
        data = self.model_dump(exclude={"asset_id", "documents", "boundaries"})
        data["boundaries_json"] = self.boundaries.model_dump(exclude_none=True)
        return data


class LandUpdateRequest(BaseModel):
    """
    Partial record correction. Location fields are refused once the record is VERIFIED.
    """
    model_config = ConfigDict(extra="forbid")

    state: Optional[str] = None
    district: Optional[str] = None
    taluka: Optional[str] = None
    village: Optional[str] = None
    survey_number: Optional[str] = None
    sub_division: Optional[str] = None
    pincode: Optional[str] = None

    area_acres: Optional[Decimal] = Field(default=None, ge=0)
    area_guntas: Optional[Decimal] = Field(default=None, ge=0)
    area_sqft: Optional[Decimal] = Field(default=None, ge=0)

    boundaries: Optional[Boundaries] = None
    land_type: Optional[LandType] = None
    classification: Optional[LandClassification] = None

    def record_fields(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True, exclude={"boundaries"})
        if self.boundaries is not None:
            data["boundaries_json"] = self.boundaries.model_dump(exclude_none=True)
        return data


class ClaimRequest(BaseModel):
    document_reference: Optional[str] = Field(default=None, max_length=256)


class VerificationReviewRequest(BaseModel):
    decision: VerificationStatus


class DigitalizeRequest(BaseModel):
    certificate_url: Optional[str] = None


class DisputeRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class ResolveDisputeRequest(BaseModel):
    resolution: str = Field(..., min_length=1)


# -----------------------
# Responses (camelCase, built by the routers)
# -----------------------


class OwnershipRecordResponse(BaseModel):
    seq: int
    ownerId: str
    ownerName: str
    fromDateIso: str
    toDateIso: Optional[str] = None
    documentReference: Optional[str] = None
    buyRequestId: Optional[str] = None


class MarketInfo(BaseModel):
    isForSale: bool
    askingPrice: Optional[str] = None
    pricePerSqft: Optional[str] = None
    listedDateIso: Optional[str] = None
    description: Optional[str] = None
    images: List[str] = Field(default_factory=list)


class DigitalDocument(BaseModel):
    isDigitalized: bool
    certificateUrl: Optional[str] = None
    certificateHash: Optional[str] = None
    qrCode: Optional[str] = None
    generatedDateIso: Optional[str] = None


class LandResponse(BaseModel):
    landId: str
    assetId: str
    location: Dict[str, Optional[str]]
    area: Dict[str, str]
    boundaries: Dict[str, str]
    landType: str
    classification: Optional[str] = None
    currentOwnerId: Optional[str] = None
    addedById: str
    status: str
    verificationStatus: str
    verifiedById: Optional[str] = None
    verifiedAtIso: Optional[str] = None
    disputeReason: Optional[str] = None
    marketInfo: MarketInfo
    digitalDocument: DigitalDocument
    version: int
    createdAtIso: Optional[str] = None
    updatedAtIso: Optional[str] = None


class LandListResponse(BaseModel):
    items: List[LandResponse]
    total: int
    limit: int
    offset: int


class CertificateResponse(BaseModel):
    landId: str
    assetId: str
    isDigitalized: bool
    certificateUrl: Optional[str] = None
    certificateHash: Optional[str] = None
    qrCode: Optional[str] = None
    generatedDate: Optional[str] = None
