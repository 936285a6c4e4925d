#app/models/enums.py
from __future__ import annotations
from enum import Enum


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class VerificationStatus(str, Enum):
    # shared by users (KYC) and land records (paper-record review)
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class LandType(str, Enum):
    AGRICULTURAL = "AGRICULTURAL"
    RESIDENTIAL = "RESIDENTIAL"
    COMMERCIAL = "COMMERCIAL"
    INDUSTRIAL = "INDUSTRIAL"
    GOVERNMENT = "GOVERNMENT"


class LandClassification(str, Enum):
    DRY = "DRY"
    WET = "WET"
    GARDEN = "GARDEN"
    INAM = "INAM"
    SARKAR = "SARKAR"


class LandStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    FOR_SALE = "FOR_SALE"
    UNDER_TRANSACTION = "UNDER_TRANSACTION"
    SOLD = "SOLD"
    DISPUTED = "DISPUTED"


class BuyRequestStatus(str, Enum):
    PENDING_SELLER_CONFIRMATION = "PENDING_SELLER_CONFIRMATION"
    PENDING_ADMIN_APPROVAL = "PENDING_ADMIN_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


ACTIVE_BUY_REQUEST_STATUSES = (
    BuyRequestStatus.PENDING_SELLER_CONFIRMATION.value,
    BuyRequestStatus.PENDING_ADMIN_APPROVAL.value,
)


class TransactionType(str, Enum):
    SALE = "SALE"


class DocumentType(str, Enum):
    SALE_DEED = "SALE_DEED"
    PATTA = "PATTA"
    KHATA = "KHATA"
    SURVEY_SETTLEMENT = "SURVEY_SETTLEMENT"
    MUTATION = "MUTATION"
    OTHER = "OTHER"


class OtpPurpose(str, Enum):
    REGISTRATION = "REGISTRATION"
    PASSWORD_RESET = "PASSWORD_RESET"


class TimelineEventType(str, Enum):
    REQUEST_CREATED = "REQUEST_CREATED"
    SELLER_CONFIRMED = "SELLER_CONFIRMED"
    SELLER_DECLINED = "SELLER_DECLINED"
    BUYER_CANCELLED = "BUYER_CANCELLED"
    ADMIN_APPROVED = "ADMIN_APPROVED"
    ADMIN_REJECTED = "ADMIN_REJECTED"
    DISPUTE_CLEARED = "DISPUTE_CLEARED"
