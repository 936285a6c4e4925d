# app/api/v1/responses.py
from __future__ import annotations

from typing import List

from app.models.buy_request import BuyRequest
from app.models.land import Land
from app.models.ownership_record import OwnershipRecord
from app.models.user import User


def _iso(dt):
    return dt.isoformat() if dt else None


def _str(v):
    return str(v) if v is not None else None


def land_resp(land: Land) -> dict:
    return {
        "landId": str(land.id),
        "assetId": land.asset_id,
        "location": {
            "state": land.state,
            "district": land.district,
            "taluka": land.taluka,
            "village": land.village,
            "surveyNumber": land.survey_number,
            "subDivision": land.sub_division,
            "pincode": land.pincode,
        },
        "area": {
            "acres": str(land.area_acres),
            "guntas": str(land.area_guntas),
            "sqft": str(land.area_sqft),
        },
        "boundaries": land.boundaries_json or {},
        "landType": land.land_type,
        "classification": land.classification,
        "currentOwnerId": _str(land.current_owner_id),
        "addedById": str(land.added_by_id),
        "status": land.status,
        "verificationStatus": land.verification_status,
        "verifiedById": _str(land.verified_by_id),
        "verifiedAtIso": _iso(land.verified_at),
        "disputeReason": land.dispute_reason,
        "marketInfo": {
            "isForSale": bool(land.is_for_sale),
            "askingPrice": _str(land.asking_price),
            "pricePerSqft": _str(land.price_per_sqft),
            "listedDateIso": _iso(land.listed_date),
            "description": land.listing_description,
            "images": list(land.listing_images or []),
        },
        "digitalDocument": {
            "isDigitalized": bool(land.is_digitalized),
            "certificateUrl": land.certificate_url,
            "certificateHash": land.certificate_hash,
            "qrCode": land.qr_code,
            "generatedDateIso": _iso(land.digitalized_at),
        },
        "version": land.version,
        "createdAtIso": _iso(land.created_at),
        "updatedAtIso": _iso(land.updated_at),
    }


def land_list_resp(rows: List[Land], total: int, limit: int, offset: int) -> dict:
    return {
        "items": [land_resp(r) for r in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def history_resp(r: OwnershipRecord) -> dict:
    return {
        "seq": r.seq,
        "ownerId": str(r.owner_id),
        "ownerName": r.owner_name,
        "fromDateIso": _iso(r.from_date),
        "toDateIso": _iso(r.to_date),
        "documentReference": r.document_reference,
        "buyRequestId": _str(r.buy_request_id),
    }


def buy_request_resp(req: BuyRequest) -> dict:
    return {
        "buyRequestId": str(req.id),
        "landId": str(req.land_id),
        "sellerId": str(req.seller_id),
        "buyerId": str(req.buyer_id),
        "transactionType": req.transaction_type,
        "agreedPrice": str(req.agreed_price),
        "message": req.message,
        "status": req.status,
        "rejectionReason": req.rejection_reason,
        "adminComments": req.admin_comments,
        "decidedById": _str(req.decided_by_id),
        "decidedAtIso": _iso(req.decided_at),
        "timeline": [
            {
                "seq": e.seq,
                "event": e.event,
                "performedById": str(e.performed_by_id),
                "description": e.description,
                "timestampIso": _iso(e.timestamp),
            }
            for e in req.timeline
        ],
        "version": req.version,
        "createdAtIso": _iso(req.created_at),
        "updatedAtIso": _iso(req.updated_at),
    }


def user_resp(u: User) -> dict:
    return {
        "userId": str(u.id),
        "fullName": u.full_name,
        "email": u.email,
        "role": u.role,
        "verificationStatus": u.verification_status,
        "emailVerified": bool(u.email_verified),
        "isActive": bool(u.is_active),
        "phone": u.phone,
        "createdAtIso": _iso(u.created_at),
    }
