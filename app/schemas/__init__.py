from app.schemas.auth import RegisterRequest, LoginRequest, OtpSendRequest, ResetPasswordRequest, TokenResponse
from app.schemas.lands import LandCreateRequest, LandUpdateRequest, LandResponse, LandListResponse
from app.schemas.marketplace import ListForSaleRequest, EditListingRequest
from app.schemas.buy_requests import InitiateBuyRequest, BuyRequestResponse
from app.schemas.users import UserResponse, UserVerificationRequest
