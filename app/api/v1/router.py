from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.auth import router as auth_router
from app.api.v1.lands import router as lands_router
from app.api.v1.marketplace import router as marketplace_router
from app.api.v1.buy_requests import router as buy_requests_router
from app.api.v1.admin.lands import router as admin_lands_router
from app.api.v1.admin.transactions import router as admin_transactions_router
from app.api.v1.admin.users import router as admin_users_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])

# ------------------------------------------------------------------
# REGISTRY / MARKET OPS
# ------------------------------------------------------------------
v1_router.include_router(lands_router, tags=["lands"])
v1_router.include_router(marketplace_router, tags=["marketplace"])
v1_router.include_router(buy_requests_router, tags=["buy-requests"])

# ------------------------------------------------------------------
# ADMIN
# ------------------------------------------------------------------
v1_router.include_router(admin_lands_router, tags=["admin"])
v1_router.include_router(admin_transactions_router, tags=["admin"])
v1_router.include_router(admin_users_router, tags=["admin"])
