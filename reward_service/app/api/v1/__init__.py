from fastapi import APIRouter

from .activity_logs import router as activity_logs_router
from .campaigns import router as campaigns_router
from .coin_requests import router as coin_requests_router
from .purchases import router as purchases_router
from .redemption_codes import router as redemption_codes_router
from .vouchers import router as vouchers_router
from .wallet import router as wallet_router

# prefix는 각 router 파일 내부에서 정의되어 있음
api_router = APIRouter()
api_router.include_router(wallet_router)
api_router.include_router(coin_requests_router)
api_router.include_router(vouchers_router)
api_router.include_router(purchases_router)
api_router.include_router(campaigns_router)
api_router.include_router(redemption_codes_router)
api_router.include_router(activity_logs_router)
