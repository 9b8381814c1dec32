"""API v1 routes aggregation"""

from fastapi import APIRouter

from .coupons.router import router as coupons_router
from .orders.router import router as orders_router
from .delivery.router import router as delivery_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(coupons_router, prefix="/coupons", tags=["Coupons"])
api_router.include_router(orders_router, prefix="/orders", tags=["Orders"])
api_router.include_router(delivery_router, prefix="/delivery", tags=["Delivery"])

# Export router
router = api_router
