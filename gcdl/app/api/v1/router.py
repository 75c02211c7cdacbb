from fastapi import APIRouter

from gcdl.app.api.v1.endpoints.health import router as health_router
from gcdl.app.api.v1.endpoints.branches import router as branches_router
from gcdl.app.api.v1.endpoints.stock import router as stock_router
from gcdl.app.api.v1.endpoints.procurement import router as procurement_router
from gcdl.app.api.v1.endpoints.sales import router as sales_router
from gcdl.app.api.v1.endpoints.credit import router as credit_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(branches_router, tags=["branches"])
router.include_router(stock_router, tags=["stock"])
router.include_router(procurement_router, tags=["procurement"])
router.include_router(sales_router, tags=["sales"])
router.include_router(credit_router, tags=["credit"])
