from fastapi import APIRouter

from app.gymdesk.core.config import settings
from app.gymdesk.routers.admin import router as admin_router
from app.gymdesk.routers.health import router as health_router
from app.gymdesk.routers.metrics import router as metrics_router
from app.gymdesk.routers.pos import router as pos_router
from app.gymdesk.routers.shifts import router as shifts_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(shifts_router, tags=["pos-shifts"])
api_router.include_router(pos_router, tags=["pos"])
api_router.include_router(admin_router, tags=["admin"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
