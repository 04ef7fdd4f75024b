from fastapi import APIRouter
from mktdept.api.routes_health import router as health_router
from mktdept.api.routes_pipeline import router as pipeline_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(pipeline_router, tags=["pipeline"])
