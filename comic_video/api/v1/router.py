"""Aggregate all v1 API routers."""

from fastapi import APIRouter
from comic_video.api.v1.health import router as health_router
from comic_video.api.v1.tasks import router as tasks_router
from comic_video.api.v1.ai import router as ai_router
from comic_video.api.v1.renders import router as renders_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(tasks_router, tags=["tasks"])
v1_router.include_router(ai_router, tags=["ai"])
v1_router.include_router(renders_router, tags=["renders"])
