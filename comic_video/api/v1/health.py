"""Health check endpoint."""

import platform
import sys

from fastapi import APIRouter, Depends

from comic_video.api.deps import get_services
from comic_video.services import Services

router = APIRouter()


@router.get("/health")
def health_check(services: Services = Depends(get_services)):
    """Service health and queue occupancy."""
    return {
        "status": "healthy",
        "queues": {
            q.name: {
                "depth": q.depth(),
                "capacity": q.capacity,
                "workers": q.worker_count,
            }
            for q in (services.render_queue, services.narrative_queue)
        },
        "status_backend": services.settings.status_backend,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
