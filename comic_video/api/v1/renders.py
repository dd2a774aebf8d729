"""Render management API: create, poll, list, delete, download."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from comic_video.api.deps import get_services
from comic_video.auth.supabase_auth import current_user_id
from comic_video.errors import (
    NotFoundError,
    PermissionDeniedError,
    QueueFullError,
    TaskStateError,
)
from comic_video.render.engine import CreateRenderRequest, RenderEngine
from comic_video.services import Services

router = APIRouter()


def get_engine(services: Services = Depends(get_services)) -> RenderEngine:
    return services.render_engine


_STATUS_CODES = {
    NotFoundError: 404,
    PermissionDeniedError: 403,
    TaskStateError: 409,
    QueueFullError: 503,
}
_SERVICE_ERRORS = tuple(_STATUS_CODES)


def _http_error(e: Exception) -> HTTPException:
    return HTTPException(status_code=_STATUS_CODES[type(e)], detail=str(e))


@router.post("/renders")
def create_render(
    request: CreateRenderRequest,
    user_id: str = Depends(current_user_id),
    engine: RenderEngine = Depends(get_engine),
):
    """Queue a render of a project's timeline."""
    try:
        render = engine.create_render(user_id, request)
    except _SERVICE_ERRORS as e:
        raise _http_error(e)
    return {"task_id": render.id, **render.model_dump(mode="json")}


@router.get("/renders")
def list_renders(
    page: int = 1,
    page_size: int = 20,
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    user_id: str = Depends(current_user_id),
    engine: RenderEngine = Depends(get_engine),
):
    try:
        renders, total, page, page_size = engine.list_renders(
            user_id, page=page, page_size=page_size, project_id=project_id, status=status
        )
    except ValueError:
        raise HTTPException(status_code=400, detail=f"invalid status filter: {status}")
    return {
        "renders": [r.model_dump(mode="json") for r in renders],
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get("/renders/{render_id}")
def get_render(
    render_id: str,
    user_id: str = Depends(current_user_id),
    engine: RenderEngine = Depends(get_engine),
):
    try:
        render = engine.get_render(user_id, render_id)
    except _SERVICE_ERRORS as e:
        raise _http_error(e)
    return render.model_dump(mode="json")


@router.get("/renders/{render_id}/status")
def get_render_status(
    render_id: str,
    user_id: str = Depends(current_user_id),
    engine: RenderEngine = Depends(get_engine),
):
    """Lightweight progress poll."""
    try:
        render = engine.get_render(user_id, render_id)
    except _SERVICE_ERRORS as e:
        raise _http_error(e)
    return {
        "id": render.id,
        "status": render.status.value,
        "progress": render.progress,
        "error": render.error,
    }


@router.delete("/renders/{render_id}", status_code=204)
def delete_render(
    render_id: str,
    user_id: str = Depends(current_user_id),
    engine: RenderEngine = Depends(get_engine),
):
    try:
        engine.delete_render(user_id, render_id)
    except _SERVICE_ERRORS as e:
        raise _http_error(e)


@router.get("/renders/{render_id}/download")
def download_render(
    render_id: str,
    user_id: str = Depends(current_user_id),
    engine: RenderEngine = Depends(get_engine),
):
    """Time-limited download URL for a completed render."""
    try:
        url = engine.download_url(user_id, render_id)
    except _SERVICE_ERRORS as e:
        raise _http_error(e)
    return {"url": url, "expires_in": engine.download_url_ttl_seconds}
