"""Task status polling for narrative (ai-text / ai-video) tasks."""

from fastapi import APIRouter, Depends, HTTPException

from comic_video.api.deps import get_services
from comic_video.services import Services

router = APIRouter()


def _task_response(task_id: str, services: Services) -> dict:
    task = services.narrative.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found or expired")
    return task.model_dump(mode="json")


@router.get("/tasks/{task_id}")
def get_task(task_id: str, services: Services = Depends(get_services)):
    """Full task record: status, progress, result or error."""
    return _task_response(task_id, services)


@router.get("/tasks/{task_id}/status")
def get_task_status(task_id: str, services: Services = Depends(get_services)):
    return _task_response(task_id, services)
