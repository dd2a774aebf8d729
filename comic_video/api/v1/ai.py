"""Generative task submission: story to video, and story writing."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from comic_video.api.deps import get_services
from comic_video.errors import QueueFullError
from comic_video.services import Services

router = APIRouter()


class NovelToVideoRequest(BaseModel):
    novel: str = ""


class GenerateNovelRequest(BaseModel):
    novel_prompt: str = ""
    title: str = ""


class TaskSubmitResponse(BaseModel):
    task_id: str
    status: str
    message: str


def _accepted(task_id: str) -> TaskSubmitResponse:
    return TaskSubmitResponse(
        task_id=task_id,
        status="pending",
        message="Task submitted. Poll GET /api/v1/tasks/{id} for status.",
    )


@router.post("/ai/novel-to-video", response_model=TaskSubmitResponse)
def novel_to_video(request: NovelToVideoRequest, services: Services = Depends(get_services)):
    """Turn a story into a narrated slideshow video."""
    if not request.novel.strip():
        raise HTTPException(status_code=400, detail="novel must not be empty")
    try:
        task_id = services.narrative.submit(request.novel)
    except QueueFullError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _accepted(task_id)


@router.post("/ai/generate-novel", response_model=TaskSubmitResponse)
def generate_novel(request: GenerateNovelRequest, services: Services = Depends(get_services)):
    """Write a story from a short prompt."""
    if not request.novel_prompt.strip():
        raise HTTPException(status_code=400, detail="novel_prompt must not be empty")
    try:
        task_id = services.narrative.submit_text(request.novel_prompt, request.title)
    except QueueFullError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _accepted(task_id)


@router.post("/ai/novel-to-all", response_model=TaskSubmitResponse)
def novel_to_all(request: GenerateNovelRequest, services: Services = Depends(get_services)):
    """Turn a titled story into a narrated video, keeping the title on the task."""
    if not request.novel_prompt.strip():
        raise HTTPException(status_code=400, detail="novel_prompt must not be empty")
    try:
        task_id = services.narrative.submit(request.novel_prompt, title=request.title)
    except QueueFullError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _accepted(task_id)
