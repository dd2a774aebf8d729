"""Relational-store access for renders, projects and materials.

Tables: ``renders``, ``projects``, ``materials``. Project and material CRUD
lives elsewhere; the render engine only reads them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from supabase import Client

from comic_video.jobs.models import MaterialRecord, ProjectRecord, RenderRecord


class RenderRepository(ABC):
    @abstractmethod
    def create(self, render: RenderRecord) -> None: ...

    @abstractmethod
    def get(self, render_id: str) -> Optional[RenderRecord]: ...

    @abstractmethod
    def update(self, render: RenderRecord) -> None: ...

    @abstractmethod
    def delete(self, render_id: str) -> None: ...

    @abstractmethod
    def list(
        self,
        user_id: str,
        page: int,
        page_size: int,
        project_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[RenderRecord], int]:
        """One page of a user's renders, newest first, plus the total count."""
        ...


class ProjectRepository(ABC):
    @abstractmethod
    def get(self, project_id: str) -> Optional[ProjectRecord]: ...


class MaterialRepository(ABC):
    @abstractmethod
    def get(self, material_id: str) -> Optional[MaterialRecord]: ...


def _first(response) -> Optional[dict]:
    data = response.data if response is not None else None
    if not data:
        return None
    return data[0]


class SupabaseRenderRepository(RenderRepository):
    table = "renders"

    def __init__(self, client: Client):
        self._client = client

    def create(self, render: RenderRecord) -> None:
        self._client.table(self.table).insert(render.model_dump(mode="json")).execute()

    def get(self, render_id: str) -> Optional[RenderRecord]:
        row = _first(
            self._client.table(self.table).select("*").eq("id", render_id).limit(1).execute()
        )
        return RenderRecord.model_validate(row) if row else None

    def update(self, render: RenderRecord) -> None:
        row = render.model_dump(mode="json", exclude={"id", "user_id", "created_at"})
        self._client.table(self.table).update(row).eq("id", render.id).execute()

    def delete(self, render_id: str) -> None:
        self._client.table(self.table).delete().eq("id", render_id).execute()

    def list(self, user_id, page, page_size, project_id=None, status=None):
        query = (
            self._client.table(self.table)
            .select("*", count="exact")
            .eq("user_id", user_id)
        )
        if project_id:
            query = query.eq("project_id", project_id)
        if status:
            query = query.eq("status", status)
        offset = (page - 1) * page_size
        response = (
            query.order("created_at", desc=True)
            .range(offset, offset + page_size - 1)
            .execute()
        )
        renders = [RenderRecord.model_validate(row) for row in response.data or []]
        return renders, response.count or 0


class SupabaseProjectRepository(ProjectRepository):
    def __init__(self, client: Client):
        self._client = client

    def get(self, project_id: str) -> Optional[ProjectRecord]:
        row = _first(
            self._client.table("projects")
            .select("id, user_id, name, config")
            .eq("id", project_id)
            .limit(1)
            .execute()
        )
        return ProjectRecord.model_validate(row) if row else None


class SupabaseMaterialRepository(MaterialRepository):
    def __init__(self, client: Client):
        self._client = client

    def get(self, material_id: str) -> Optional[MaterialRecord]:
        row = _first(
            self._client.table("materials")
            .select("id, user_id, name, file_name, file_path")
            .eq("id", material_id)
            .limit(1)
            .execute()
        )
        return MaterialRecord.model_validate(row) if row else None
