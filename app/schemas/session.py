"""
Schemas de la session d'édition.

Une sous-tâche est soit un brouillon (kind="draft", pas encore d'id),
soit une tâche déjà persistée (kind="persisted", avec id). Les deux
partagent le uuid, seule clé utilisée pour la réconciliation.
"""

from datetime import date
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.models.task import new_uuid
from app.schemas.task import Priority, Status, TaskResponse

# champs éditables, communs au brouillon et aux sous-tâches
DRAFT_FIELDS = (
    "name", "description", "status", "priority",
    "due_date", "estimated_time", "labels", "archived",
)


class TaskDraft(BaseModel):
    name: str = ""
    description: str = ""
    status: Status = "backlog"
    priority: Priority = "medium"
    due_date: Optional[date] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    labels: List[str] = Field(default_factory=list)
    archived: bool = False

    @classmethod
    def from_task(cls, task) -> "TaskDraft":
        return cls(
            name=task.name,
            description=task.description or "",
            status=task.status,
            priority=task.priority or "medium",
            due_date=task.due_date,
            estimated_time=task.estimated_time,
            labels=list(task.labels or []),
            archived=bool(task.archived),
        )


class DraftSubTask(TaskDraft):
    kind: Literal["draft"] = "draft"
    uuid: str = Field(default_factory=new_uuid)


class PersistedSubTask(TaskDraft):
    kind: Literal["persisted"] = "persisted"
    id: int
    uuid: str

    @classmethod
    def from_task(cls, task) -> "PersistedSubTask":
        return cls(id=task.id, uuid=task.uuid, **TaskDraft.from_task(task).model_dump())


SubTaskEntry = Annotated[Union[DraftSubTask, PersistedSubTask], Field(discriminator="kind")]


# ---- requêtes HTTP ----

class SessionOpenRequest(BaseModel):
    task_id: Optional[int] = None


class DraftPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    estimated_time: Optional[int] = None
    labels: Optional[List[str]] = None
    archived: Optional[bool] = None


class SubTaskCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    status: Status = "backlog"
    priority: Priority = "medium"
    due_date: Optional[date] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    labels: List[str] = Field(default_factory=list)
    uuid: Optional[str] = None


class SubTaskPatch(DraftPatch):
    pass


# ---- réponses ----

class SessionResponse(BaseModel):
    session_id: str
    state: str
    task_id: Optional[int]
    draft: TaskDraft
    sub_tasks: List[SubTaskEntry]
    suggested_labels: List[str]
    errors: dict = Field(default_factory=dict)


class SuggestResult(BaseModel):
    applied: bool
    session: SessionResponse


class CommitResponse(BaseModel):
    task: TaskResponse
    created: List[int]
    updated: List[int]
    deleted: List[int]
