"""Opérations d'un lot de réconciliation (create / update / delete)."""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.schemas.session import TaskDraft

# référence au parent créé dans le même lot
ROOT = "root"


class CreateTaskOp(BaseModel):
    op: Literal["create"] = "create"
    uuid: Optional[str] = None
    data: TaskDraft
    parent_id: Optional[int] = None
    parent_ref: Optional[Literal["root"]] = None


class UpdateTaskOp(BaseModel):
    op: Literal["update"] = "update"
    task_id: int
    data: TaskDraft


class DeleteTaskOp(BaseModel):
    op: Literal["delete"] = "delete"
    task_id: int
    uuid: str


TaskOperation = Annotated[Union[CreateTaskOp, UpdateTaskOp, DeleteTaskOp], Field(discriminator="op")]


class BatchResult(BaseModel):
    """Ids touchés par le lot; root_task_id est la tâche principale."""

    root_task_id: Optional[int] = None
    created: List[int] = Field(default_factory=list)
    updated: List[int] = Field(default_factory=list)
    deleted: List[int] = Field(default_factory=list)
