"""Pydantic schemas for task request/response validation."""

from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional, List, Literal

Status = Literal["backlog", "ready", "in-progress", "done"]
Priority = Literal["low", "medium", "high", "urgent"]


class TaskCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = ""
    status: Status = "backlog"
    priority: Priority = "medium"
    due_date: Optional[date] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    labels: List[str] = Field(default_factory=list)
    archived: bool = False
    parent_task_id: Optional[int] = None
    uuid: Optional[str] = None


class TaskUpdate(BaseModel):
    """Schema for updating an existing task (only sent fields are applied)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    labels: Optional[List[str]] = None
    archived: Optional[bool] = None


class TaskResponse(BaseModel):
    id: int
    uuid: str
    user_id: int
    parent_task_id: Optional[int]
    name: str
    description: Optional[str]
    status: str
    priority: str
    due_date: Optional[date]
    estimated_time: Optional[int]
    labels: Optional[List[str]]
    archived: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BoardColumn(BaseModel):
    name: str
    tasks: List[TaskResponse]


class BoardResponse(BaseModel):
    columns: List[BoardColumn]
