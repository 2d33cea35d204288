from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional, List

from app.schemas.task import Priority


class TaskSuggestion(BaseModel):
    """Suggestion IA, tous les champs sont optionnels"""
    tags: Optional[List[str]] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    subtasks: Optional[List[str]] = None


class SuggestRequest(BaseModel):
    name: str = ""
    description: str = ""
    task_id: Optional[int] = None


class AITraceResponse(BaseModel):
    """Trace IA retournée par l'API"""
    id: int
    user_id: int
    task_id: Optional[int]
    analysis_type: str
    generated_content: str
    model_used: str
    execution_time_ms: Optional[int]
    success: bool
    error_message: Optional[str]
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)
