"""Task model"""

import uuid as uuid_lib
from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, JSON
from datetime import datetime
from app.core.database import Base

STATUSES = ("backlog", "ready", "in-progress", "done")
PRIORITIES = ("low", "medium", "high", "urgent")


def new_uuid() -> str:
    return str(uuid_lib.uuid4())


class Task(Base):
    __tablename__ = "tasks"
    
    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String, unique=True, nullable=False, index=True, default=new_uuid)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # sous-tâches: supprimées avec leur parent
    parent_task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    
    name = Column(String(255), nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, default="backlog", nullable=False)
    priority = Column(String, default="medium", nullable=False)
    due_date = Column(Date, nullable=True, index=True)
    estimated_time = Column(Integer, nullable=True)  # en jours
    labels = Column(JSON, default=list)
    
    archived = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
