from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from datetime import datetime
from app.core.database import Base

class AITrace(Base):
    """Diagnostic d'un appel au suggesteur IA (réussi ou non)"""
    __tablename__ = "ai_traces"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True, index=True)
    analysis_type = Column(String, nullable=False)  # "suggest_metadata"
    generated_content = Column(String, nullable=False, default="")  # JSON brut de la suggestion
    model_used = Column(String, default="mistral:7b")
    execution_time_ms = Column(Integer, nullable=True)
    success = Column(Boolean, default=True)
    error_message = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
