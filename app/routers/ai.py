"""
Router IA.

Endpoints:
- POST /ai/suggest - Suggestion de métadonnées pour une tâche
- GET /ai/traces - Historique des appels (diagnostics)
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from app.core.database import get_db
from app.core.deps import get_current_user
from app.core.errors import SuggestionError
from app.models.ai_trace import AITrace
from app.models.user import User
from app.schemas.ai_trace import AITraceResponse, SuggestRequest, TaskSuggestion
from app.services.ai_service import get_suggester, is_ollama_running, traced_suggester

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/suggest", response_model=TaskSuggestion)
def suggest(
    request: SuggestRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    suggester=Depends(get_suggester)
):
    """
    Suggère tags, priorité, échéance, durée et sous-tâches.

    POST /ai/suggest
    {"name": "Ship v2", "description": "Release the new API"}
    →
    {"tags": ["feature"], "priority": "high", "due_date": "2025-04-01",
     "estimated_time": 3, "subtasks": ["Write tests", "Update docs"]}
    """
    if not request.description.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A description is required to get suggestions"
        )

    call = traced_suggester(suggester, db, current_user.id, task_id=request.task_id)
    try:
        suggestion = call(request.name, request.description)
    except SuggestionError:
        raise
    except Exception as e:
        raise SuggestionError(f"Suggestion failed: {e}") from e
    return suggestion or TaskSuggestion()


@router.get("/traces", response_model=List[AITraceResponse])
def list_traces(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return db.query(AITrace).filter(
        AITrace.user_id == current_user.id
    ).order_by(AITrace.created_at.desc(), AITrace.id.desc()).all()


@router.get("/health")
def health_check():
    """Vérifier si Ollama est disponible"""
    if is_ollama_running():
        return {"status": "ok", "ollama": "running"}
    return {"status": "warning", "ollama": "not running"}
