"""
Service Ollama - suggestion de métadonnées pour une tâche
"""

import json
import logging
from datetime import date, datetime
from typing import Any, List, Optional, Tuple

import requests
from dateutil.parser import parse as parse_date

from app.core.config import settings
from app.core.errors import SuggestionError
from app.models.ai_trace import AITrace
from app.models.task import PRIORITIES
from app.schemas.ai_trace import TaskSuggestion

logger = logging.getLogger(__name__)

DEFAULT_MODEL = settings.OLLAMA_MODEL

PROMPT_TEMPLATE = """You help organize a task board.
Given the task below, answer ONLY with a JSON object with these keys:
- "tags": list of short lowercase labels (e.g. bug, feature, documentation, enhancement, design, testing)
- "priority": one of "low", "medium", "high", "urgent", or null
- "dueDate": a date as YYYY-MM-DD, or null (today is {today})
- "estimatedTime": estimated number of days as an integer, or null
- "subtasks": list of short sub-task titles

Task name: {name}
Task description: {description}

JSON:"""


def is_ollama_running() -> bool:
    try:
        response = requests.get(f"{settings.OLLAMA_BASE_URL}/api/tags", timeout=5)
        return response.status_code == 200
    except requests.RequestException as e:
        logger.warning(f"Ollama not running: {e}")
        return False


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    items = [str(v).strip() for v in value if v is not None and str(v).strip()]
    return items


def _priority(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip().lower() in PRIORITIES:
        return value.strip().lower()
    return None


def _due_date(value: Any) -> Optional[date]:
    if not value or not isinstance(value, str):
        return None
    try:
        return parse_date(value).date()
    except (ValueError, OverflowError):
        logger.debug(f"Unparseable due date from model: {value!r}")
        return None


def _estimated_time(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        days = int(round(float(value)))
    except (TypeError, ValueError):
        return None
    return days if days >= 0 else None


def parse_suggestion(raw: dict) -> TaskSuggestion:
    """
    Construit une suggestion à partir de la réponse du modèle.

    Les champs invalides sont ignorés (None) plutôt que de faire échouer
    toute la réponse. Accepte camelCase et snake_case.
    """
    return TaskSuggestion(
        tags=_string_list(raw.get("tags")),
        priority=_priority(raw.get("priority")),
        due_date=_due_date(raw.get("dueDate", raw.get("due_date"))),
        estimated_time=_estimated_time(raw.get("estimatedTime", raw.get("estimated_time"))),
        subtasks=_string_list(raw.get("subtasks")),
    )


def suggest_task_metadata(
    name: str, description: str, model: str = DEFAULT_MODEL
) -> Tuple[TaskSuggestion, int]:
    """Retourne (suggestion, temps d'exécution en ms). Lève SuggestionError."""
    prompt = PROMPT_TEMPLATE.format(
        today=date.today().isoformat(), name=name.strip(), description=description.strip()
    )

    start_time = datetime.utcnow()
    try:
        response = requests.post(
            f"{settings.OLLAMA_BASE_URL}/api/generate",
            json={"model": model, "prompt": prompt, "stream": False, "format": "json"},
            timeout=settings.OLLAMA_TIMEOUT,
        )
        response.raise_for_status()
        text = response.json().get("response", "").strip()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Ollama request failed: {e}")
        raise SuggestionError(f"Ollama request failed: {e}") from e

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise SuggestionError(f"Model did not return JSON: {text[:200]!r}") from e
    if not isinstance(raw, dict):
        raise SuggestionError(f"Model returned {type(raw).__name__}, expected an object")

    elapsed_ms = int((datetime.utcnow() - start_time).total_seconds() * 1000)
    return parse_suggestion(raw), elapsed_ms


class OllamaSuggester:
    """Suggesteur branché sur les sessions d'édition: suggest(name, description)."""

    def __init__(self, model: str = DEFAULT_MODEL):
        self.model = model
        self.last_elapsed_ms: Optional[int] = None

    def __call__(self, name: str, description: str) -> TaskSuggestion:
        suggestion, self.last_elapsed_ms = suggest_task_metadata(name, description, model=self.model)
        return suggestion


def record_trace(
    db,
    user_id: int,
    suggestion: Optional[TaskSuggestion] = None,
    task_id: Optional[int] = None,
    execution_time_ms: Optional[int] = None,
    error: Optional[BaseException] = None,
    model: str = DEFAULT_MODEL,
):
    """Enregistre un appel au suggesteur dans ai_traces (succès ou échec)."""
    trace = AITrace(
        user_id=user_id,
        task_id=task_id,
        analysis_type="suggest_metadata",
        generated_content=suggestion.model_dump_json(exclude_none=True) if suggestion else "",
        model_used=model,
        execution_time_ms=execution_time_ms,
        success=error is None,
        error_message=str(error) if error else None,
    )
    db.add(trace)
    db.commit()
    db.refresh(trace)
    return trace


def traced_suggester(suggester, db, user_id: int, task_id: Optional[int] = None):
    """Enveloppe un suggesteur pour tracer chaque appel, l'erreur est relancée."""

    def call(name: str, description: str) -> Optional[TaskSuggestion]:
        start_time = datetime.utcnow()
        try:
            suggestion = suggester(name, description)
        except Exception as e:
            record_trace(db, user_id, task_id=task_id, error=e)
            raise
        elapsed_ms = int((datetime.utcnow() - start_time).total_seconds() * 1000)
        record_trace(db, user_id, suggestion, task_id=task_id, execution_time_ms=elapsed_ms)
        return suggestion

    return call


def get_suggester():
    """Dépendance FastAPI (surchargée dans les tests)"""
    return OllamaSuggester()
