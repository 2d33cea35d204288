"""
Session d'édition d'une tâche.

Équivalent serveur de la modale d'édition: un brouillon de tâche, sa liste
de sous-tâches et ses étiquettes. Rien n'est persisté avant commit().

    CLOSED -> OPEN_NEW | OPEN_EDITING -> CLOSED

Au commit, la liste de sous-tâches est réconciliée avec la liste d'origine
par uuid uniquement:
    présente des deux côtés -> update
    nouvelle                 -> create (rattachée à la tâche éditée)
    disparue                 -> delete
Le plan est soumis en un seul lot à la gateway.
"""

import logging
import threading
import uuid as uuid_lib
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Union

from pydantic import ValidationError

from app.core.errors import (
    DraftValidationError,
    SessionBusyError,
    SessionClosedError,
    SubTaskNotFoundError,
)
from app.schemas.ai_trace import TaskSuggestion
from app.schemas.batch import ROOT, BatchResult, CreateTaskOp, DeleteTaskOp, UpdateTaskOp
from app.schemas.session import (
    DRAFT_FIELDS,
    DraftSubTask,
    PersistedSubTask,
    SubTaskCreate,
    TaskDraft,
)

logger = logging.getLogger(__name__)

SubTask = Union[DraftSubTask, PersistedSubTask]
Suggester = Callable[[str, str], Optional[TaskSuggestion]]

# champs qui identifient une sous-tâche, jamais modifiables par patch
_IDENTITY_FIELDS = ("id", "uuid", "kind")


class SessionState(str, Enum):
    CLOSED = "closed"
    OPEN_NEW = "open_new"
    OPEN_EDITING = "open_editing"


class TaskGateway(Protocol):
    def apply_batch(self, ops: list) -> BatchResult:
        ...


def _field_errors(error: ValidationError, prefix: str = "") -> Dict[str, str]:
    errors = {}
    for err in error.errors():
        field = ".".join(str(part) for part in err["loc"]) or "__root__"
        errors[prefix + field] = err["msg"]
    return errors


class TaskEditSession:
    def __init__(self, user_id: int, session_id: Optional[str] = None):
        self.user_id = user_id
        self.session_id = session_id or uuid_lib.uuid4().hex
        self.committing = False
        self.suggesting = False
        # protège le test-puis-pose des drapeaux committing / suggesting
        self._lock = threading.Lock()
        self._reset()

    def _reset(self):
        self.state = SessionState.CLOSED
        self.draft: Optional[TaskDraft] = None
        self.sub_tasks: List[SubTask] = []
        self.original_task_id: Optional[int] = None
        self.original_sub_tasks: List[PersistedSubTask] = []
        self.suggested_labels: List[str] = []

    @property
    def is_open(self) -> bool:
        return self.state != SessionState.CLOSED

    def _require_open(self):
        if not self.is_open:
            raise SessionClosedError(f"Edit session {self.session_id} is closed")

    def _claim(self, flag: str, message: str) -> None:
        with self._lock:
            if getattr(self, flag):
                raise SessionBusyError(message)
            setattr(self, flag, True)

    # ---- cycle de vie ----

    def open(self, task=None, sub_tasks=None) -> "TaskEditSession":
        """Ouvre sur une tâche existante, ou sur un brouillon vide si task est None."""
        with self._lock:
            if self.committing:
                raise SessionBusyError("Cannot reopen a session while it is committing")
            self._reset()
        if task is None:
            self.state = SessionState.OPEN_NEW
            self.draft = TaskDraft()
            return self

        self.state = SessionState.OPEN_EDITING
        self.original_task_id = task.id
        self.draft = TaskDraft.from_task(task)
        for sub_task in sub_tasks or []:
            entry = sub_task if isinstance(sub_task, PersistedSubTask) else PersistedSubTask.from_task(sub_task)
            self.original_sub_tasks.append(entry)
            self.sub_tasks.append(entry.model_copy(deep=True))
        return self

    def close(self) -> None:
        with self._lock:
            if self.committing:
                raise SessionBusyError("Cannot close a session while a commit is in flight")
            self._reset()

    # ---- brouillon ----

    def update_draft(self, **fields) -> TaskDraft:
        self._require_open()
        unknown = set(fields) - set(DRAFT_FIELDS)
        if unknown:
            raise DraftValidationError({name: "Unknown field" for name in sorted(unknown)})
        try:
            self.draft = TaskDraft.model_validate({**self.draft.model_dump(), **fields})
        except ValidationError as e:
            raise DraftValidationError(_field_errors(e)) from e
        return self.draft

    def toggle_label(self, label: str) -> List[str]:
        self._require_open()
        labels = list(self.draft.labels)
        if label in labels:
            labels = [l for l in labels if l != label]
        else:
            labels.append(label)
        self.draft = self.draft.model_copy(update={"labels": labels})
        return labels

    def remove_label(self, label: str) -> List[str]:
        self._require_open()
        labels = [l for l in self.draft.labels if l != label]
        self.draft = self.draft.model_copy(update={"labels": labels})
        return labels

    def validate(self) -> Dict[str, str]:
        """Erreurs bloquantes pour le commit, par champ."""
        self._require_open()
        errors = {}
        if not self.draft.name.strip():
            errors["name"] = "Name is required"
        if self.draft.estimated_time is not None and self.draft.estimated_time < 0:
            errors["estimated_time"] = "Estimated time must be a positive number of days"
        for entry in self.sub_tasks:
            if not entry.name.strip():
                errors[f"sub_tasks.{entry.uuid}.name"] = "Name is required"
        return errors

    # ---- sous-tâches ----

    def _index_of(self, uuid: str) -> int:
        for index, entry in enumerate(self.sub_tasks):
            if entry.uuid == uuid:
                return index
        raise SubTaskNotFoundError(uuid)

    def add_sub_task(self, data: Union[SubTask, SubTaskCreate, dict]) -> SubTask:
        self._require_open()
        if isinstance(data, (DraftSubTask, PersistedSubTask)):
            entry = data
        else:
            values = data.model_dump() if isinstance(data, SubTaskCreate) else dict(data)
            if not values.get("uuid"):
                values.pop("uuid", None)
            try:
                entry = DraftSubTask.model_validate(values)
            except ValidationError as e:
                raise DraftValidationError(_field_errors(e)) from e

        if any(existing.uuid == entry.uuid for existing in self.sub_tasks):
            raise DraftValidationError({"uuid": f"Sub-task {entry.uuid} already exists"})
        self.sub_tasks.append(entry)
        return entry

    def update_sub_task(self, uuid: str, **patch) -> SubTask:
        self._require_open()
        index = self._index_of(uuid)
        forbidden = [name for name in patch if name in _IDENTITY_FIELDS]
        if forbidden:
            raise DraftValidationError({name: "Cannot be changed" for name in forbidden})
        unknown = set(patch) - set(DRAFT_FIELDS)
        if unknown:
            raise DraftValidationError({name: "Unknown field" for name in sorted(unknown)})

        entry = self.sub_tasks[index]
        try:
            updated = type(entry).model_validate({**entry.model_dump(), **patch})
        except ValidationError as e:
            raise DraftValidationError(_field_errors(e)) from e
        self.sub_tasks[index] = updated
        return updated

    def remove_sub_task(self, uuid: str) -> bool:
        self._require_open()
        before = len(self.sub_tasks)
        self.sub_tasks = [entry for entry in self.sub_tasks if entry.uuid != uuid]
        return len(self.sub_tasks) != before

    # ---- suggestions IA ----

    def apply_suggestions(self, suggestion: Union[TaskSuggestion, dict]) -> TaskDraft:
        """
        Fusionne une suggestion dans le brouillon sans écraser la saisie:
        étiquettes ajoutées à la suite, champs simples remplacés seulement
        si la suggestion a une valeur, sous-tâches ajoutées en brouillon.
        """
        self._require_open()
        try:
            if isinstance(suggestion, dict):
                suggestion = TaskSuggestion.model_validate(suggestion)

            update = {}
            if suggestion.tags:
                labels = list(self.draft.labels)
                for tag in suggestion.tags:
                    if tag not in labels:
                        labels.append(tag)
                update["labels"] = labels
            if suggestion.priority is not None:
                update["priority"] = suggestion.priority
            if suggestion.due_date is not None:
                update["due_date"] = suggestion.due_date
            if suggestion.estimated_time is not None:
                update["estimated_time"] = suggestion.estimated_time
            draft = TaskDraft.model_validate({**self.draft.model_dump(), **update})
            added = [DraftSubTask(name=title, description="", status="backlog") for title in suggestion.subtasks or []]
        except ValidationError as e:
            raise DraftValidationError(_field_errors(e)) from e

        # tout est validé: on applique d'un coup
        if suggestion.tags:
            self.suggested_labels = list(suggestion.tags)
        self.draft = draft
        self.sub_tasks.extend(added)
        return self.draft

    def request_suggestions(self, suggester: Suggester) -> Optional[TaskSuggestion]:
        """
        Interroge le suggesteur puis applique sa réponse.

        Sans description, aucun appel n'est fait. Un échec du suggesteur
        est journalisé et laisse le brouillon intact (retourne None).
        """
        self._require_open()
        name, description = self.draft.name, self.draft.description
        if not description.strip():
            logger.debug(f"Session {self.session_id}: empty description, no suggestion requested")
            return None

        self._claim("suggesting", "A suggestion request is already in flight")
        try:
            try:
                suggestion = suggester(name, description)
            except Exception as e:
                logger.warning(f"Session {self.session_id}: failed to fetch suggestions: {e}")
                return None

            # la session a pu être fermée pendant l'appel
            if suggestion is None or not self.is_open:
                return None
            try:
                self.apply_suggestions(suggestion)
            except DraftValidationError as e:
                logger.warning(f"Session {self.session_id}: suggestion rejected: {e.errors}")
                return None
            return suggestion
        finally:
            self.suggesting = False

    # ---- commit ----

    def plan_commit(self) -> list:
        self._require_open()
        ops = []
        if self.state == SessionState.OPEN_NEW:
            ops.append(CreateTaskOp(data=self.draft))
            for entry in self.sub_tasks:
                ops.append(CreateTaskOp(uuid=entry.uuid, data=_draft_of(entry), parent_ref=ROOT))
            return ops

        ops.append(UpdateTaskOp(task_id=self.original_task_id, data=self.draft))
        for entry in self.sub_tasks:
            if isinstance(entry, PersistedSubTask):
                ops.append(UpdateTaskOp(task_id=entry.id, data=_draft_of(entry)))
            else:
                ops.append(CreateTaskOp(uuid=entry.uuid, data=_draft_of(entry), parent_id=self.original_task_id))

        current = {entry.uuid for entry in self.sub_tasks}
        for original in self.original_sub_tasks:
            if original.uuid not in current:
                ops.append(DeleteTaskOp(task_id=original.id, uuid=original.uuid))
        return ops

    def commit(self, gateway: TaskGateway) -> BatchResult:
        """
        Valide, planifie puis soumet le lot. En cas de succès la session est
        fermée; sinon l'erreur remonte et la session reste ouverte.
        """
        self._require_open()
        self._claim("committing", "A commit is already in flight")
        try:
            # validate() relève SessionClosedError si un autre commit a fini entre-temps
            errors = self.validate()
            if errors:
                raise DraftValidationError(errors)
            result = gateway.apply_batch(self.plan_commit())
            # fermé avant de relâcher le drapeau: aucun second lot possible
            self._reset()
        finally:
            self.committing = False

        logger.info(f"Session {self.session_id} committed task {result.root_task_id}")
        return result


def _draft_of(entry: SubTask) -> TaskDraft:
    return TaskDraft.model_validate(entry.model_dump(include=set(DRAFT_FIELDS)))
