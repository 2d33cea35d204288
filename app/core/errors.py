"""Exceptions métier, traduites en HTTPException par les routers."""

from typing import Any, Dict, List, Optional


class TaskBoardError(Exception):
    """Base de toutes les erreurs de l'application."""


class TaskNotFoundError(TaskBoardError):
    def __init__(self, task_id: int):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvalidStatusError(TaskBoardError):
    def __init__(self, field: str, value: Any, allowed):
        super().__init__(f"Invalid {field} {value!r}, expected one of {', '.join(allowed)}")
        self.field = field
        self.value = value


class DraftValidationError(TaskBoardError):
    """Erreurs de saisie, une par champ du brouillon."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


class SessionNotFoundError(TaskBoardError):
    def __init__(self, session_id: str):
        super().__init__(f"Edit session {session_id} not found")
        self.session_id = session_id


class SessionClosedError(TaskBoardError):
    pass


class SessionBusyError(TaskBoardError):
    """Une opération (commit ou suggestion) est déjà en cours sur la session."""


class SubTaskNotFoundError(TaskBoardError):
    def __init__(self, uuid: str):
        super().__init__(f"Sub-task {uuid} not found in session")
        self.uuid = uuid


class SuggestionError(TaskBoardError):
    """Le service IA n'a pas pu produire de suggestion."""


class BatchCommitError(TaskBoardError):
    """
    Échec d'un lot de réconciliation.

    failed_index: position de l'opération en échec dans le lot
    applied: opérations exécutées avant l'échec
    rolled_back: True si la transaction a été annulée (rien n'est persisté)
    """

    def __init__(
        self,
        failed_index: int,
        operation: Any,
        applied: List[Any],
        rolled_back: bool,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(f"Batch failed at operation {failed_index}: {cause}")
        self.failed_index = failed_index
        self.operation = operation
        self.applied = applied
        self.rolled_back = rolled_back
        self.cause = cause
