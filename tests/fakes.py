"""Doubles de test: gateway et suggesteur en mémoire."""

import threading
from typing import List, Optional

from app.core.errors import BatchCommitError
from app.schemas.ai_trace import TaskSuggestion
from app.schemas.batch import BatchResult, CreateTaskOp, DeleteTaskOp, UpdateTaskOp


class FakeGateway:
    """
    Gateway en mémoire qui enregistre les lots reçus.

    fail_at: index de l'opération qui doit échouer (None = jamais).
    """

    def __init__(self, fail_at: Optional[int] = None, next_id: int = 100):
        self.fail_at = fail_at
        self.next_id = next_id
        self.batches: List[list] = []

    @property
    def ops(self) -> list:
        return self.batches[-1] if self.batches else []

    def apply_batch(self, ops) -> BatchResult:
        ops = list(ops)
        self.batches.append(ops)
        result = BatchResult()
        for index, op in enumerate(ops):
            if index == self.fail_at:
                raise BatchCommitError(index, op, ops[:index], rolled_back=True, cause=RuntimeError("boom"))
            if isinstance(op, CreateTaskOp):
                self.next_id += 1
                if result.root_task_id is None and op.parent_ref is None and op.parent_id is None:
                    result.root_task_id = self.next_id
                result.created.append(self.next_id)
            elif isinstance(op, UpdateTaskOp):
                if result.root_task_id is None:
                    result.root_task_id = op.task_id
                result.updated.append(op.task_id)
            elif isinstance(op, DeleteTaskOp):
                result.deleted.append(op.task_id)
        return result


class FakeSuggester:
    """Suggesteur déterministe qui garde la trace des appels."""

    def __init__(self, suggestion: Optional[TaskSuggestion] = None, error: Optional[Exception] = None):
        self.suggestion = suggestion or TaskSuggestion()
        self.error = error
        self.calls: List[tuple] = []

    def __call__(self, name: str, description: str) -> TaskSuggestion:
        self.calls.append((name, description))
        if self.error is not None:
            raise self.error
        return self.suggestion


class BlockingGateway(FakeGateway):
    """Gateway qui reste bloquée dans apply_batch jusqu'à release.set()."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def apply_batch(self, ops) -> BatchResult:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().apply_batch(ops)


class BlockingSuggester(FakeSuggester):
    """Suggesteur qui reste bloqué jusqu'à release.set()."""

    def __init__(self, suggestion: Optional[TaskSuggestion] = None):
        super().__init__(suggestion)
        self.entered = threading.Event()
        self.release = threading.Event()

    def __call__(self, name: str, description: str) -> TaskSuggestion:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().__call__(name, description)
