"""
Task service - accès en base des tâches.

Toute mutation invalide le tableau en cache de l'utilisateur,
la vue est ensuite rechargée à la prochaine lecture.
"""

import logging
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from app.core.errors import BatchCommitError, InvalidStatusError, TaskNotFoundError
from app.models.task import PRIORITIES, STATUSES, Task, new_uuid
from app.schemas.batch import BatchResult, CreateTaskOp, DeleteTaskOp, UpdateTaskOp, ROOT
from app.schemas.session import TaskDraft
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.board_cache import invalidate_board

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = ("description", "due_date", "estimated_time")


def _check_values(values: dict) -> None:
    if "status" in values and values["status"] not in STATUSES:
        raise InvalidStatusError("status", values["status"], STATUSES)
    if "priority" in values and values["priority"] not in PRIORITIES:
        raise InvalidStatusError("priority", values["priority"], PRIORITIES)


def _as_dict(data: Union[TaskCreate, TaskUpdate, TaskDraft, dict], exclude_unset: bool = False) -> dict:
    if isinstance(data, dict):
        return dict(data)
    return data.model_dump(exclude_unset=exclude_unset)


def get_task(db: Session, user_id: int, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()
    if not task:
        raise TaskNotFoundError(task_id)
    return task


def list_tasks(
    db: Session,
    user_id: int,
    parent_task_id: Optional[int] = None,
    status: Optional[str] = None,
    include_archived: bool = False,
) -> List[Task]:
    query = db.query(Task).filter(Task.user_id == user_id)
    if not include_archived:
        query = query.filter(Task.archived == False)  # noqa: E712
    if parent_task_id is not None:
        query = query.filter(Task.parent_task_id == parent_task_id)
    if status is not None:
        _check_values({"status": status})
        query = query.filter(Task.status == status)
    # ordre de création, les colonnes du tableau le conservent
    return query.order_by(Task.id).all()


def list_sub_tasks(db: Session, user_id: int, task_id: int) -> List[Task]:
    get_task(db, user_id, task_id)
    return (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.parent_task_id == task_id)
        .order_by(Task.id)
        .all()
    )


# ---- helpers sans commit, partagés par les appels unitaires et les lots ----

def _insert(db: Session, user_id: int, values: dict) -> Task:
    _check_values(values)
    parent_id = values.get("parent_task_id")
    if parent_id is not None:
        get_task(db, user_id, parent_id)
    task = Task(
        user_id=user_id,
        uuid=values.get("uuid") or new_uuid(),
        parent_task_id=parent_id,
        name=values["name"],
        description=values.get("description") or "",
        status=values.get("status") or "backlog",
        priority=values.get("priority") or "medium",
        due_date=values.get("due_date"),
        estimated_time=values.get("estimated_time"),
        labels=list(values.get("labels") or []),
        archived=bool(values.get("archived", False)),
    )
    db.add(task)
    db.flush()
    return task


def _update(db: Session, user_id: int, task_id: int, values: dict) -> Task:
    _check_values(values)
    task = get_task(db, user_id, task_id)
    for field, value in values.items():
        if field == "labels":
            value = list(value or [])
        setattr(task, field, value)
    db.flush()
    return task


def _delete(db: Session, user_id: int, task_id: int) -> None:
    task = get_task(db, user_id, task_id)
    # sous-tâches d'abord (SQLite n'applique pas le ON DELETE CASCADE par défaut)
    pending = [task.id]
    doomed = []
    while pending:
        children = db.query(Task).filter(Task.parent_task_id.in_(pending)).all()
        doomed.extend(children)
        pending = [c.id for c in children]
    for child in reversed(doomed):
        db.delete(child)
    db.delete(task)
    db.flush()


# ---- API publique ----

def create_task(db: Session, user_id: int, data: Union[TaskCreate, dict]) -> Task:
    task = _insert(db, user_id, _as_dict(data))
    db.commit()
    db.refresh(task)
    invalidate_board(user_id)
    logger.info(f"Task {task.id} created for user {user_id}")
    return task


def update_task(db: Session, user_id: int, task_id: int, data: Union[TaskUpdate, dict]) -> Task:
    values = _as_dict(data, exclude_unset=True)
    # null explicite: seuls les champs optionnels peuvent être vidés
    values = {k: v for k, v in values.items() if v is not None or k in NULLABLE_FIELDS}
    task = _update(db, user_id, task_id, values)
    db.commit()
    db.refresh(task)
    invalidate_board(user_id)
    return task


def delete_task(db: Session, user_id: int, task_id: int) -> None:
    _delete(db, user_id, task_id)
    db.commit()
    invalidate_board(user_id)
    logger.info(f"Task {task_id} deleted for user {user_id}")


def apply_batch(db: Session, user_id: int, ops: Iterable) -> BatchResult:
    """
    Exécute un lot create/update/delete dans une seule transaction.

    Le premier create sans parent devient la tâche racine; les create
    marqués parent_ref="root" s'y rattachent. En cas d'échec tout est
    annulé et BatchCommitError indique l'opération fautive.
    """
    ops = list(ops)
    result = BatchResult()
    applied = []

    for index, op in enumerate(ops):
        try:
            if isinstance(op, CreateTaskOp):
                values = op.data.model_dump()
                values["uuid"] = op.uuid
                if op.parent_ref == ROOT:
                    if result.root_task_id is None:
                        raise ValueError("parent_ref='root' used before the root task was created")
                    values["parent_task_id"] = result.root_task_id
                else:
                    values["parent_task_id"] = op.parent_id
                task = _insert(db, user_id, values)
                if result.root_task_id is None and values["parent_task_id"] is None:
                    result.root_task_id = task.id
                result.created.append(task.id)
            elif isinstance(op, UpdateTaskOp):
                task = _update(db, user_id, op.task_id, op.data.model_dump())
                if result.root_task_id is None:
                    result.root_task_id = task.id
                result.updated.append(task.id)
            elif isinstance(op, DeleteTaskOp):
                _delete(db, user_id, op.task_id)
                result.deleted.append(op.task_id)
            else:
                raise TypeError(f"Unknown batch operation: {op!r}")
        except Exception as e:
            db.rollback()
            logger.error(f"Batch failed at operation {index} ({type(op).__name__}): {e}")
            raise BatchCommitError(index, op, applied, rolled_back=True, cause=e) from e
        applied.append(op)

    db.commit()
    invalidate_board(user_id)
    logger.info(
        f"Batch applied for user {user_id}: {len(result.created)} created, "
        f"{len(result.updated)} updated, {len(result.deleted)} deleted"
    )
    return result


class SqlTaskGateway:
    """Gateway des sessions d'édition, liée à une session DB et un utilisateur."""

    def __init__(self, db: Session, user_id: int):
        self.db = db
        self.user_id = user_id

    def apply_batch(self, ops) -> BatchResult:
        return apply_batch(self.db, self.user_id, ops)
