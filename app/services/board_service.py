"""Projection des tâches en colonnes de statut."""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Sequence

from sqlalchemy.orm import Session

from app.schemas.task import TaskResponse
from app.services import board_cache
from app.services.task_service import list_tasks

logger = logging.getLogger(__name__)

BOARD_COLUMNS = ("Backlog", "Ready", "In Progress", "Done")


def normalize_status(label: str) -> str:
    """"In Progress" -> "in-progress" """
    return label.lower().replace(" ", "-")


def list_by_column(tasks: Iterable, column_names: Sequence[str]) -> "OrderedDict[str, List]":
    """
    Répartit les tâches par colonne en gardant l'ordre d'entrée.

    Une tâche dont le statut ne correspond à aucune colonne n'apparaît pas.
    """
    tasks = list(tasks)
    columns = OrderedDict()
    for column in column_names:
        key = normalize_status(column)
        columns[column] = [t for t in tasks if normalize_status(_status_of(t)) == key]
    return columns


def _status_of(task) -> str:
    if isinstance(task, dict):
        return task.get("status") or ""
    return task.status or ""


def load_board(db: Session, user_id: int, columns: Sequence[str] = BOARD_COLUMNS) -> Dict[str, List]:
    cached = board_cache.get_cached_board(user_id)
    if cached is not None and tuple(cached) == tuple(columns):
        return cached

    try:
        # les tâches archivées ne sont pas affichées sur le tableau
        tasks = list_tasks(db, user_id)
    except Exception as e:
        # le tableau reste affichable, simplement vide
        logger.error(f"Failed to load tasks for user {user_id}: {e}")
        return list_by_column([], columns)

    # on met en cache des schémas, pas des objets ORM liés à la session
    board = list_by_column([TaskResponse.model_validate(t) for t in tasks], columns)
    board_cache.store_board(user_id, board)
    return board
