"""Cache des colonnes du tableau, par utilisateur (rafraîchi à la demande)."""

import threading
from typing import Dict, Optional

_lock = threading.Lock()
_boards: Dict[int, dict] = {}


def get_cached_board(user_id: int) -> Optional[dict]:
    with _lock:
        return _boards.get(user_id)


def store_board(user_id: int, board: dict) -> None:
    with _lock:
        _boards[user_id] = board


def invalidate_board(user_id: int) -> None:
    """À appeler après toute mutation: la prochaine lecture refait la requête."""
    with _lock:
        _boards.pop(user_id, None)


def clear() -> None:
    with _lock:
        _boards.clear()
