from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.core.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.task import BoardColumn, BoardResponse
from app.services.board_service import BOARD_COLUMNS, load_board

router = APIRouter(tags=["board"])

# étiquettes proposées dans le formulaire d'édition
AVAILABLE_LABELS = ["bug", "feature", "documentation", "enhancement", "design", "testing"]


@router.get("/board", response_model=BoardResponse)
def get_board(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    board = load_board(db, current_user.id, BOARD_COLUMNS)
    return BoardResponse(
        columns=[BoardColumn(name=name, tasks=tasks) for name, tasks in board.items()]
    )


@router.get("/labels", response_model=List[str])
def list_labels(current_user: User = Depends(get_current_user)):
    return AVAILABLE_LABELS
