"""
Router des sessions d'édition (la modale "Nouvelle tâche" / "Éditer la tâche").

Une session est ouverte, modifiée champ par champ, puis soit validée
(POST /commit) soit abandonnée (DELETE).
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from typing import List

from app.core.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.task import TaskResponse
from app.schemas.session import (
    CommitResponse,
    DraftPatch,
    SessionOpenRequest,
    SessionResponse,
    SubTaskCreate,
    SubTaskPatch,
    SuggestResult,
)
from app.services import task_service
from app.services.ai_service import get_suggester, traced_suggester
from app.services.edit_session import TaskEditSession
from app.services.session_store import SessionStore, get_session_store

router = APIRouter(prefix="/sessions", tags=["sessions"])


def to_response(session: TaskEditSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        state=session.state.value,
        task_id=session.original_task_id,
        draft=session.draft,
        sub_tasks=session.sub_tasks,
        suggested_labels=session.suggested_labels,
        errors=session.validate(),
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def open_session(
    request: SessionOpenRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    task = None
    sub_tasks = []
    if request.task_id is not None:
        task = task_service.get_task(db, current_user.id, request.task_id)
        sub_tasks = task_service.list_sub_tasks(db, current_user.id, task.id)

    session = store.create(current_user.id)
    session.open(task, sub_tasks)
    return to_response(session)


@router.get("", response_model=List[SessionResponse])
def list_sessions(
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    return [to_response(s) for s in store.list_for_user(current_user.id)]


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    return to_response(store.get(current_user.id, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def close_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    session.close()
    store.discard(current_user.id, session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{session_id}/draft", response_model=SessionResponse)
def update_draft(
    session_id: str,
    patch: DraftPatch,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    session.update_draft(**patch.model_dump(exclude_unset=True))
    return to_response(session)


@router.post("/{session_id}/suggest", response_model=SuggestResult)
def suggest(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
    suggester=Depends(get_suggester)
):
    """Remplir les champs via l'IA. Un échec n'est jamais une erreur pour l'utilisateur."""
    session = store.get(current_user.id, session_id)
    call = traced_suggester(suggester, db, current_user.id, task_id=session.original_task_id)
    suggestion = session.request_suggestions(call)
    return SuggestResult(applied=suggestion is not None, session=to_response(session))


@router.post("/{session_id}/subtasks", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def add_sub_task(
    session_id: str,
    data: SubTaskCreate,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    session.add_sub_task(data)
    return to_response(session)


@router.patch("/{session_id}/subtasks/{uuid}", response_model=SessionResponse)
def update_sub_task(
    session_id: str,
    uuid: str,
    patch: SubTaskPatch,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    session.update_sub_task(uuid, **patch.model_dump(exclude_unset=True))
    return to_response(session)


@router.delete("/{session_id}/subtasks/{uuid}", response_model=SessionResponse)
def remove_sub_task(
    session_id: str,
    uuid: str,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    if not session.remove_sub_task(uuid):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sub-task not found")
    return to_response(session)


@router.post("/{session_id}/labels/{label}", response_model=SessionResponse)
def toggle_label(
    session_id: str,
    label: str,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    session.toggle_label(label)
    return to_response(session)


@router.delete("/{session_id}/labels/{label}", response_model=SessionResponse)
def remove_label(
    session_id: str,
    label: str,
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    session.remove_label(label)
    return to_response(session)


@router.post("/{session_id}/commit", response_model=CommitResponse)
def commit_session(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store)
):
    session = store.get(current_user.id, session_id)
    result = session.commit(task_service.SqlTaskGateway(db, current_user.id))
    store.discard(current_user.id, session_id)

    task = task_service.get_task(db, current_user.id, result.root_task_id)
    return CommitResponse(
        task=TaskResponse.model_validate(task),
        created=result.created,
        updated=result.updated,
        deleted=result.deleted,
    )
