"""Traduction des erreurs métier en réponses HTTP."""

import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import (
    BatchCommitError,
    DraftValidationError,
    InvalidStatusError,
    SessionBusyError,
    SessionClosedError,
    SessionNotFoundError,
    SubTaskNotFoundError,
    SuggestionError,
    TaskNotFoundError,
)

logger = logging.getLogger(__name__)


def _dump(op):
    return op.model_dump(mode="json") if hasattr(op, "model_dump") else repr(op)


def register_exception_handlers(app: FastAPI) -> None:
    def detail_handler(code: int):
        async def handler(request: Request, exc: Exception):
            return JSONResponse(status_code=code, content={"detail": str(exc)})
        return handler

    for exc_class in (TaskNotFoundError, SessionNotFoundError, SubTaskNotFoundError):
        app.add_exception_handler(exc_class, detail_handler(status.HTTP_404_NOT_FOUND))
    for exc_class in (SessionClosedError, SessionBusyError):
        app.add_exception_handler(exc_class, detail_handler(status.HTTP_409_CONFLICT))
    app.add_exception_handler(InvalidStatusError, detail_handler(status.HTTP_400_BAD_REQUEST))
    app.add_exception_handler(SuggestionError, detail_handler(status.HTTP_503_SERVICE_UNAVAILABLE))

    @app.exception_handler(DraftValidationError)
    async def draft_validation_handler(request: Request, exc: DraftValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": "Invalid draft", "errors": exc.errors},
        )

    @app.exception_handler(BatchCommitError)
    async def batch_commit_handler(request: Request, exc: BatchCommitError):
        logger.warning(f"Commit rejected: {exc}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": f"Commit failed: {exc.cause}",
                "failed_index": exc.failed_index,
                "operation": _dump(exc.operation),
                "applied": [_dump(op) for op in exc.applied],
                "rolled_back": exc.rolled_back,
            },
        )
