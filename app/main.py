from fastapi import FastAPI
from app.core.database import engine, Base
from app.core.handlers import register_exception_handlers
from app.core.logging_config import setup_logging
from app.models import ai_trace, task, user  # noqa: F401  (tables pour create_all)
from app.routers import health, auth, tasks, board, sessions, ai

setup_logging()

# Init DB
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="TaskBoard API",
    version="0.1.0"
)
register_exception_handlers(app)

# Routes
app.include_router(health.router, prefix="/health")
app.include_router(auth.router)
app.include_router(tasks.router)
app.include_router(board.router)
app.include_router(sessions.router)
app.include_router(ai.router)
