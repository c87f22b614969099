# backend/trainingdb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import Base, engine
from .apps.training import models as training_models  # noqa: F401  (registers tables)
from .apps.training.router import router as training_router

logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:4173",
    ]


def _auto_create_schema() -> bool:
    return os.getenv("TRAINING_AUTO_CREATE_SCHEMA", "true").lower() in {"1", "true", "yes", "on"}


app = FastAPI(title="Training Tracker API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _create_schema() -> None:
    # Local single-operator installs run without Alembic.
    if _auto_create_schema():
        Base.metadata.create_all(bind=engine)
        logger.info("schema ensured", extra={"url": str(engine.url.render_as_string(hide_password=True))})


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Training tracker backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(training_router)
