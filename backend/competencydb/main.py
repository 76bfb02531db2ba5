# backend/competencydb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .apps.accounts.router import router as accounts_router
from .apps.audit.router import router as audit_router
from .apps.competencies.router import router as competencies_router
from .apps.training_batches.router import router as training_batches_router
from .apps.training_requests.router import router as training_requests_router
from .apps.project_assignment.router import router as project_assignment_router
from .apps.validation.router import vpa_router, vsr_router

logger = logging.getLogger(__name__)

_DEV_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _cors_origins() -> List[str]:
    """Comma-separated CORS_ALLOWED_ORIGINS, or the local frontend ports."""
    configured = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]
    return configured or list(_DEV_ORIGINS)


def create_app() -> FastAPI:
    application = FastAPI(title="Competency Training API", version="1.0.0")

    origins = _cors_origins()
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers refuse credentialed requests to a wildcard origin.
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        accounts_router,
        competencies_router,
        training_requests_router,
        training_batches_router,
        vpa_router,
        vsr_router,
        project_assignment_router,
        audit_router,
    ):
        application.include_router(router)

    @application.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    logger.info("Competency API configured", extra={"cors_origins": origins})
    return application


app = create_app()
