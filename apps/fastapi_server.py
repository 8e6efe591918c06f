"""
WireScope Diagnostics FastAPI Service
=====================================
Diagnostics-only API. ``POST /api/diagnose`` evaluates a caller-supplied
project and measurement history without touching storage;
``GET /api/diagnose/{project_id}`` runs against the configured store.
"""

import dataclasses
import os
import sys

# Add project root to sys.path to allow importing from core
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import logging

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.engines.diagnostics import evaluate
from core.engines.rules import DEFAULT_THRESHOLDS
from core.exceptions import AppError
from core.models.schemas import DiagnoseRequest
from core.pipelines.diagnosis_pipeline import run_project_diagnosis
from core.utils.logging_config import setup_logging
from database.factory import get_store

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(store=None, settings=None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="WireScope Diagnostics API",
        description="Rule-based diagnosis of electrical installation measurements",
        version=VERSION,
    )
    app.state.settings = settings
    app.state.store = store or get_store(settings)

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > settings.max_content_length:
            return JSONResponse(status_code=413, content={"success": False, "error": "Request body too large"})
        return await call_next(request)

    # Enable CORS for frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Validation failed", "errors": errors},
        )

    @app.get("/")
    async def root():
        """Service banner"""
        return {
            "status": "healthy",
            "service": "WireScope Diagnostics FastAPI",
            "version": VERSION,
            "deployment_url": settings.deployment_url,
        }

    @app.get("/api/health")
    def health_check():
        """Health check with store status"""
        try:
            database = "connected" if app.state.store.ping() else "unavailable"
        except AppError as e:
            logger.warning(f"[API] Health check: store unavailable ({e.message})")
            database = "unavailable"
        return {
            "status": "healthy" if database == "connected" else "degraded",
            "components": {
                "rule_engine": "operational",
                "database": database,
            },
        }

    @app.post("/api/diagnose")
    async def diagnose(payload: DiagnoseRequest):
        """Evaluates the supplied history (any order; sorted newest first)."""
        project = dataclasses.replace(payload.project.to_project(), id=payload.project_id)
        measurements = sorted(
            (m.to_measurement() for m in payload.measurements),
            key=lambda m: m.timestamp or "",
            reverse=True,
        )
        thresholds = dataclasses.replace(DEFAULT_THRESHOLDS, **payload.thresholds.overrides())

        diagnosis = evaluate(project, measurements, thresholds=thresholds)
        logger.info(
            f"[DIAGNOSE] Ad-hoc {payload.project_id}: {len(measurements)} measurements, "
            f"severity={diagnosis.severity.value}"
        )
        return {"success": True, "data": diagnosis.to_dict()}

    @app.get("/api/diagnose/{project_id}")
    def diagnose_project(
        project_id: str,
        save: bool = False,
        limit: int = Query(default=settings.measurement_window, ge=1, le=500),
    ):
        diagnosis = run_project_diagnosis(app.state.store, project_id, limit=limit, save=save)
        return {"success": True, "data": diagnosis.to_dict()}

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.fastapi_port,
    )
