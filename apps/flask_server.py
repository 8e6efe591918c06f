"""
WireScope Diagnostics Flask API
===============================
REST API for projects, measurements, diagnoses and the sensor simulator.

Every response uses the envelope ``{"success": true, "data": ...}``; errors
answer with ``{"success": false, "error": ...}`` and the matching status.
"""

import dataclasses
import os
import sys
import time

# Add project root to sys.path to allow importing from core
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import logging

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from core.config import get_settings
from core.engines.rules import DEFAULT_THRESHOLDS
from core.exceptions import AppError, ProjectNotFoundError, UnsupportedSystemTypeError
from core.models.schemas import (
    ManualDiagnosisRequest,
    MeasurementCreate,
    ProjectCreate,
    SimulatorConfigIn,
    format_validation_errors,
)
from core.pipelines.diagnosis_pipeline import run_project_diagnosis
from core.simulator.session import SimulatorSession
from core.utils.logging_config import setup_logging
from database.factory import get_store

logger = logging.getLogger(__name__)

SERVICE_NAME = "WireScope Diagnostics API"
VERSION = "1.0.0"
MAX_LIMIT = 500

api = Blueprint("api", __name__)


def ok(data=None, status=200, **extra):
    body = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), status


def _store():
    return current_app.config["STORE"]


def _simulator() -> SimulatorSession:
    return current_app.config["SIMULATOR"]


def _limit_arg() -> int:
    default = current_app.config["SETTINGS"].measurement_window
    limit = request.args.get("limit", default=default, type=int)
    return max(1, min(limit, MAX_LIMIT))


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


def _require_project(project_id):
    project = _store().get_project(project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


# =============================================================================
# SERVICE
# =============================================================================

@api.route('/')
def root():
    """Service banner"""
    settings = current_app.config["SETTINGS"]
    return ok({
        "service": SERVICE_NAME,
        "version": VERSION,
        "deployment_url": settings.deployment_url,
        "docs": "/api/docs",
    })


@api.route('/health')
def health_check():
    """Health check with store status and uptime"""
    try:
        database = "connected" if _store().ping() else "unavailable"
    except AppError as e:
        logger.warning(f"[API] Health check: store unavailable ({e.message})")
        database = "unavailable"

    return ok({
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
        "uptimeSeconds": round(time.time() - current_app.config["STARTED_AT"], 1),
        "simulatorRunning": _simulator().running,
    })


@api.route('/api/docs')
def docs():
    endpoints = sorted(
        (
            {"path": rule.rule, "methods": sorted(rule.methods - {"HEAD", "OPTIONS"})}
            for rule in current_app.url_map.iter_rules()
            if rule.endpoint != "static"
        ),
        key=lambda e: e["path"],
    )
    return ok({"service": SERVICE_NAME, "version": VERSION, "endpoints": endpoints})


# =============================================================================
# PROJECTS
# =============================================================================

@api.route('/api/projects', methods=['POST'])
def create_project():
    payload = ProjectCreate.model_validate(_json_body())
    project = _store().create_project(payload.to_project())
    logger.info(f"[API] Created project {project.id} ({project.name})")
    return ok(project.to_dict(), 201)


@api.route('/api/projects', methods=['GET'])
def list_projects():
    projects = _store().list_projects()
    return ok([p.to_dict() for p in projects], count=len(projects))


@api.route('/api/projects/<project_id>', methods=['GET'])
def get_project(project_id):
    return ok(_require_project(project_id).to_dict())


# =============================================================================
# MEASUREMENTS
# =============================================================================

@api.route('/api/measurements', methods=['POST'])
def create_measurement():
    payload = MeasurementCreate.model_validate(_json_body())
    _require_project(payload.project_id)
    measurement = _store().create_measurement(payload.to_measurement())
    return ok(measurement.to_dict(), 201)


@api.route('/api/measurements/project/<project_id>', methods=['GET'])
def list_measurements(project_id):
    measurements = _store().list_measurements(project_id, _limit_arg())
    return ok([m.to_dict() for m in measurements], count=len(measurements))


# =============================================================================
# DIAGNOSES
# =============================================================================

@api.route('/api/diagnose/<project_id>', methods=['GET'])
def diagnose(project_id):
    save = request.args.get("save", "false").lower() == "true"
    diagnosis = run_project_diagnosis(_store(), project_id, limit=_limit_arg(), save=save)
    return ok(diagnosis.to_dict())


@api.route('/api/diagnose/<project_id>/history', methods=['GET'])
def diagnosis_history(project_id):
    _require_project(project_id)
    diagnoses = _store().list_diagnoses(project_id, _limit_arg())
    return ok([d.to_dict() for d in diagnoses], count=len(diagnoses))


@api.route('/api/diagnose/<project_id>/manual', methods=['POST'])
def manual_diagnose(project_id):
    payload = ManualDiagnosisRequest.model_validate(_json_body())
    thresholds = dataclasses.replace(DEFAULT_THRESHOLDS, **payload.thresholds.overrides())
    save = request.args.get("save", "false").lower() == "true"
    diagnosis = run_project_diagnosis(
        _store(), project_id, limit=_limit_arg(), save=save, thresholds=thresholds
    )
    return ok(diagnosis.to_dict())


# =============================================================================
# SIMULATOR
# =============================================================================

@api.route('/api/simulator/start/<project_id>', methods=['POST'])
def start_simulator(project_id):
    _require_project(project_id)
    session = _simulator()
    overrides = SimulatorConfigIn.model_validate(_json_body()).overrides()
    config = session.config.merged(**overrides) if overrides else None

    if not session.start(project_id, config):
        return jsonify({
            "success": False,
            "error": "Simulator is already running",
            "data": session.status(),
        }), 409

    return ok(session.status(), message=f"Simulator started for project {project_id}")


@api.route('/api/simulator/stop', methods=['POST'])
def stop_simulator():
    session = _simulator()
    if session.stop():
        message = "Simulator stopped"
    elif session.running:
        message = "Simulator did not stop in time"
    else:
        message = "Simulator was not running"
    return ok(session.status(), message=message)


@api.route('/api/simulator/status', methods=['GET'])
def simulator_status():
    return ok(_simulator().status())


@api.route('/api/simulator/config', methods=['PATCH'])
def update_simulator_config():
    overrides = SimulatorConfigIn.model_validate(_json_body()).overrides()
    session = _simulator()
    session.reconfigure(**overrides)
    return ok(session.status(), message="Simulator configuration updated")


# =============================================================================
# ERRORS
# =============================================================================

def _register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({
            "success": False,
            "error": "Validation failed",
            "errors": format_validation_errors(e),
        }), 400

    @app.errorhandler(AppError)
    def handle_app_error(e):
        if e.status_code >= 500:
            logger.error(f"[API] {request.method} {request.path} failed: {e.message}")
        return jsonify({"success": False, "error": e.message}), e.status_code

    @app.errorhandler(UnsupportedSystemTypeError)
    def handle_unsupported_system(e):
        return jsonify({"success": False, "error": str(e)}), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"success": False, "error": "Endpoint not found"}), 404

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "error": e.description}), e.code
        logger.exception(f"[API] Unhandled error in {request.method} {request.path}")
        return jsonify({"success": False, "error": "Internal server error"}), 500


def create_app(store=None, settings=None, session=None) -> Flask:
    """
    Builds the Flask app.

    Args:
        store: Persistence backend; defaults to ``get_store(settings)``.
        settings: ``Settings``; defaults to the environment.
        session: ``SimulatorSession``; defaults to one writing into ``store``.
    """
    settings = settings or get_settings()
    store = store or get_store(settings)

    app = Flask(__name__)
    origins = settings.cors_origins.split(",") if settings.cors_origins != "*" else "*"
    CORS(app, origins=origins)  # Enable CORS for frontend access

    app.config["SETTINGS"] = settings
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length
    app.config["STORE"] = store
    app.config["SIMULATOR"] = session or SimulatorSession(store.create_measurement)
    app.config["STARTED_AT"] = time.time()

    @app.before_request
    def log_request():
        logger.info(f"[API] {request.method} {request.path} from {request.remote_addr}")

    app.register_blueprint(api)
    _register_error_handlers(app)
    return app


if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    app = create_app(settings=settings)
    logger.info(f"[API] Registered routes:\n{app.url_map}")

    # Run the Flask app
    app.run(
        host=settings.host,
        port=settings.port,
        debug=False,
        use_reloader=False  # A reload would orphan the simulator thread
    )
