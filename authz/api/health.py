"""Health check endpoints."""
from flask import Blueprint, current_app

from authz.core.exceptions import StorageUnavailable

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Liveness: the process is serving requests."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness: the relation store answers a round-trip query."""
    try:
        current_app.extensions["authz"].ping()
    except StorageUnavailable:
        return ("storage unavailable", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
