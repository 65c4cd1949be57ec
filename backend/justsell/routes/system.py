# backend/justsell/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, SessionToken, Store, User
from justsell import __version__
from justsell.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Database connectivity plus a few row counts."""
    start_time = time.time()
    try:
        details = {
            "stores": db.session.query(Store).count(),
            "users": db.session.query(User).count(),
            "products": db.session.query(Product).count(),
        }
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": details,
        }
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= utcnow(),
        ).count()
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": {"active_sessions": active_sessions},
        }
    except SQLAlchemyError:
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Session service error"
        }


def check_encryption_health() -> dict:
    """Field cipher is configured and its current key round-trips."""
    from ..repositories import get_field_cipher
    from ..security import DecryptionError

    try:
        cipher = get_field_cipher()
        ok = cipher.unwrap(cipher.wrap("health-check", "health"), "health") == "health-check"
    except (KeyError, DecryptionError, ValueError):
        current_app.logger.exception("Field encryption health check failed")
        ok = False
    if not ok:
        return {"status": "unhealthy", "error": "Field encryption unavailable"}
    return {"status": "healthy", "details": {"key_version": cipher.key_provider.current_version}}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "session_service": check_session_service_health(),
        "field_encryption": check_encryption_health(),
    }
    healthy = all(check["status"] == "healthy" for check in checks.values())

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    return response, 200 if healthy else 503


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information (no secrets, credentials or paths)."""
    return {
        "api_version": __version__,
        "environment": "production" if not current_app.debug else "development",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
