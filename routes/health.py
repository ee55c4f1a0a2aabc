import logging

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)

API_VERSION = "1.0.0"


def _database_status():
    # checked on every call; nothing is cached between requests
    try:
        db.session.execute(text("SELECT 1"))
        return "connected", None
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.warning("Database health check failed: %s", exc)
        return "error", str(exc.__class__.__name__)


@health_bp.get("/")
def root():
    return jsonify(message="SlotSwapper API is running", status="online", version=API_VERSION), 200


@health_bp.get("/health")
def health():
    status, _ = _database_status()
    code = 200 if status == "connected" else 503
    return jsonify(status="ok" if code == 200 else "degraded", database=status), code


@health_bp.get("/api/status")
def api_status():
    status, error = _database_status()
    database = {"status": status, "dialect": db.engine.dialect.name}
    if error:
        database["error"] = error
    code = 200 if status == "connected" else 503
    return jsonify(database=database, server={"status": "online", "version": API_VERSION}), code
