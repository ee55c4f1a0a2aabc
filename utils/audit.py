import json
import logging
from flask import request
from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None
    )
    db.session.add(row)
    db.session.commit()
    logger.debug("audit %s user=%s %s=%s", action, user_id, entity, entity_id)

def log_swap_event(action: str, swap, user_id):
    log_event(
        action,
        user_id=user_id,
        entity="swap_request",
        entity_id=swap.id,
        metadata={
            "status": swap.status,
            "requester_id": swap.requester_id,
            "owner_id": swap.owner_id,
            "requester_slot_id": swap.requester_slot_id,
            "owner_slot_id": swap.owner_slot_id,
        },
    )
