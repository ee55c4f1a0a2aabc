from flask import Blueprint, jsonify, g

from services import slots as slot_service
from services.store import slot_view
from utils.audit import log_event
from utils.auth_context import login_required
from utils.payload import json_body

slots_bp = Blueprint("slots", __name__, url_prefix="/api")


# ---------- owner: my calendar ----------
@slots_bp.get("/events")
@login_required
def list_events():
    return jsonify(slot_service.list_own_slots(g.user.id)), 200


@slots_bp.post("/events")
@login_required
def create_event():
    data = json_body()
    slot = slot_service.create_slot(g.user.id, data)

    log_event("SLOT_CREATE", user_id=g.user.id, entity="slot", entity_id=slot.id, metadata={"status": slot.status})
    return jsonify(slot_view(slot)), 201


@slots_bp.put("/events/<int:slot_id>")
@login_required
def update_event(slot_id: int):
    data = json_body()
    slot = slot_service.update_slot(g.user.id, slot_id, data)

    log_event("SLOT_UPDATE", user_id=g.user.id, entity="slot", entity_id=slot.id,
              metadata={k: data.get(k) for k in ("title", "start_time", "end_time", "status") if k in data})
    return jsonify(slot_view(slot)), 200


@slots_bp.delete("/events/<int:slot_id>")
@login_required
def delete_event(slot_id: int):
    deleted_id = slot_service.delete_slot(g.user.id, slot_id)

    log_event("SLOT_DELETE", user_id=g.user.id, entity="slot", entity_id=deleted_id)
    return jsonify(message="Event deleted successfully."), 200


# ---------- marketplace: other users' swappable slots ----------
@slots_bp.get("/swappable-slots")
@login_required
def list_swappable_slots():
    return jsonify(slot_service.list_swappable_slots(g.user.id)), 200
