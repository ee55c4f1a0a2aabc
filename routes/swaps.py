from flask import Blueprint, jsonify, g

from models.errors import MissingField
from services import swaps as coordinator
from services.store import swap_request_views
from utils.audit import log_swap_event
from utils.auth_context import login_required
from utils.payload import json_body

swaps_bp = Blueprint("swaps", __name__, url_prefix="/api")


@swaps_bp.post("/swap-request")
@login_required
def create_swap_request():
    data = json_body()
    my_slot_id = data.get("my_slot_id")
    their_slot_id = data.get("their_slot_id")

    missing = [f for f, v in (("my_slot_id", my_slot_id), ("their_slot_id", their_slot_id)) if v in (None, "")]
    if missing:
        raise MissingField(*missing)

    swap = coordinator.propose_swap(g.user.id, my_slot_id, their_slot_id)

    log_swap_event("SWAP_PROPOSE", swap, user_id=g.user.id)
    return jsonify(message="Swap request created successfully.", swap_request=swap_request_views([swap])[0]), 201


@swaps_bp.get("/swap-requests/incoming")
@login_required
def incoming():
    return jsonify(coordinator.incoming_requests(g.user.id)), 200


@swaps_bp.get("/swap-requests/outgoing")
@login_required
def outgoing():
    return jsonify(coordinator.outgoing_requests(g.user.id)), 200


@swaps_bp.get("/swap-requests/history")
@login_required
def history():
    return jsonify(coordinator.request_history(g.user.id)), 200


@swaps_bp.post("/swap-response/<int:request_id>")
@login_required
def respond(request_id: int):
    data = json_body()
    accepted = data.get("accepted")
    if not isinstance(accepted, bool):
        raise MissingField("accepted")

    swap = coordinator.respond_to_swap(g.user.id, request_id, accepted)

    log_swap_event("SWAP_ACCEPT" if accepted else "SWAP_REJECT", swap, user_id=g.user.id)
    message = "Swap accepted successfully." if accepted else "Swap rejected."
    return jsonify(message=message, swap_request=swap_request_views([swap])[0]), 200
