"""
Swap coordinator.

Owns every status change that involves a swap request. Each public operation
is one @atomic unit: its reads, its compare-and-set writes on both slots and
the request row commit together or not at all.
"""
import logging
from datetime import datetime

from models.errors import Forbidden, InvalidOperation, NotFound
from models.status import COORDINATOR, SlotStatus, SwapStatus, slot_transition, swap_transition
from services import store
from services.unit_of_work import atomic

logger = logging.getLogger(__name__)


@atomic
def _propose(requester_id: int, requester_slot_id, owner_slot_id):
    my_slot = store.get_owned_slot(requester_slot_id, requester_id)
    if my_slot is None:
        raise NotFound("Your slot not found", details={"slot_id": requester_slot_id})
    slot_transition(my_slot.status, SlotStatus.SWAP_PENDING, COORDINATOR, what="Your slot")

    their_slot = store.get_slot(owner_slot_id)
    if their_slot is None:
        raise NotFound("Requested slot not found", details={"slot_id": owner_slot_id})
    slot_transition(their_slot.status, SlotStatus.SWAP_PENDING, COORDINATOR, what="Requested slot")

    owner_id = their_slot.owner_id
    if owner_id == requester_id:
        raise InvalidOperation("Cannot swap with your own slot", details={"slot_id": their_slot.id})

    # ids copied out before the writes; the ORM rows are not refreshed by the CAS updates
    my_slot_id, their_slot_id = my_slot.id, their_slot.id

    store.cas_slot(my_slot_id, SlotStatus.SWAPPABLE, requester_id, status=SlotStatus.SWAP_PENDING)
    store.cas_slot(their_slot_id, SlotStatus.SWAPPABLE, owner_id, status=SlotStatus.SWAP_PENDING)

    return store.insert_swap_request(
        requester_id=requester_id,
        requester_slot_id=my_slot_id,
        owner_id=owner_id,
        owner_slot_id=their_slot_id,
    )


def propose_swap(requester_id: int, requester_slot_id, owner_slot_id):
    """
    Offers the requester's SWAPPABLE slot in exchange for another user's
    SWAPPABLE slot. Both slots become SWAP_PENDING and a PENDING request is
    created.

    Raises NotFound, InvalidState, InvalidOperation, or Conflict when
    concurrent writers keep winning.
    """
    swap = _propose(requester_id, requester_slot_id, owner_slot_id)
    logger.info(
        "Swap request %s proposed: user %s slot %s <-> user %s slot %s",
        swap.id, swap.requester_id, swap.requester_slot_id, swap.owner_id, swap.owner_slot_id,
    )
    return swap


@atomic
def _respond(responder_id: int, request_id, accept: bool):
    swap = store.get_swap_request(request_id)
    if swap is None:
        raise NotFound("Swap request not found", details={"request_id": request_id})
    if swap.owner_id != responder_id:
        raise Forbidden("You are not authorized to respond to this request", details={"request_id": swap.id})

    outcome = swap_transition(swap.status, SwapStatus.ACCEPTED if accept else SwapStatus.REJECTED)
    swap_id = swap.id
    requester_id, owner_id = swap.requester_id, swap.owner_id

    # claim the request first: a concurrent responder that read it as PENDING
    # fails here and is re-run into AlreadyResolved
    store.cas_swap_request(swap_id, SwapStatus.PENDING, status=outcome, responded_at=datetime.utcnow())

    requester_slot = store.get_slot(swap.requester_slot_id)
    owner_slot = store.get_slot(swap.owner_slot_id)
    if requester_slot is None or owner_slot is None:
        logger.error("Swap request %s references a missing slot", swap.id)
        raise NotFound("One or both slots no longer exist", details={"request_id": swap.id})

    slot_status = SlotStatus.BUSY if accept else SlotStatus.SWAPPABLE
    slot_transition(requester_slot.status, slot_status, COORDINATOR)
    slot_transition(owner_slot.status, slot_status, COORDINATOR)

    requester_slot_id, owner_slot_id = requester_slot.id, owner_slot.id

    if accept:
        # ownership changes hands; both slots go back to ordinary busy time
        store.cas_slot(requester_slot_id, SlotStatus.SWAP_PENDING, requester_id,
                       status=slot_status, owner_id=owner_id)
        store.cas_slot(owner_slot_id, SlotStatus.SWAP_PENDING, owner_id,
                       status=slot_status, owner_id=requester_id)
    else:
        store.cas_slot(requester_slot_id, SlotStatus.SWAP_PENDING, requester_id, status=slot_status)
        store.cas_slot(owner_slot_id, SlotStatus.SWAP_PENDING, owner_id, status=slot_status)

    return swap


def respond_to_swap(responder_id: int, request_id, accept: bool):
    """
    Resolves a PENDING request. Only the owner of the requested slot may
    answer, and only once; a second answer raises AlreadyResolved.
    """
    swap = _respond(responder_id, request_id, accept)
    logger.info("Swap request %s %s by user %s", swap.id, swap.status, responder_id)
    return swap


def incoming_requests(user_id: int):
    return store.swap_request_views(store.pending_incoming(user_id))


def outgoing_requests(user_id: int):
    return store.swap_request_views(store.pending_outgoing(user_id))


def request_history(user_id: int):
    return store.swap_request_views(store.resolved_for_user(user_id))
