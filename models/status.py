"""
Status state machines for slots and swap requests.

Both the swap coordinator and slot CRUD go through these tables; no other
module compares status strings to decide whether a transition is allowed.
"""
from enum import Enum

from models.errors import AlreadyResolved, InvalidOperation, InvalidState

OWNER = "OWNER"
COORDINATOR = "COORDINATOR"


class SlotStatus(str, Enum):
    BUSY = "BUSY"
    SWAPPABLE = "SWAPPABLE"
    SWAP_PENDING = "SWAP_PENDING"


class SwapStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


# (from, to) -> actor allowed to drive it
SLOT_TRANSITIONS = {
    (SlotStatus.BUSY, SlotStatus.SWAPPABLE): OWNER,
    (SlotStatus.SWAPPABLE, SlotStatus.BUSY): OWNER,
    (SlotStatus.SWAPPABLE, SlotStatus.SWAP_PENDING): COORDINATOR,
    (SlotStatus.SWAP_PENDING, SlotStatus.BUSY): COORDINATOR,
    (SlotStatus.SWAP_PENDING, SlotStatus.SWAPPABLE): COORDINATOR,
}

SWAP_TRANSITIONS = {
    (SwapStatus.PENDING, SwapStatus.ACCEPTED),
    (SwapStatus.PENDING, SwapStatus.REJECTED),
}

# statuses an owner may pick when creating a slot
OWNER_INITIAL_STATUSES = {SlotStatus.BUSY, SlotStatus.SWAPPABLE}


def parse_slot_status(value) -> SlotStatus:
    try:
        return SlotStatus(value)
    except ValueError:
        raise InvalidOperation(
            f"Unknown slot status: {value}",
            details={"allowed": [s.value for s in SlotStatus]},
        )


def slot_transition(current, target, actor: str = OWNER, what: str = "Slot") -> SlotStatus:
    """
    Validates a slot status change and returns the target status.

    An owner re-applying the current status of a slot that is not
    SWAP_PENDING is a no-op and allowed.
    """
    current = parse_slot_status(current)
    target = parse_slot_status(target)

    if current == target and actor == OWNER and current != SlotStatus.SWAP_PENDING:
        return target

    allowed_actor = SLOT_TRANSITIONS.get((current, target))
    if allowed_actor is None or allowed_actor != actor:
        raise InvalidState(
            f"{what} cannot move from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return target


def swap_transition(current, target) -> SwapStatus:
    current = SwapStatus(current)
    target = SwapStatus(target)
    if current != SwapStatus.PENDING:
        raise AlreadyResolved(
            "This request has already been responded to",
            details={"status": current.value},
        )
    if (current, target) not in SWAP_TRANSITIONS:
        raise InvalidState(
            f"Swap request cannot move from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
    return target
