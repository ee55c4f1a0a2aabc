from collections import Counter

from models.slot import Slot
from models.status import SlotStatus, SwapStatus
from models.swap_request import SwapRequest


def find_violations():
    """
    Scans slots and pending swap requests and returns a list of dicts, one per
    broken rule. An empty list means:
      - every SWAP_PENDING slot is referenced by exactly one PENDING request
      - every PENDING request points at two SWAP_PENDING slots
      - no slot is referenced by two PENDING requests
    """
    pending = SwapRequest.query.filter_by(status=SwapStatus.PENDING.value).all()

    refs = Counter()
    for r in pending:
        refs[r.requester_slot_id] += 1
        refs[r.owner_slot_id] += 1

    referenced_ids = [sid for sid in refs if sid is not None]
    slots = {
        s.id: s
        for s in Slot.query.filter(
            (Slot.status == SlotStatus.SWAP_PENDING.value) | (Slot.id.in_(referenced_ids))
        ).all()
    }

    violations = []
    for slot_id, count in sorted(refs.items(), key=lambda kv: (kv[0] is None, kv[0] or 0)):
        if slot_id is not None and count > 1:
            violations.append({"rule": "SLOT_IN_MULTIPLE_PENDING_REQUESTS", "slot_id": slot_id, "requests": count})

    for slot in sorted(slots.values(), key=lambda s: s.id):
        if slot.status == SlotStatus.SWAP_PENDING.value and refs.get(slot.id, 0) == 0:
            violations.append({"rule": "PENDING_SLOT_WITHOUT_REQUEST", "slot_id": slot.id})

    for r in pending:
        for slot_id in (r.requester_slot_id, r.owner_slot_id):
            slot = slots.get(slot_id)
            if slot is None or slot.status != SlotStatus.SWAP_PENDING.value:
                violations.append({
                    "rule": "PENDING_REQUEST_SLOT_NOT_LOCKED",
                    "request_id": r.id,
                    "slot_id": slot_id,
                    "slot_status": slot.status if slot else None,
                })

    return violations
