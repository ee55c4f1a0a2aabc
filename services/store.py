"""
Slot and swap-request stores.

Reads return ORM rows; writes that depend on a previously read status are
compare-and-set updates whose row count is checked, so a concurrent writer
turns into a StaleWrite instead of a lost update. The *_views helpers do the
read-time join of requests to users and slots for API responses.
"""
from datetime import datetime

from sqlalchemy import or_

from models import db
from models.errors import StaleWrite
from models.slot import Slot
from models.status import SlotStatus, SwapStatus
from models.swap_request import SwapRequest
from models.user import User


def _as_id(value):
    # ids arrive from JSON bodies and URLs; anything non-integer simply matches nothing
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _status_value(status):
    return getattr(status, "value", status)


# ---------- Slot store ----------

def get_slot(slot_id):
    slot_id = _as_id(slot_id)
    if slot_id is None:
        return None
    return db.session.get(Slot, slot_id)


def get_owned_slot(slot_id, owner_id: int):
    slot_id = _as_id(slot_id)
    if slot_id is None:
        return None
    return Slot.query.filter_by(id=slot_id, owner_id=owner_id).first()


def slots_for_owner(owner_id: int):
    return (
        Slot.query
        .filter_by(owner_id=owner_id)
        .order_by(Slot.start_time.asc(), Slot.id.asc())
        .all()
    )


def swappable_slots_excluding(owner_id: int):
    return (
        Slot.query
        .filter(Slot.status == SlotStatus.SWAPPABLE.value, Slot.owner_id != owner_id)
        .order_by(Slot.start_time.asc(), Slot.id.asc())
        .all()
    )


def cas_slot(slot_id: int, expected_status, expected_owner_id: int, **values):
    """
    UPDATE slots SET ... WHERE id AND status AND owner_id still match what the
    caller read. Raises StaleWrite when the row has moved on.
    """
    values = {k: _status_value(v) for k, v in values.items()}
    values["updated_at"] = datetime.utcnow()
    count = (
        Slot.query
        .filter_by(id=slot_id, status=_status_value(expected_status), owner_id=expected_owner_id)
        .update(values, synchronize_session=False)
    )
    if count != 1:
        raise StaleWrite(f"slot {slot_id} no longer {_status_value(expected_status)}/owner {expected_owner_id}")


def delete_slot_if(slot_id: int, expected_status, owner_id: int):
    count = (
        Slot.query
        .filter_by(id=slot_id, status=_status_value(expected_status), owner_id=owner_id)
        .delete(synchronize_session=False)
    )
    if count != 1:
        raise StaleWrite(f"slot {slot_id} changed before delete")


# ---------- Swap request store ----------

def get_swap_request(request_id):
    request_id = _as_id(request_id)
    if request_id is None:
        return None
    return db.session.get(SwapRequest, request_id)


def insert_swap_request(requester_id: int, requester_slot_id: int, owner_id: int, owner_slot_id: int):
    row = SwapRequest(
        requester_id=requester_id,
        requester_slot_id=requester_slot_id,
        owner_id=owner_id,
        owner_slot_id=owner_slot_id,
        status=SwapStatus.PENDING.value,
    )
    db.session.add(row)
    db.session.flush()
    return row


def cas_swap_request(request_id: int, expected_status, **values):
    values = {k: _status_value(v) for k, v in values.items()}
    count = (
        SwapRequest.query
        .filter_by(id=request_id, status=_status_value(expected_status))
        .update(values, synchronize_session=False)
    )
    if count != 1:
        raise StaleWrite(f"swap request {request_id} no longer {_status_value(expected_status)}")


def pending_incoming(user_id: int):
    return (
        SwapRequest.query
        .filter_by(owner_id=user_id, status=SwapStatus.PENDING.value)
        .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
        .all()
    )


def pending_outgoing(user_id: int):
    return (
        SwapRequest.query
        .filter_by(requester_id=user_id, status=SwapStatus.PENDING.value)
        .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
        .all()
    )


def resolved_for_user(user_id: int):
    return (
        SwapRequest.query
        .filter(
            or_(SwapRequest.requester_id == user_id, SwapRequest.owner_id == user_id),
            SwapRequest.status != SwapStatus.PENDING.value,
        )
        .order_by(SwapRequest.created_at.desc(), SwapRequest.id.desc())
        .all()
    )


# ---------- read-time joins ----------

def user_summary(user):
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def slot_view(slot, owner=None):
    out = {
        "id": slot.id,
        "title": slot.title,
        "start_time": slot.start_time.isoformat(),
        "end_time": slot.end_time.isoformat(),
        "status": slot.status,
        "owner_id": slot.owner_id,
        "created_at": slot.created_at.isoformat(),
    }
    if owner is not None:
        out["owner"] = user_summary(owner)
    return out


def slot_views(slots, with_owner: bool = False):
    owners = {}
    if with_owner and slots:
        owner_ids = {s.owner_id for s in slots}
        owners = {u.id: u for u in User.query.filter(User.id.in_(owner_ids)).all()}
    return [slot_view(s, owners.get(s.owner_id)) for s in slots]


def swap_request_views(rows):
    if not rows:
        return []

    user_ids = {r.requester_id for r in rows} | {r.owner_id for r in rows}
    slot_ids = {r.requester_slot_id for r in rows} | {r.owner_slot_id for r in rows}
    slot_ids.discard(None)

    users = {u.id: u for u in User.query.filter(User.id.in_(user_ids)).all()}
    slots = {s.id: s for s in Slot.query.filter(Slot.id.in_(slot_ids)).all()} if slot_ids else {}

    out = []
    for r in rows:
        requester_slot = slots.get(r.requester_slot_id)
        owner_slot = slots.get(r.owner_slot_id)
        out.append({
            "id": r.id,
            "status": r.status,
            "created_at": r.created_at.isoformat(),
            "responded_at": r.responded_at.isoformat() if r.responded_at else None,
            "requester_id": r.requester_id,
            "owner_id": r.owner_id,
            "requester_slot_id": r.requester_slot_id,
            "owner_slot_id": r.owner_slot_id,
            "requester": user_summary(users.get(r.requester_id)),
            "owner": user_summary(users.get(r.owner_id)),
            "requester_slot": slot_view(requester_slot) if requester_slot else None,
            "owner_slot": slot_view(owner_slot) if owner_slot else None,
        })
    return out
