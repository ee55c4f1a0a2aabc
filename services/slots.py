from datetime import datetime, timezone

from models import db
from models.errors import InvalidOperation, InvalidState, MissingField, NotFound
from models.slot import Slot
from models.status import OWNER, OWNER_INITIAL_STATUSES, SlotStatus, parse_slot_status, slot_transition
from services import store
from services.unit_of_work import atomic


def _parse_iso(value, field: str) -> datetime:
    # Accepts "2026-01-20T18:00:00", offsets and a trailing Z; stored as naive UTC
    if isinstance(value, datetime):
        dt = value
    else:
        if not isinstance(value, str):
            raise InvalidOperation(f"Invalid {field}", details={"field": field})
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidOperation(
                f"Invalid {field}. Use ISO e.g. 2026-01-20T18:00:00",
                details={"field": field},
            )
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _clean_title(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MissingField("title")
    title = value.strip()
    if len(title) > 200:
        raise InvalidOperation("title is too long", details={"field": "title", "max_length": 200})
    return title


def _check_order(start_time: datetime, end_time: datetime):
    if end_time <= start_time:
        raise InvalidOperation("end_time must be after start_time")


def list_own_slots(owner_id: int):
    return store.slot_views(store.slots_for_owner(owner_id))


def list_swappable_slots(user_id: int):
    return store.slot_views(store.swappable_slots_excluding(user_id), with_owner=True)


@atomic
def create_slot(owner_id: int, data: dict):
    missing = [f for f in ("title", "start_time", "end_time") if not data.get(f)]
    if missing:
        raise MissingField(*missing)

    title = _clean_title(data.get("title"))
    start_time = _parse_iso(data.get("start_time"), "start_time")
    end_time = _parse_iso(data.get("end_time"), "end_time")
    _check_order(start_time, end_time)

    status = parse_slot_status(data.get("status") or SlotStatus.BUSY.value)
    if status not in OWNER_INITIAL_STATUSES:
        raise InvalidState(f"A new slot cannot start as {status.value}", details={"status": status.value})

    slot = Slot(title=title, start_time=start_time, end_time=end_time, status=status.value, owner_id=owner_id)
    db.session.add(slot)
    db.session.flush()
    return slot


@atomic
def update_slot(owner_id: int, slot_id, data: dict):
    """
    Partial update by the owner. Refused outright while the slot is
    SWAP_PENDING; status changes must be owner transitions (BUSY <-> SWAPPABLE).
    """
    slot = store.get_owned_slot(slot_id, owner_id)
    if slot is None:
        raise NotFound("Event not found", details={"slot_id": slot_id})

    current = parse_slot_status(slot.status)
    if current == SlotStatus.SWAP_PENDING:
        raise InvalidState("Cannot update event with pending swap", details={"slot_id": slot.id})

    values = {}
    if data.get("title") is not None:
        values["title"] = _clean_title(data.get("title"))

    start_time, end_time = slot.start_time, slot.end_time
    if data.get("start_time"):
        start_time = values["start_time"] = _parse_iso(data.get("start_time"), "start_time")
    if data.get("end_time"):
        end_time = values["end_time"] = _parse_iso(data.get("end_time"), "end_time")
    _check_order(start_time, end_time)

    if data.get("status"):
        target = slot_transition(current, data.get("status"), OWNER)
        if target != current:
            values["status"] = target

    if values:
        store.cas_slot(slot.id, current, owner_id, **values)
    return slot


@atomic
def delete_slot(owner_id: int, slot_id):
    slot = store.get_owned_slot(slot_id, owner_id)
    if slot is None:
        raise NotFound("Event not found", details={"slot_id": slot_id})

    current = parse_slot_status(slot.status)
    if current == SlotStatus.SWAP_PENDING:
        raise InvalidState("Cannot delete event with pending swap", details={"slot_id": slot.id})

    deleted_id = slot.id
    store.delete_slot_if(deleted_id, current, owner_id)
    return deleted_id
