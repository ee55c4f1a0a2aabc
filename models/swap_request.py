from datetime import datetime
from models.db import db
from models.status import SwapStatus

class SwapRequest(db.Model):
    __tablename__ = "swap_requests"

    id = db.Column(db.Integer, primary_key=True)

    # slot ids go NULL only if a slot is deleted after the request resolved
    requester_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    requester_slot_id = db.Column(db.Integer, db.ForeignKey("slots.id", ondelete="SET NULL"), nullable=True, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    owner_slot_id = db.Column(db.Integer, db.ForeignKey("slots.id", ondelete="SET NULL"), nullable=True, index=True)

    status = db.Column(db.String(20), nullable=False, default=SwapStatus.PENDING.value, index=True)
    # status values: PENDING, ACCEPTED, REJECTED (never deleted, kept as audit trail)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    responded_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint("requester_id <> owner_id", name="ck_swap_distinct_users"),
        db.CheckConstraint("requester_slot_id <> owner_slot_id", name="ck_swap_distinct_slots"),
    )
