from datetime import datetime
from models.db import db
from models.status import SlotStatus

class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(200), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=SlotStatus.BUSY.value, index=True)
    # status values: BUSY, SWAPPABLE, SWAP_PENDING

    # current owner; changes hands when a swap is accepted
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("start_time < end_time", name="ck_slot_time_order"),
        {"sqlite_autoincrement": True},
    )
