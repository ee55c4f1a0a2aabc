from .db import db
from .user import User
from .audit_log import AuditLog
from .session import Session
from .slot import Slot
from .swap_request import SwapRequest
