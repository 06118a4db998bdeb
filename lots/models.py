"""
lots/models.py -- Domain dataclass and status lifecycle for auction lots.

Lot is a pure data container. The status lifecycle lives here as data
(_ALLOWED_TRANSITIONS) so the service and the tests read the same table.

Separation of concerns: these dataclasses are the lot domain's truth; the
Pydantic models in api/models.py are the HTTP contract. Route handlers map
between the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LotStatus(str, Enum):
    pending = "pending"
    in_process = "inProcess"
    closed = "closed"


# Forward-only lifecycle. closed is terminal.
_ALLOWED_TRANSITIONS: dict[LotStatus, frozenset[LotStatus]] = {
    LotStatus.pending: frozenset({LotStatus.in_process, LotStatus.closed}),
    LotStatus.in_process: frozenset({LotStatus.closed}),
    LotStatus.closed: frozenset(),
}


def can_transition(from_status: str, to_status: str) -> bool:
    """Return True if a lot may move from from_status to to_status.

    Re-asserting the current status is always allowed (no-op update).
    Unknown values are never allowed.
    """
    try:
        src = LotStatus(from_status)
        dst = LotStatus(to_status)
    except ValueError:
        return False
    return src == dst or dst in _ALLOWED_TRANSITIONS[src]


@dataclass
class Lot:
    """An auctionable item.

    user_id is the owning user's id. Ownership is plain value equality on
    this field -- there is no managed relation to the users table.

    lot_start_time / lot_end_time / created_at / updated_at are ISO 8601
    strings. id is None before the record is written to the database.
    """

    title: str
    status: str  # LotStatus value
    current_price: float
    estimated_price: float
    lot_start_time: str
    lot_end_time: str
    user_id: str
    image: Optional[str] = None
    id: Optional[str] = None
    created_at: str = ""  # set by store on insert
    updated_at: str = ""  # set by store on insert and every update
