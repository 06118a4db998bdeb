"""
tests/mocks.py -- Test-data generators for users and lots.

lot_payload() returns a request body in wire format (camelCase, numeric
strings for prices, epoch-millisecond times) the way a browser client sends
it. make_lot() returns a domain Lot for inserting straight into a LotStore.
"""

from __future__ import annotations

import random
import time
import uuid
from datetime import datetime, timezone

from lots.models import Lot, LotStatus

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"
TEST_PASSWORD = "testpass123"

_WORDS = ["vintage", "oak", "chair", "signed", "print", "silver", "watch", "rare", "lamp", "vinyl", "camera"]


def _sentence(words: int = 4) -> str:
    return " ".join(random.choice(_WORDS) for _ in range(words)).capitalize() + "."


def user_mock() -> dict:
    """Return registration credentials for a unique user."""
    return {"email": f"user_{uuid.uuid4().hex[:10]}@example.com", "password": "s3cret-pass"}


def lot_payload(**overrides) -> dict:
    now_ms = int(time.time() * 1000)
    payload = {
        "title": _sentence(),
        "image": f"https://images.example.com/{uuid.uuid4().hex}.jpg",
        "status": random.choice(list(LotStatus)).value,
        "currentPrice": str(random.randint(100, 999)),
        "estimatedPrice": str(random.randint(100, 999)),
        "lotStartTime": now_ms,
        "lotEndTime": now_ms,
    }
    payload.update(overrides)
    return payload


def make_lot(user_id: str | None = None, **overrides) -> Lot:
    now = datetime.now(timezone.utc).isoformat()
    fields = {
        "title": _sentence(),
        "image": None,
        "status": LotStatus.pending.value,
        "current_price": float(random.randint(100, 999)),
        "estimated_price": float(random.randint(100, 999)),
        "lot_start_time": now,
        "lot_end_time": now,
        "user_id": user_id or uuid.uuid4().hex,
    }
    fields.update(overrides)
    return Lot(**fields)
