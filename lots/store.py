"""
lots/store.py -- SQLAlchemy-backed persistence layer for auction lots (Lot Store).

Uses SQLAlchemy Core (not ORM) so the domain dataclass in lots/models.py
remains the authoritative representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. LotStore is the repository; _row_to_lot is
the mapper. Services never touch SQL directly.

Every method is one round trip in its own connection. The store does not
raise on absence: lookups return None, writes return None/False, and
LotService decides what absence means.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = LotStore()                               # SQLite default
    store = LotStore("postgresql://user:pw@host/db") # PostgreSQL
    lot = store.create(lot)
    store.find_all_by_owner(user_id)
    store.update_by_id(lot.id, title="new title")
    store.delete_by_id(lot.id)
    store.close()
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from lots.models import Lot

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'lotmarket.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_lots = Table(
    "lots",
    metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex, opaque to callers
    Column("title", Text, nullable=False),
    Column("image", Text),
    Column("status", String(30), nullable=False),
    Column("current_price", Float, nullable=False),
    Column("estimated_price", Float, nullable=False),
    Column("lot_start_time", String(32), nullable=False),
    Column("lot_end_time", String(32), nullable=False),
    Column("user_id", String(32), nullable=False, index=True),  # owner, by value
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("seq", Integer, nullable=False, index=True),  # insertion order
)

# Evaluated inside the INSERT, so the max() read and the write are one statement.
_next_seq = select(func.coalesce(func.max(_lots.c.seq), 0) + 1).scalar_subquery()

_UPDATABLE_FIELDS = {
    "title",
    "image",
    "status",
    "current_price",
    "estimated_price",
    "lot_start_time",
    "lot_end_time",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class LotStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a thread pool, so one connection
            # may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create(self, lot: Lot) -> Lot:
        """Insert a new lot and return the stored representation with its id."""
        lot_id = uuid.uuid4().hex
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _lots.insert().values(
                    id=lot_id,
                    title=lot.title,
                    image=lot.image,
                    status=lot.status,
                    current_price=lot.current_price,
                    estimated_price=lot.estimated_price,
                    lot_start_time=lot.lot_start_time,
                    lot_end_time=lot.lot_end_time,
                    user_id=lot.user_id,
                    created_at=now,
                    updated_at=now,
                    seq=_next_seq,
                )
            )
            row = conn.execute(_lots.select().where(_lots.c.id == lot_id)).fetchone()
            conn.commit()
        return _row_to_lot(row)

    def find_all(self) -> list[Lot]:
        """Return every lot in insertion order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_lots.select().order_by(_lots.c.seq)).fetchall()
        return [_row_to_lot(r) for r in rows]

    def find_all_by_owner(self, user_id: str) -> list[Lot]:
        """Return the lots whose user_id equals user_id, in insertion order."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _lots.select().where(_lots.c.user_id == user_id).order_by(_lots.c.seq)
            ).fetchall()
        return [_row_to_lot(r) for r in rows]

    def find_by_id(self, lot_id: str) -> Optional[Lot]:
        """Fetch a single lot by id. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_lots.select().where(_lots.c.id == lot_id)).fetchone()
        return _row_to_lot(row) if row is not None else None

    def update_by_id(self, lot_id: str, **fields) -> Optional[Lot]:
        """Overwrite the supplied fields and return the post-update lot.

        Fields not passed keep their stored values. Returns None if lot_id
        was not found. Unknown keys raise ValueError.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown lot fields: {unknown!r}")
        with self.engine.connect() as conn:
            if fields:
                result = conn.execute(
                    _lots.update().where(_lots.c.id == lot_id).values(updated_at=_now_iso(), **fields)
                )
                if result.rowcount == 0:
                    conn.commit()
                    return None
            row = conn.execute(_lots.select().where(_lots.c.id == lot_id)).fetchone()
            conn.commit()
        return _row_to_lot(row) if row is not None else None

    def delete_by_id(self, lot_id: str) -> bool:
        """Delete a lot. Returns True if a row was deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_lots.delete().where(_lots.c.id == lot_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_lot(row) -> Lot:
    return Lot(
        id=row.id,
        title=row.title,
        image=row.image,
        status=row.status,
        current_price=row.current_price,
        estimated_price=row.estimated_price,
        lot_start_time=row.lot_start_time,
        lot_end_time=row.lot_end_time,
        user_id=row.user_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
