"""
auth/models.py -- Domain dataclass for the User entity.

Pattern: Data class (pure data container, zero logic). Mirrors lots/models.py
-- dataclasses own domain shape; stores and services do the work.

Layer rule: no imports from api/ or lots/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered marketplace identity.

    hashed_password always holds a bcrypt hash. Plaintext passwords exist
    only transiently inside AuthService while a request is being handled.

    is_remember_me is a client-session hint written on every login.

    id is None before the record is written to the database.
    """

    email: str
    hashed_password: str
    id: str | None = None
    is_remember_me: bool = False
    created_at: str | None = None
