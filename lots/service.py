"""
lots/service.py -- Lot Access Flow: ownership filter, not-found contract, write policy.

All three id-based operations (find_one, update, remove) raise the typed
NotFound when the lot does not exist. api/main.py maps NotFound to a 404 in
one exception handler, so no route repeats that translation.

Write policy: when owner_only_writes is False (the default), any
authenticated user may update or delete any lot. When True, a non-owner gets
Forbidden. Listing is filtered by owner only when the caller asks for it.

Status changes are checked against lots.models.can_transition(). That check
needs the current status, so an update that touches status (or runs under
the owner-only policy) reads the lot before writing it.
"""

from __future__ import annotations

import logging

from auth.models import User
from core.errors import Forbidden, InvalidStatusTransition, NotFound
from lots.models import Lot, can_transition
from lots.store import LotStore

logger = logging.getLogger("lotmarket.lots")


class LotService:
    def __init__(self, store: LotStore, owner_only_writes: bool = False) -> None:
        self.store = store
        self.owner_only_writes = owner_only_writes

    def create(self, lot: Lot, owner: User) -> Lot:
        """Persist a new lot owned by owner and return it with its assigned id."""
        lot.user_id = owner.id
        created = self.store.create(lot)
        logger.info("Lot %s created by user %s", created.id, owner.id)
        return created

    def find_all(self, user: User | None = None, own: bool = False) -> list[Lot]:
        """Return every lot, or only user's lots when own is set."""
        if own:
            if user is None:
                raise ValueError("own=True requires a user")
            return self.store.find_all_by_owner(user.id)
        return self.store.find_all()

    def find_one(self, lot_id: str) -> Lot:
        lot = self.store.find_by_id(lot_id)
        if lot is None:
            raise NotFound()
        return lot

    def update(self, lot_id: str, changes: dict, actor: User) -> Lot:
        """Apply a partial update and return the post-update lot.

        changes holds only the fields the caller supplied. An empty dict
        returns the stored lot unchanged.
        """
        if "status" in changes or self.owner_only_writes:
            current = self.find_one(lot_id)
            self._check_write_access(current, actor)
            new_status = changes.get("status")
            if new_status is not None and not can_transition(current.status, new_status):
                raise InvalidStatusTransition(current.status, new_status)
        updated = self.store.update_by_id(lot_id, **changes)
        if updated is None:
            raise NotFound()
        if changes:
            logger.info("Lot %s updated by user %s (%s)", lot_id, actor.id, ", ".join(sorted(changes)))
        return updated

    def remove(self, lot_id: str, actor: User) -> None:
        """Delete exactly one lot. Raises NotFound if nothing was deleted."""
        if self.owner_only_writes:
            self._check_write_access(self.find_one(lot_id), actor)
        if not self.store.delete_by_id(lot_id):
            raise NotFound()
        logger.info("Lot %s deleted by user %s", lot_id, actor.id)

    def _check_write_access(self, lot: Lot, actor: User) -> None:
        if self.owner_only_writes and lot.user_id != actor.id:
            logger.warning("User %s denied write access to lot %s", actor.id, lot.id)
            raise Forbidden()
