"""
api/routes/lots.py -- Lot CRUD routes for the Lot Market REST API.

Routes:
  POST   /api/lots            -- create a lot owned by the caller (201)
  GET    /api/lots[?own=true] -- list all lots, or only the caller's
  GET    /api/lots/{lot_id}   -- lot detail (404 if absent)
  PATCH  /api/lots/{lot_id}   -- partial update (404 if absent)
  DELETE /api/lots/{lot_id}   -- delete (204; 404 if absent)

Not-found, forbidden and invalid-transition cases are raised by LotService
as MarketplaceError subclasses; the handler in api/main.py turns them into
responses, so these handlers contain no status mapping of their own.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.models import LotCreate, LotResponse, LotUpdate
from auth.dependencies import get_current_user
from auth.models import User
from lots.models import Lot
from lots.service import LotService

# All lot routes require authentication.
# Router-level dependency applies to every route registered on this router;
# it runs before body validation, so unauthenticated requests get 401 even
# when their body is invalid.
router = APIRouter(dependencies=[Depends(get_current_user)])


def _lot_service(request: Request) -> LotService:
    return request.app.state.lot_service


@router.post("/lots", response_model=LotResponse, status_code=201)
def create_lot(
    request: Request,
    body: LotCreate,
    current_user: User = Depends(get_current_user),
) -> LotResponse:
    """Create a lot. The owner is always the authenticated caller."""
    lot = Lot(
        title=body.title,
        image=body.image,
        status=body.status.value,
        current_price=body.current_price,
        estimated_price=body.estimated_price,
        lot_start_time=body.lot_start_time.isoformat(),
        lot_end_time=body.lot_end_time.isoformat(),
        user_id=current_user.id,
    )
    created = _lot_service(request).create(lot, owner=current_user)
    return LotResponse.from_lot(created)


@router.get("/lots", response_model=list[LotResponse])
def list_lots(
    request: Request,
    own: bool = False,
    current_user: User = Depends(get_current_user),
) -> list[LotResponse]:
    """Return all lots, or only the caller's lots with ?own=true. Unpaginated."""
    lots = _lot_service(request).find_all(user=current_user, own=own)
    return [LotResponse.from_lot(lot) for lot in lots]


@router.get("/lots/{lot_id}", response_model=LotResponse)
def get_lot(request: Request, lot_id: str) -> LotResponse:
    return LotResponse.from_lot(_lot_service(request).find_one(lot_id))


@router.patch("/lots/{lot_id}", response_model=LotResponse)
def update_lot(
    request: Request,
    lot_id: str,
    body: Optional[LotUpdate] = None,
    current_user: User = Depends(get_current_user),
) -> LotResponse:
    """Overwrite only the supplied fields. An empty or missing body changes nothing."""
    changes = body.changes() if body is not None else {}
    updated = _lot_service(request).update(lot_id, changes, actor=current_user)
    return LotResponse.from_lot(updated)


@router.delete("/lots/{lot_id}", status_code=204)
def delete_lot(
    request: Request,
    lot_id: str,
    current_user: User = Depends(get_current_user),
) -> Response:
    _lot_service(request).remove(lot_id, actor=current_user)
    return Response(status_code=204)
