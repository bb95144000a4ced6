"""Inventory Routes: item CRUD (admin only).

Invariants:
    - total_quantity can never drop below what is already allocated (400)
    - DELETE strips the item from every event before removing it
"""

from fastapi import APIRouter, Depends, status

from eventdesk.api.deps import get_desk, get_identity
from eventdesk.core.entities import Identity
from eventdesk.schemas.inventory import (
    InventoryItemCreate, InventoryItemResponse, InventoryItemUpdate,
)
from eventdesk.services.event_desk import EventDesk

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])


@router.get("", response_model=list[InventoryItemResponse])
def list_inventory(
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return [InventoryItemResponse.model_validate(i) for i in desk.list_inventory(identity)]


@router.post(
    "", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED,
)
def create_item(
    body: InventoryItemCreate,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    item = desk.create_inventory_item(
        identity, body.name, body.total_quantity, body.description,
    )
    return InventoryItemResponse.model_validate(item)


@router.get("/{item_id}", response_model=InventoryItemResponse)
def get_item(
    item_id: int,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return InventoryItemResponse.model_validate(desk.get_inventory_item(identity, item_id))


@router.patch("/{item_id}", response_model=InventoryItemResponse)
def update_item(
    item_id: int,
    body: InventoryItemUpdate,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    item = desk.update_inventory_item(identity, item_id, **body.model_dump())
    return InventoryItemResponse.model_validate(item)


@router.delete("/{item_id}")
def delete_item(
    item_id: int,
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    released = desk.delete_inventory_item(identity, item_id)
    return {"deleted": item_id, "released": released}
