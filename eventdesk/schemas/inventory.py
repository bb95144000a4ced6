"""Inventory Schemas: item CRUD and allocation requests."""

from pydantic import BaseModel, ConfigDict, Field


class InventoryItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    total_quantity: int = Field(ge=0)
    description: str = Field("", max_length=2000)


class InventoryItemUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    total_quantity: int | None = Field(None, ge=0)
    description: str | None = Field(None, max_length=2000)


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    total_quantity: int
    allocated_quantity: int
    available_quantity: int
    description: str


class AllocationRequest(BaseModel):
    item_id: int = Field(ge=1)
    quantity: int = Field(gt=0)


class AllocationResponse(BaseModel):
    """requested vs actual differ only when a deallocation asked for more than was held."""
    model_config = ConfigDict(from_attributes=True)

    requested: int
    actual: int
    item: InventoryItemResponse
    event_allocation: int
