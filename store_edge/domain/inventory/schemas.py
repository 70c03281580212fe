# store_edge/domain/inventory/schemas.py
from typing import Optional

from pydantic import BaseModel, model_validator

from store_edge.db.models.enums import MovementType


class StockMovementCreate(BaseModel):
    product_id: str
    movement_type: MovementType
    quantity: int
    reference_number: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[str] = None

    @model_validator(mode="after")
    def check_quantity(self):
        if self.quantity == 0:
            raise ValueError("quantity must not be zero")
        # only adjustments carry a sign
        if self.movement_type != MovementType.ADJUSTMENT and self.quantity < 0:
            raise ValueError(f"quantity must be positive for {self.movement_type.value} movements")
        return self
