from __future__ import annotations
from typing import Any, Dict

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.services.inventory_adjust_service import InventoryAdjustError, adjust_inventory


router = APIRouter(
    prefix="/inventory",
    tags=["inventory"],
)


# sku / quantity / mode are checked by the service so bad input answers 400
class AdjustBody(BaseModel):
    sku: str = ""
    quantity: int = 0
    mode: str = "add"


''' manual add/subtract on the first variant of a SKU '''
@router.post("/adjust")
def inventory_adjust(body: AdjustBody) -> Dict[str, Any]:
    try:
        return adjust_inventory(body.sku, body.quantity, body.mode)
    except InventoryAdjustError as e:
        detail: Dict[str, Any] = {"error": str(e)}
        if e.details is not None:
            detail["details"] = e.details
        raise HTTPException(status_code=e.status_code, detail=detail)
