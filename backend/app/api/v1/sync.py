''' Stock sync endpoints (one chunk, background drive, single-SKU diagnosis) '''

from __future__ import annotations
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict

from app.core.config import settings
from app.orchestration.stock_sync.chunk_orchestrator import run_sync_chunk
from app.orchestration.stock_sync.errors import UpstreamError
from app.orchestration.stock_sync.sku_debug import debug_sku
from app.orchestration.stock_sync.sync_task import start_full_sync
from app.utils.serialization import to_jsonable


router = APIRouter(
    prefix="/sync",
    tags=["sync"],
)


# range checks stay in the engine so bad values come back as success:false
class ChunkBody(BaseModel):
    offset: int = Field(0, description="first FINA product index of this chunk")
    limit: int = Field(default_factory=lambda: settings.SYNC_DEFAULT_LIMIT, description="products per chunk")


class DebugSkuBody(BaseModel):
    sku: str
    apply: bool = Field(False, description="write the corrections instead of only reporting them")

    @field_validator("sku")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("sku must not be empty")
        return v


#=================== chunk sync ==================== #

''' one chunk; caller drives the next one with nextOffset '''
@router.post("/chunk")
def sync_chunk(body: ChunkBody) -> JSONResponse:
    response = run_sync_chunk(body.offset, body.limit)
    content = to_jsonable(response.to_dict(preview=settings.SYNC_RESULTS_PREVIEW))

    if response.success:
        status_code = 200
    elif response.upstream_failure:
        status_code = 502
    elif response.internal_failure:
        status_code = 500
    else:
        status_code = 400
    return JSONResponse(status_code=status_code, content=content)


''' whole catalog in the background (Celery chain, or inline when SYNC_TASKS_INLINE) '''
@router.post("/start")
def sync_start(body: ChunkBody) -> Dict[str, Any]:
    if body.offset < 0 or body.limit <= 0:
        raise HTTPException(status_code=400, detail="offset must be >= 0 and limit > 0")
    return to_jsonable(start_full_sync(body.offset, body.limit))


''' single SKU: plan only, or plan + writes with apply=true '''
@router.post("/debug-sku")
def sync_debug_sku(body: DebugSkuBody) -> Dict[str, Any]:
    try:
        return to_jsonable(debug_sku(body.sku, apply=body.apply))
    except UpstreamError as e:
        raise HTTPException(
            status_code=502,
            detail={"error": "Debug failed", "source": e.source, "status": e.status, "details": str(e)},
        )
