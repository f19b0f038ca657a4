from fastapi import APIRouter, Depends
from app.services.auth_service import require_ops_token


# open routes
from .routes_health import router as health_router


# routes guarded by X-Ops-Token
from .sync import router as sync_router
from .inventory import router as inventory_router
from .fina_ops import router as fina_router


api_v1 = APIRouter()
api_v1.include_router(health_router)      # /health stays open

# --- ops token required ---
protected = APIRouter(dependencies=[Depends(require_ops_token)])

protected.include_router(sync_router)
protected.include_router(inventory_router)
protected.include_router(fina_router)

api_v1.include_router(protected)
