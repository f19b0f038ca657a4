# health probe (no upstream calls)

from fastapi import APIRouter
from app.core.config import settings

router = APIRouter(tags=["health"])

@router.get("/health")
def health():
    return {
        "status": "ok",
        "fina_configured": bool(settings.FINA_LOGIN and settings.FINA_PASSWORD),
        "shopify_configured": bool(settings.SHOPIFY_SHOP and settings.SHOPIFY_ADMIN_TOKEN),
    }
