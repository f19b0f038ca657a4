''' FINA passthrough endpoints for operators (read only) '''

from __future__ import annotations
import re
from datetime import datetime
from typing import Any, Dict, Iterator

from fastapi import APIRouter, Depends, HTTPException

from app.core.config import settings
from app.integrations.fina import FinaError, FinaOperationsAPI
from app.utils.serialization import to_jsonable


router = APIRouter(
    prefix="/fina",
    tags=["fina"],
)

_AFTER_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}$")


# one client (and token) per request; overridden in tests
def get_fina_api() -> Iterator[FinaOperationsAPI]:
    api = FinaOperationsAPI()
    try:
        yield api
    finally:
        api.http.close()


def _upstream_502(e: FinaError, what: str) -> HTTPException:
    return HTTPException(
        status_code=502,
        detail={"error": f"Failed to fetch {what} from FINA", "status": e.status, "details": str(e)},
    )


@router.get("/info")
def fina_info(api: FinaOperationsAPI = Depends(get_fina_api)) -> Dict[str, Any]:
    try:
        return {"success": True, "data": to_jsonable(api.fetch_api_info())}
    except FinaError as e:
        raise _upstream_502(e, "api info")


@router.get("/products")
def fina_products(api: FinaOperationsAPI = Depends(get_fina_api)) -> Dict[str, Any]:
    try:
        products = api.fetch_products()
    except FinaError as e:
        raise _upstream_502(e, "products")
    return {"success": True, "count": len(products), "products": to_jsonable(products)}


@router.get("/products/by-store/{store_id}")
def fina_products_by_store(store_id: int, api: FinaOperationsAPI = Depends(get_fina_api)) -> Dict[str, Any]:
    try:
        rows = api.fetch_store_rests(store_id)
    except FinaError as e:
        raise _upstream_502(e, f"stock for store {store_id}")
    return {"success": True, "storeId": store_id, "count": len(rows), "storeRest": to_jsonable(rows)}


''' products changed after a timestamp, format yyyy-MM-ddTHH:mm:ss '''
@router.get("/products/after/{after}")
def fina_products_after(after: str, api: FinaOperationsAPI = Depends(get_fina_api)) -> Dict[str, Any]:
    if not _AFTER_PATTERN.match(after):
        raise HTTPException(status_code=400, detail="Invalid date format, expected yyyy-MM-ddTHH:mm:ss")
    try:
        datetime.strptime(after, "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date value: {after}")
    try:
        return {"success": True, "after": after, "data": to_jsonable(api.fetch_products_after(after))}
    except FinaError as e:
        raise _upstream_502(e, "products after date")


@router.get("/customers")
def fina_customers(api: FinaOperationsAPI = Depends(get_fina_api)) -> Dict[str, Any]:
    try:
        return {"success": True, "data": to_jsonable(api.fetch_customers())}
    except FinaError as e:
        raise _upstream_502(e, "customers")


'''
FINA credentials check
    - every request gets a fresh client, so this always authenticates against FINA
    - the lifetime reported is that of the token just issued (FINA_TOKEN_TTL_SEC),
      not of a token held by a running sync; the token itself is never returned
'''
@router.get("/token-status")
def fina_token_status(api: FinaOperationsAPI = Depends(get_fina_api)) -> Dict[str, Any]:
    try:
        api.http.get_valid_token()
    except FinaError as e:
        raise _upstream_502(e, "a token")
    return {
        "success": True,
        "authenticated": True,
        "baseUrl": str(settings.FINA_BASE_URL),
        "tokenTtlSec": settings.FINA_TOKEN_TTL_SEC,
        **api.http.token_status(),
    }
