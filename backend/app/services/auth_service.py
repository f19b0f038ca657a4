import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from app.core.config import settings


def _configured_token() -> Optional[str]:
    token = settings.OPS_API_TOKEN
    if hasattr(token, "get_secret_value"):
        token = token.get_secret_value()
    return token or None


'''
Guard for the ops/sync routes
    - OPS_API_TOKEN unset -> open (local/dev)
    - otherwise X-Ops-Token must match, compared in constant time
'''
def require_ops_token(x_ops_token: str = Header(default="")) -> None:
    expected = _configured_token()
    if expected is None:
        return
    if not x_ops_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Ops-Token")
    if not hmac.compare_digest(x_ops_token.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid X-Ops-Token")
