"""
Low-level FINA HTTP client: auth / token cache / 401 refresh
  - exchanges login+password for a bearer token and keeps it on the instance;
  - refreshes once on 401 and replays the request;
  - optional exponential backoff for 429/5xx/network errors (FINA_HTTP_RETRIES, default 0);
  - exposes get_json only, knows nothing about business fields.
"""

from __future__ import annotations
import json, logging, random, threading, time
import requests
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urljoin

from app.core.config import settings
from app.integrations.fina.errors import (
    FinaAuthError, FinaClientError, FinaServerError, FinaPayloadError
)

logger = logging.getLogger(__name__)


@dataclass
class _Token:
    value: str
    expires_at: datetime  # UTC

def _now_utc() -> datetime:
    """Current UTC time, used for token expiry checks."""
    return datetime.now(timezone.utc)


def _secret(value: Any) -> Optional[str]:
    if hasattr(value, "get_secret_value"):
        return value.get_secret_value()
    return value


class FinaHttpClient:
    """Low-level client for the FINA web API: owns the token, handles auth and status mapping."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        login: Optional[str] = None,
        password: Optional[str] = None,
        connect_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
        token_ttl_sec: Optional[int] = None,
        max_retries: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Overrides exist for tests and multi-account setups; defaults come from settings."""
        self.base_url = (base_url or str(settings.FINA_BASE_URL)).rstrip("/") + "/"
        self.login = login or settings.FINA_LOGIN
        self.password = password or _secret(settings.FINA_PASSWORD)
        self.connect_timeout = connect_timeout or settings.FINA_CONNECT_TIMEOUT
        self.read_timeout = read_timeout or settings.FINA_READ_TIMEOUT
        self.token_ttl_sec = token_ttl_sec or settings.FINA_TOKEN_TTL_SEC
        self.max_retries = settings.FINA_HTTP_RETRIES if max_retries is None else max(0, int(max_retries))

        self._session = session or requests.Session()
        self._token: Optional[_Token] = None
        self._token_lock = threading.Lock()


    # ---------- Public ----------
    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        """GET and return parsed JSON, with auth and status mapping."""
        resp = self._request("GET", path, params=params, **kwargs)
        return self._as_json(resp)


    def get_valid_token(self) -> str:
        """Return a non-expired token, authenticating when needed. Raises FinaAuthError."""
        self._ensure_token()
        return self._token.value  # type: ignore[union-attr]


    def refresh_token(self) -> str:
        """Drop the cached token and authenticate again."""
        logger.info("FINA forcing token refresh")
        self._authenticate(force=True)
        return self._token.value  # type: ignore[union-attr]


    def token_status(self) -> Dict[str, Any]:
        token = self._token
        now = _now_utc()
        if token is None:
            return {"has_token": False, "is_valid": False, "expires_at": None, "seconds_until_expiry": 0}
        return {
            "has_token": True,
            "is_valid": now < token.expires_at,
            "expires_at": token.expires_at.isoformat(),
            "seconds_until_expiry": max(0, int((token.expires_at - now).total_seconds())),
        }


    def close(self) -> None:
        self._session.close()


    # ---------- Internals ----------
    def _as_json(self, resp: requests.Response) -> Any:
        """Parse response JSON; on failure raise FinaPayloadError with a truncated body."""
        try:
            return resp.json()
        except ValueError as e:
            text = (resp.text or "")[:500]
            raise FinaPayloadError(
                f"non-JSON response (status={resp.status_code}): {text}",
                status=resp.status_code, body=text,
            ) from e


    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """One logical HTTP call: token, optional retries and status-code mapping."""

        # 1) make sure the token exists and has not expired (compared in UTC)
        self._ensure_token()

        # 2) build the request
        url = urljoin(self.base_url, path.lstrip("/"))
        headers = kwargs.pop("headers", {}) or {}
        headers.setdefault("Accept", "application/json")
        headers.setdefault("Content-Type", "application/json")
        headers["Authorization"] = f"Bearer {self._token.value}"  # type: ignore[union-attr]

        timeout = kwargs.pop("timeout", (self.connect_timeout, self.read_timeout))

        max_attempts = self.max_retries + 1
        already_refreshed = False
        attempt = 0

        while attempt < max_attempts:
            attempt += 1
            start = time.perf_counter()
            try:
                resp = self._session.request(method, url, headers=headers, timeout=timeout, **kwargs)
            except requests.RequestException as e:
                # error1: connection / timeout
                if attempt >= max_attempts:
                    raise FinaClientError(f"request error: {e}") from e
                self._sleep_backoff(attempt)
                continue

            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.debug("FINA response: %s %s -> %s latency_ms=%s", method, url, resp.status_code, latency_ms)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("FINA response body: %s", (resp.text or "")[:1000])

            # error2: 401 -> refresh once and replay (does not consume an attempt)
            if resp.status_code == 401 and not already_refreshed:
                logger.info("FINA 401 received, refreshing token once.")
                self._authenticate(force=True)
                headers["Authorization"] = f"Bearer {self._token.value}"  # type: ignore[union-attr]
                already_refreshed = True
                attempt -= 1
                continue

            snippet = (resp.text or "")[:300]

            # 429 / 5xx: back off when retries are configured
            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt < max_attempts:
                    self._sleep_backoff(attempt)
                    continue
                if resp.status_code == 429:
                    raise FinaClientError(f"429 rate limited: {snippet}", status=429, body=snippet)
                raise FinaServerError(f"{resp.status_code} server error: {snippet}", status=resp.status_code, body=snippet)

            if resp.status_code == 401:
                raise FinaAuthError(f"401 after token refresh: {snippet}", status=401, body=snippet)

            # other 4xx -> FinaClientError for the layer above
            if 400 <= resp.status_code < 500:
                raise FinaClientError(f"{resp.status_code} client error: {snippet}", status=resp.status_code, body=snippet)

            return resp

        # unreachable: every branch above returns, continues or raises
        raise FinaClientError("unreachable retry loop")


    # ---------- Helpers ----------
    # exponential backoff capped at 30s plus 0~25% jitter
    def _sleep_backoff(self, attempt: int) -> None:
        base = min(2 ** attempt, 30)
        jitter = random.uniform(0, 0.25 * base)
        time.sleep(base + jitter)


    def _ensure_token(self) -> None:
        """Make sure a token exists and is not expired before sending a request."""
        with self._token_lock:
            if self._token is None or _now_utc() >= self._token.expires_at:
                self._authenticate_locked()


    def _authenticate(self, force: bool = False) -> None:
        with self._token_lock:
            if self._token and not force and _now_utc() < self._token.expires_at:
                return
            self._authenticate_locked()


    def _authenticate_locked(self) -> None:
        """Call the authenticate endpoint and cache the new token; caller holds the lock."""
        if not self.login or not self.password:
            raise FinaAuthError("FINA_LOGIN and FINA_PASSWORD must be set")

        url = urljoin(self.base_url, settings.FINA_AUTH_ENDPOINT.lstrip("/"))
        body = {"login": self.login, "password": self.password}
        headers = {"Accept": "application/json", "Content-Type": "application/json"}

        try:
            resp = self._session.post(url, json=body, headers=headers, timeout=(self.connect_timeout, self.read_timeout))
        except requests.RequestException as e:
            raise FinaAuthError(f"authenticate request error: {e}") from e

        if resp.status_code >= 400:
            snippet = (resp.text or "")[:300]
            raise FinaAuthError(f"authenticate failed: {resp.status_code} {snippet}", status=resp.status_code, body=snippet)

        try:
            data = resp.json()
        except ValueError as e:
            raise FinaAuthError(f"authenticate non-JSON response: {e}", status=resp.status_code) from e

        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise FinaAuthError(f"authenticate response missing token: {json.dumps(data)[:200]}")

        expires_at = _now_utc() + timedelta(seconds=self.token_ttl_sec)
        self._token = _Token(value=token, expires_at=expires_at)
        logger.info("FINA authenticated; token expires at %s", expires_at.isoformat())
