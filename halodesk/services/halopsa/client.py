from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from halodesk.core.config import Settings, get_settings
from halodesk.core.logging import log_error, log_info
from halodesk.services.halopsa.errors import (
    APIError,
    AuthenticationError,
    HaloConfigurationError,
    NotFoundError,
    RateLimitError,
)

TOKEN_EXPIRY_BUFFER = timedelta(seconds=60)
DEFAULT_TOKEN_LIFETIME = 3600

QueryParams = Mapping[str, Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Credentials and location of a single HaloPSA instance."""

    base_url: str
    client_id: str
    client_secret: str = field(repr=False)
    tenant: str | None = None


@dataclass(slots=True)
class TokenState:
    """Bearer token cached by one client instance."""

    access_token: str | None = None
    expires_at: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        if not self.access_token or self.expires_at is None:
            return False
        current = now or _utcnow()
        return current < self.expires_at - TOKEN_EXPIRY_BUFFER

    def refresh(
        self,
        access_token: str,
        expires_in: int | float | None,
        now: datetime | None = None,
    ) -> str:
        lifetime = float(expires_in or DEFAULT_TOKEN_LIFETIME)
        self.expires_at = (now or _utcnow()) + timedelta(seconds=lifetime)
        self.access_token = access_token
        return access_token

    def clear(self) -> None:
        self.access_token = None
        self.expires_at = None


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _build_query(params: QueryParams | None) -> str:
    if not params:
        return ""
    pairs = [(key, _stringify(value)) for key, value in params.items() if value is not None]
    return urlencode(pairs)


def _parse_retry_after(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(float(value.strip()))
    except (OverflowError, ValueError):
        return None


class HaloPSAClient:
    """HTTP client for one HaloPSA connection.

    The client owns its token cache. Every request authenticates first, so an
    expired token is replaced transparently. Concurrent callers that observe an
    expired token at the same moment may each run the token exchange; the auth
    endpoint tolerates repeated calls so no lock is taken.
    """

    def __init__(self, config: ConnectionConfig, *, timeout: float = 30.0) -> None:
        self.config = config
        self.timeout = timeout
        self.token = TokenState()

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api"

    @property
    def auth_url(self) -> str:
        if self.config.tenant:
            return f"{self.base_url}/auth/token?{urlencode({'tenant': self.config.tenant})}"
        return f"{self.base_url}/auth/token"

    def is_token_valid(self, now: datetime | None = None) -> bool:
        return self.token.is_valid(now)

    async def authenticate(self) -> str:
        if self.token.is_valid():
            return self.token.access_token  # type: ignore[return-value]

        form = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "scope": "all",
        }
        log_info("Requesting HaloPSA access token", url=self.auth_url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(
                    "POST",
                    self.auth_url,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    data=form,
                )
            except httpx.HTTPError as exc:
                log_error("HaloPSA token request failed", url=self.auth_url, error=str(exc))
                raise AuthenticationError(f"Authentication failed: {exc}") from exc

        if not response.is_success:
            log_error(
                "HaloPSA rejected client credentials",
                url=self.auth_url,
                status=response.status_code,
            )
            raise AuthenticationError(f"Authentication failed: {response.text}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthenticationError("Authentication failed: token response was not JSON") from exc
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise AuthenticationError("Authentication failed: token response had no access_token")
        try:
            return self.token.refresh(str(access_token), payload.get("expires_in"))
        except (OverflowError, TypeError, ValueError) as exc:
            raise AuthenticationError(
                f"Authentication failed: unusable expires_in {payload.get('expires_in')!r}"
            ) from exc

    def clear_token(self) -> None:
        self.token.clear()

    async def get(self, endpoint: str, params: QueryParams | None = None) -> Any:
        response = await self._request("GET", endpoint, params=params)
        return self._decode(endpoint, response)

    async def post(
        self,
        endpoint: str,
        data: Any | None = None,
        params: QueryParams | None = None,
    ) -> Any:
        response = await self._request("POST", endpoint, params=params, body=data)
        return self._decode(endpoint, response)

    async def delete(self, endpoint: str, params: QueryParams | None = None) -> Any | None:
        response = await self._request("DELETE", endpoint, params=params)
        if not response.text:
            return None
        return self._decode(endpoint, response)

    async def test_connection(self) -> bool:
        """Confirm the credentials work and the API itself answers."""

        await self.authenticate()
        await self.get("/Agent", {"count": 1})
        return True

    def build_url(self, endpoint: str, params: QueryParams | None = None) -> str:
        url = f"{self.api_url}{endpoint}"
        query = _build_query(params)
        if query:
            url = f"{url}?{query}"
        return url

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: QueryParams | None = None,
        body: Any | None = None,
    ) -> httpx.Response:
        token = await self.authenticate()
        url = self.build_url(endpoint, params)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        log_info("Calling HaloPSA API", method=method, url=url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(method, url, headers=headers, json=body)
            except httpx.HTTPError as exc:
                log_error("HaloPSA API request failed", method=method, url=url, error=str(exc))
                raise APIError(f"{method} {endpoint} failed: {exc}") from exc
        if not response.is_success:
            self._raise_for_response(method, endpoint, response)
        return response

    def _raise_for_response(self, method: str, endpoint: str, response: httpx.Response) -> None:
        text = response.text
        log_error(
            "HaloPSA API responded with error",
            method=method,
            endpoint=endpoint,
            status=response.status_code,
        )
        message = f"{method} {endpoint} failed: {text}"
        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise RateLimitError(message, _parse_retry_after(response.headers.get("Retry-After")))
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(endpoint)
        raise APIError(message, status_code=response.status_code, response=text)

    @staticmethod
    def _decode(endpoint: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise APIError(
                f"{endpoint} returned a non-JSON body",
                status_code=response.status_code,
                response=response.text,
            ) from exc


def load_connection_config(settings: Settings | None = None) -> ConnectionConfig:
    settings = settings or get_settings()
    base_url = str(settings.halo_base_url or "").strip().rstrip("/")
    if not base_url:
        raise HaloConfigurationError("HaloPSA base URL is not configured")
    client_id = str(settings.halo_client_id or "").strip()
    client_secret = str(settings.halo_client_secret or "").strip()
    if not client_id or not client_secret:
        raise HaloConfigurationError("HaloPSA client credentials are not configured")
    return ConnectionConfig(
        base_url=base_url,
        client_id=client_id,
        client_secret=client_secret,
        tenant=settings.halo_tenant,
    )


def create_halo_client(
    config: ConnectionConfig | None = None,
    *,
    settings: Settings | None = None,
) -> HaloPSAClient:
    settings = settings or get_settings()
    return HaloPSAClient(
        config or load_connection_config(settings),
        timeout=settings.halo_request_timeout,
    )
