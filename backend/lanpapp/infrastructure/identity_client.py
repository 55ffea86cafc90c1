"""Identity Client — verifies bearer tokens against the hosted identity provider.

Invariants:
    - 401/403 from the provider: UnauthorizedError, no retry
    - Transient errors (5xx, connection, timeout): retried with exponential backoff
    - Exhausted retries: IdentityProviderError (503), never UnauthorizedError
    - Rate limits (429): respects Retry-After header

Design Decisions:
    - httpx.AsyncClient owned by the instance, closed on app shutdown
    - ±25% jitter on backoff: prevents thundering herd against the provider
"""

import asyncio
import logging
import random
from uuid import UUID

import httpx

from lanpapp.core.errors import IdentityProviderError, UnauthorizedError

logger = logging.getLogger(__name__)

_TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})


class IdentityClient:
    """IdentityProvider backed by the provider's `GET /auth/v1/user` endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: int = 10,
        max_retries: int = 2,
        base_delay_ms: int = 200,
        max_delay_ms: int = 2_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"apikey": api_key},
            timeout=timeout_seconds,
            transport=transport,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def verify(self, token: str) -> UUID:
        """Return the principal's user id for a valid token."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.get(
                    "/auth/v1/user",
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as e:
                await self._handle_transient_error(str(e), attempt, None)
                continue

            if response.status_code in (400, 401, 403, 404):
                raise UnauthorizedError("Invalid or expired token")
            if response.status_code in _TRANSIENT_STATUSES:
                await self._handle_transient_error(
                    f"HTTP {response.status_code}", attempt,
                    self._extract_retry_after(response),
                )
                continue
            if response.is_error:
                raise IdentityProviderError(f"HTTP {response.status_code}")

            return self._parse_user_id(response)

        # Unreachable: the last attempt raises from _handle_transient_error
        raise IdentityProviderError("Identity provider unavailable")

    async def aclose(self) -> None:
        await self.client.aclose()

    def _parse_user_id(self, response: httpx.Response) -> UUID:
        try:
            return UUID(str(response.json()["id"]))
        except (ValueError, KeyError, TypeError):
            raise UnauthorizedError("Invalid or expired token")

    async def _handle_transient_error(
        self, reason: str, attempt: int, retry_after_ms: int | None,
    ) -> None:
        """Sleep before the next attempt, or raise once retries are exhausted."""
        if attempt >= self.max_retries:
            raise IdentityProviderError(
                f"Transient failure after {self.max_retries} retries: {reason}",
                retry_after_ms=retry_after_ms,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Identity provider error, retry after {delay}ms: {reason}",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None


# Singleton (initialized on startup)
identity_client: IdentityClient | None = None


def init_identity(base_url: str, api_key: str, **kwargs) -> None:
    global identity_client
    identity_client = IdentityClient(base_url, api_key, **kwargs)


async def close_identity() -> None:
    global identity_client
    if identity_client is not None:
        await identity_client.aclose()
        identity_client = None
