"""
Async HTTPS client for the local energy gateway.

Logs in with the customer credential to obtain a session token, then reads
the aggregate meters and the battery state of energy in parallel. The
extended grid/operation status is read best-effort: if it fails, the
snapshot carries empty dicts and the fetch still succeeds.

The gateway serves a self-signed certificate, so TLS verification is off
for this client only. Every request is bounded by the configured timeout.

The gateway's login-then-query flow is not safe for concurrent sessions,
so :meth:`GatewayClient.fetch` holds a lock for the whole exchange: two
fetches against the same device never interleave.

Designed to be robust:

- Never raises to the caller; any failure returns ``None`` and is logged.
- No retry or backoff. The next scheduled poll is the retry.

CHANGELOG:
- 2026-10-11: Read grid_status and operation best-effort
- 2026-10-02: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LOGIN_PATH = "/api/login/Basic"
AGGREGATES_PATH = "/api/meters/aggregates"
SOE_PATH = "/api/system_status/soe"
GRID_STATUS_PATH = "/api/system_status/grid_status"
OPERATION_PATH = "/api/operation"

REQUIRED_CHANNELS = ("site", "battery", "load", "solar")
"""Meter channels that must be present in the aggregates payload."""


class GatewayError(Exception):
    """The gateway could not produce a complete snapshot."""


class GatewayAuthError(GatewayError):
    """The login exchange failed or returned no token."""


@dataclass(frozen=True)
class GatewaySnapshot:
    """Raw payloads from one successful gateway exchange.

    Attributes:
        aggregates: ``/api/meters/aggregates`` body keyed by channel
            (``site``, ``battery``, ``load``, ``solar``).
        soe: Battery state of energy percentage.
        grid_status: ``/api/system_status/grid_status`` body, or ``{}``.
        operation: ``/api/operation`` body, or ``{}``.
    """

    aggregates: dict[str, Any]
    soe: float
    grid_status: dict[str, Any] = field(default_factory=dict)
    operation: dict[str, Any] = field(default_factory=dict)


class GatewayClient:
    """Energy gateway client with a single in-flight exchange at a time.

    Args:
        host: Gateway IP address or hostname.
        password: Customer login password.
        username: Login user (default ``customer``).
        timeout_s: Timeout applied to every HTTP request.
        transport: Optional httpx transport, used by tests to stub the device.
    """

    def __init__(
        self,
        *,
        host: str,
        password: str,
        username: str = "customer",
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = f"https://{host}"
        self._username = username
        self._password = password
        self._timeout_s = timeout_s
        self._transport = transport
        self._lock = asyncio.Lock()

    async def fetch(self) -> GatewaySnapshot | None:
        """Log in and read one snapshot from the gateway.

        Returns:
            A :class:`GatewaySnapshot` on success, or ``None`` on any hard
            failure (login, primary reads, timeout, malformed payload).
        """
        async with self._lock:
            try:
                return await self._do_fetch()
            except GatewayAuthError as exc:
                logger.warning("Gateway login failed at %s: %s", self._base_url, exc)
            except (GatewayError, httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "Gateway fetch failed at %s: %s: %s",
                    self._base_url,
                    type(exc).__name__,
                    exc,
                )
            except Exception:
                logger.warning(
                    "Unexpected error during gateway fetch from %s",
                    self._base_url,
                    exc_info=True,
                )
            return None

    # ------------------------------------------------------------------
    # Internal exchange
    # ------------------------------------------------------------------

    async def _do_fetch(self) -> GatewaySnapshot:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            verify=False,
            timeout=self._timeout_s,
            transport=self._transport,
        ) as client:
            token = await self._login(client)
            headers = {"Cookie": f"AuthCookie={token}"}

            aggregates_res, soe_res = await asyncio.gather(
                client.get(AGGREGATES_PATH, headers=headers),
                client.get(SOE_PATH, headers=headers),
            )
            aggregates_res.raise_for_status()
            soe_res.raise_for_status()

            aggregates = aggregates_res.json()
            for channel in REQUIRED_CHANNELS:
                if not isinstance(aggregates.get(channel), dict):
                    raise GatewayError(f"aggregates payload missing '{channel}'")
            soe = float(soe_res.json()["percentage"])

            grid_status, operation = await asyncio.gather(
                self._read_optional(client, GRID_STATUS_PATH, headers),
                self._read_optional(client, OPERATION_PATH, headers),
            )

        return GatewaySnapshot(
            aggregates=aggregates,
            soe=soe,
            grid_status=grid_status,
            operation=operation,
        )

    async def _login(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            LOGIN_PATH,
            json={
                "username": self._username,
                "password": self._password,
                "force_sm_off": False,
            },
        )
        if response.status_code != 200:
            raise GatewayAuthError(f"HTTP {response.status_code}")
        token = response.json().get("token")
        if not token:
            raise GatewayAuthError("login response carried no token")
        return token

    async def _read_optional(
        self,
        client: httpx.AsyncClient,
        path: str,
        headers: dict[str, str],
    ) -> dict[str, Any]:
        """Read a secondary status document, returning ``{}`` on any failure."""
        try:
            response = await client.get(path, headers=headers)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Optional gateway read %s failed: %s", path, exc)
            return {}
        return body if isinstance(body, dict) else {}
