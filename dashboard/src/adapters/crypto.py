"""
CoinGecko adapter for BTC and ETH spot prices with 24h change.

No API key is needed. Cached for one minute.

CHANGELOG:
- 2026-10-06: Initial creation
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dashboard.src.state import TimedValue

logger = logging.getLogger(__name__)

PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"
CRYPTO_CACHE_TTL_S = 60.0
REQUEST_TIMEOUT_S = 10.0
COINS = {"btc": "bitcoin", "eth": "ethereum"}


def shape_prices(payload: dict[str, Any]) -> dict[str, Any]:
    """Reduce the CoinGecko payload to ``{symbol: {price, change24h}}``."""
    return {
        symbol: {
            "price": payload[coin]["usd"],
            "change24h": f"{payload[coin]['usd_24h_change']:.2f}",
        }
        for symbol, coin in COINS.items()
    }


class CryptoAdapter:
    """Cached CoinGecko client."""

    def __init__(
        self,
        *,
        cache: TimedValue[dict[str, Any]],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache = cache
        self._transport = transport

    async def get(self) -> dict[str, Any] | None:
        cached = self._cache.get(CRYPTO_CACHE_TTL_S)
        if cached is not None:
            return cached

        params = {
            "ids": ",".join(COINS.values()),
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        }
        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT_S, transport=self._transport
            ) as client:
                response = await client.get(PRICE_URL, params=params)
            response.raise_for_status()
            prices = shape_prices(response.json())
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            logger.error("Crypto API error: %s: %s", type(exc).__name__, exc)
            return None

        self._cache.set(prices)
        return prices
