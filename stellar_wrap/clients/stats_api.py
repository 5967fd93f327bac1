"""Usage statistics client for the Stellar Wrapped indexer API."""

import logging
from decimal import Decimal
from typing import Any

import httpx

from stellar_wrap.models import UsageStats

logger = logging.getLogger(__name__)


class StatsApiClient:
    """Fetch yearly usage statistics for an account."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        client = await self._get_client()
        response = await client.get(endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch(self, account_id: str, network: str, period: str) -> UsageStats:
        """
        Fetch usage statistics.

        Args:
            account_id: Stellar account (G...)
            network: "mainnet" or "testnet"
            period: Aggregation period (e.g., "1y")

        Returns:
            UsageStats for the period
        """
        data = await self._request(
            f"/accounts/{account_id}/stats",
            {"network": network, "period": period},
        )
        return UsageStats(
            total_volume=Decimal(str(data.get("totalVolume", 0))),
            most_active_asset=data.get("mostActiveAsset") or "XLM",
            contract_calls=int(data.get("contractCalls", 0)),
        )
