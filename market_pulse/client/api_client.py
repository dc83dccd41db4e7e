"""
MARKET PULSE — Price API Client
aiohttp client for the /prices/* endpoints, used by the polling layer.
"""
import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from market_pulse.config.settings import ClientSettings, get_settings
from market_pulse.utils.logger import get_logger

logger = get_logger("api_client")


class MarketApiClient:
    """
    Fetches envelopes from the price endpoints.

    Each call returns the decoded JSON body, or None when the endpoint itself
    was unreachable or answered with a non-OK status. Envelopes with
    success=false are returned as-is; interpreting them is the caller's job.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or get_settings().client
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.request_timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def connect(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "MarketApiClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Optional[Dict[str, Any]]:
        try:
            await self.connect()
            async with self._session.get(f"{self.base_url}{path}", params=params or {}) as resp:
                if resp.status != 200:
                    logger.warning("price_endpoint_error", path=path, status=resp.status)
                    return None
                body = await resp.json(content_type=None)
            if not isinstance(body, dict):
                logger.warning("price_endpoint_bad_body", path=path)
                return None
            return body
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("price_endpoint_unreachable", path=path, error=str(e) or type(e).__name__)
            return None

    async def get_crypto(
        self,
        ids: Optional[List[str]] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Optional[Dict[str, Any]]:
        params: Dict[str, str] = {}
        if ids:
            params["ids"] = ",".join(ids)
        if page is not None:
            params["page"] = str(page)
        if per_page is not None:
            params["per_page"] = str(per_page)
        return await self._get_json("/prices/crypto", params)

    async def get_forex(self) -> Optional[Dict[str, Any]]:
        return await self._get_json("/prices/forex")

    async def get_ticker(self, symbol: str) -> Optional[Dict[str, Any]]:
        return await self._get_json("/prices/ticker", {"symbol": symbol})
