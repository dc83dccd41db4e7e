"""
MARKET PULSE — Base Data Adapter Interface
All upstream price adapters share this session/timeout/header plumbing.
"""
from typing import Optional, Dict

import aiohttp

from market_pulse.data.models import DataSource
from market_pulse.utils.logger import get_logger

logger = get_logger("adapters")

JSON_ACCEPT = "application/json"
CSV_ACCEPT = "text/csv, text/plain;q=0.9, */*;q=0.1"


class BaseDataAdapter:
    """
    Base class for all market data adapters.

    An adapter talks to exactly one upstream API. Its public fetch methods
    return a normalized result or None and never raise: transport errors,
    timeouts and unexpected payloads are logged and swallowed at this boundary.
    No retries happen here; the next poll cycle is the retry.

    The HTTP session is either injected by the owner (shared across adapters,
    never closed here) or created lazily on first use and closed by disconnect().
    """

    def __init__(
        self,
        source: DataSource,
        base_url: str,
        timeout_seconds: float,
        user_agent: str,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.source = source
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    async def connect(self) -> None:
        """Initialize an owned session if none was injected."""
        if self._session is not None and not self._session.closed:
            return
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        self._session = aiohttp.ClientSession(timeout=timeout)
        self._owns_session = True
        logger.info("adapter_connected", source=self.source.value)

    async def disconnect(self) -> None:
        """Close the session, but only if this adapter created it."""
        if self._session and self._owns_session:
            await self._session.close()
            logger.info("adapter_disconnected", source=self.source.value)
        if self._owns_session:
            self._session = None

    async def __aenter__(self) -> "BaseDataAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            await self.connect()
        return self._session

    def _headers(self, accept: str = JSON_ACCEPT) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.9",
        }

    def _timeout(self, seconds: Optional[float] = None) -> aiohttp.ClientTimeout:
        """Per-request hard timeout; a caller override may only shorten the default."""
        total = self.timeout_seconds
        if seconds is not None and 0 < seconds < total:
            total = seconds
        return aiohttp.ClientTimeout(total=total)


def describe_error(exc: BaseException) -> str:
    """Timeouts stringify to an empty message; fall back to the exception type."""
    return str(exc) or type(exc).__name__
