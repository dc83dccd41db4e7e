"""
MARKET PULSE — Test Doubles
In-process stand-ins for adapters, the price API client and the upstream HTTP
providers.
"""
import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

from aiohttp import web

from market_pulse.data.models import AssetRecord, DataSource, PriceQuote


def make_asset(coin_id: str, rank: int, price: float = 100.0, change: float = 0.0) -> Dict[str, Any]:
    return {
        "id": coin_id,
        "symbol": coin_id[:3],
        "name": coin_id.title(),
        "image": f"https://img.example/{coin_id}.png",
        "current_price": price,
        "price_change_percentage_24h": change,
        "market_cap": 1_000_000.0 / rank,
        "total_volume": 5000.0,
        "market_cap_rank": rank,
        "high_24h": price * 1.01,
        "low_24h": price * 0.99,
        "circulating_supply": 21_000_000.0,
    }


def make_assets(count: int, prefix: str = "coin", start_rank: int = 1) -> List[Dict[str, Any]]:
    return [make_asset(f"{prefix}-{i}", start_rank + i) for i in range(count)]


class StubQuoteAdapter:
    """Quote adapter driven by a {symbol: (price, change)} table."""

    def __init__(
        self,
        quotes: Dict[str, Tuple[float, float]],
        source: DataSource = DataSource.STOOQ,
        failing: Iterable[str] = (),
        raising: Iterable[str] = (),
        delay: float = 0.0,
    ):
        self.quotes = dict(quotes)
        self.source = source
        self.failing = set(failing)
        self.raising = set(raising)
        self.delay = delay
        self.calls: List[str] = []
        self.timeouts: List[Optional[float]] = []

    async def get_quote(self, symbol: str, timeout: Optional[float] = None) -> Optional[PriceQuote]:
        self.calls.append(symbol)
        self.timeouts.append(timeout)
        if self.delay:
            await asyncio.sleep(self.delay)
        if symbol in self.raising:
            raise RuntimeError(f"adapter blew up for {symbol}")
        if symbol in self.failing or symbol not in self.quotes:
            return None
        price, change = self.quotes[symbol]
        return PriceQuote(symbol=symbol, price=price, change=change, source=self.source)


class StubMarketAdapter:
    """Market-list adapter paging over a fixed list of rows."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, fail: bool = False, raise_error: bool = False):
        self.rows = [AssetRecord.model_validate(r) for r in (rows or [])]
        self.fail = fail
        self.raise_error = raise_error
        self.calls: List[Dict[str, Any]] = []

    async def get_markets(self, page=1, per_page=100, ids=None, timeout=None):
        self.calls.append({"page": page, "per_page": per_page, "ids": ids, "timeout": timeout})
        if self.raise_error:
            raise RuntimeError("listing exploded")
        if self.fail:
            return None
        rows = self.rows
        if ids:
            rows = [r for r in rows if r.id in ids]
        start = (page - 1) * per_page
        return rows[start:start + per_page]


class StubPriceApi:
    """Price API client returning scripted envelopes (None = endpoint unreachable)."""

    def __init__(self, crypto: Any = None, forex: Any = None):
        self.crypto_responses = list(crypto) if isinstance(crypto, list) else [crypto]
        self.forex_responses = list(forex) if isinstance(forex, list) else [forex]
        self.crypto_calls: List[Dict[str, Any]] = []
        self.forex_calls = 0
        self.crypto_gate: Optional[asyncio.Event] = None

    @staticmethod
    def _next(responses: List[Any]) -> Any:
        return responses.pop(0) if len(responses) > 1 else responses[0]

    async def get_crypto(self, ids=None, page=None, per_page=None):
        self.crypto_calls.append({"ids": ids, "page": page, "per_page": per_page})
        gate = self.crypto_gate
        response = self._next(self.crypto_responses)
        if gate is not None:
            await gate.wait()
        if callable(response):
            return response(page=page, per_page=per_page, ids=ids)
        return response

    async def get_forex(self):
        self.forex_calls += 1
        return self._next(self.forex_responses)


STOOQ_HEADER = "Symbol,Date,Time,Open,High,Low,Close,Volume"


class FakeUpstream:
    """
    One aiohttp app impersonating CoinGecko, Binance, Stooq and Yahoo.

    `modes` switches a provider ("coingecko", "binance_price", "binance_stats",
    "stooq", "yahoo") into "error" (HTTP 500), "timeout" (sleeps past the
    client timeout), "malformed" (unparseable body) or "html" (wrong content
    type). `failing_symbols` makes single upstream symbols answer 500.
    """

    def __init__(self):
        self.modes: Dict[str, str] = {}
        self.failing_symbols = set()
        self.delay = 1.0
        self.requests: List[Tuple[str, Dict[str, str]]] = []
        self.user_agents: List[Optional[str]] = []
        self.base_url = ""
        self.stooq_rows: Dict[str, Tuple[float, float]] = {
            "eurusd": (1.0800, 1.085432),
            "gbpusd": (1.2600, 1.26789),
            "usdjpy": (150.00, 151.2345),
            "xauusd": (2000.00, 2020.456),
            "xagusd": (25.000, 25.12345),
            "cl.f": (70.00, 69.3012),
        }
        self.yahoo_meta: Dict[str, Dict[str, float]] = {
            "AAPL": {"regularMarketPrice": 227.5, "chartPreviousClose": 220.0},
            "MSFT": {"regularMarketPrice": 410.123, "chartPreviousClose": 400.0},
            "TSLA": {"regularMarketPrice": 250.0, "previousClose": 260.0},
            "NVDA": {"regularMarketPrice": 900.456, "chartPreviousClose": 880.0},
        }
        self.markets = make_assets(120)
        self.binance = {"BTCUSDT": ("64000.50", "2.35")}

    async def _failure(self, provider: str, symbol: Optional[str] = None) -> Optional[web.Response]:
        if symbol is not None and symbol in self.failing_symbols:
            return web.Response(status=500, text="upstream error")
        mode = self.modes.get(provider)
        if mode == "error":
            return web.Response(status=500, text="upstream error")
        if mode == "timeout":
            await asyncio.sleep(self.delay)
        if mode == "malformed":
            return web.Response(text="{not json", content_type="application/json")
        if mode == "html":
            return web.Response(text="<html>rate limited</html>", content_type="text/html")
        return None

    async def stooq(self, request: web.Request) -> web.Response:
        symbol = request.query.get("s", "")
        self.requests.append(("stooq", dict(request.query)))
        self.user_agents.append(request.headers.get("User-Agent"))
        if self.modes.get("stooq") == "malformed":
            return web.Response(text="No data", content_type="text/csv")
        failure = await self._failure("stooq", symbol)
        if failure is not None:
            return failure
        if symbol not in self.stooq_rows:
            return web.Response(text=f"{STOOQ_HEADER}\n{symbol.upper()},N/D,N/D,N/D,N/D,N/D,N/D,N/D", content_type="text/csv")
        open_, close = self.stooq_rows[symbol]
        body = f"{STOOQ_HEADER}\n{symbol.upper()},2024-01-01,12:00:00,{open_},{close},{open_},{close},1000\n"
        return web.Response(text=body, content_type="text/csv")

    async def yahoo(self, request: web.Request) -> web.Response:
        symbol = request.match_info["symbol"]
        self.requests.append(("yahoo", {"symbol": symbol, **request.query}))
        failure = await self._failure("yahoo", symbol)
        if failure is not None:
            return failure
        meta = self.yahoo_meta.get(symbol)
        if meta is None:
            return web.json_response({"chart": {"result": None, "error": {"code": "Not Found"}}})
        return web.json_response({"chart": {"result": [{"meta": meta}]}})

    async def coingecko(self, request: web.Request) -> web.Response:
        self.requests.append(("coingecko", dict(request.query)))
        failure = await self._failure("coingecko")
        if failure is not None:
            return failure
        page = int(request.query.get("page", "1"))
        per_page = int(request.query.get("per_page", "100"))
        rows = self.markets
        ids = request.query.get("ids")
        if ids:
            wanted = ids.split(",")
            rows = [r for r in rows if r["id"] in wanted]
        start = (page - 1) * per_page
        return web.Response(text=json.dumps(rows[start:start + per_page]), content_type="application/json")

    async def binance_price(self, request: web.Request) -> web.Response:
        symbol = request.query.get("symbol", "")
        self.requests.append(("binance_price", dict(request.query)))
        failure = await self._failure("binance_price", symbol)
        if failure is not None:
            return failure
        if symbol not in self.binance:
            return web.json_response({"code": -1121, "msg": "Invalid symbol."}, status=400)
        return web.json_response({"symbol": symbol, "price": self.binance[symbol][0]})

    async def binance_stats(self, request: web.Request) -> web.Response:
        symbol = request.query.get("symbol", "")
        self.requests.append(("binance_stats", dict(request.query)))
        failure = await self._failure("binance_stats", symbol)
        if failure is not None:
            return failure
        if symbol not in self.binance:
            return web.json_response({"code": -1121, "msg": "Invalid symbol."}, status=400)
        return web.json_response({"symbol": symbol, "priceChangePercent": self.binance[symbol][1]})

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/q/l/", self.stooq)
        app.router.add_get("/v8/finance/chart/{symbol}", self.yahoo)
        app.router.add_get("/coins/markets", self.coingecko)
        app.router.add_get("/api/v3/ticker/price", self.binance_price)
        app.router.add_get("/api/v3/ticker/24hr", self.binance_stats)
        return app
