"""
MARKET PULSE — FastAPI Application
Price endpoints for crypto, forex/commodities/equities and single venue tickers,
plus /healthz and /metrics.

Every /prices/* response is HTTP 200 with a `success` flag in the body, even on
total upstream failure or an internal error. Polling clients therefore have a
single failure branch to check.
"""
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import aiohttp
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from market_pulse.api.services import MarketServices, build_services
from market_pulse.config.settings import get_settings
from market_pulse.data.instruments import FALLBACK_AS_OF
from market_pulse.utils.helpers import parse_csv_list, parse_positive_int, to_float, utc_timestamp
from market_pulse.utils.logger import get_logger, setup_logging

logger = get_logger("api")

NO_STORE = "no-store, max-age=0, must-revalidate"
SHORT_REVALIDATE = "public, max-age=0, s-maxage=30, stale-while-revalidate=30"

DEFAULT_TICKER_SYMBOL = "BTCUSDT"
DEFAULT_PER_PAGE = 100

router = APIRouter()


def _services(request: Request) -> MarketServices:
    return request.app.state.services


def _count(request: Request, endpoint: str, failed: bool = False) -> None:
    counters = request.app.state.counters.setdefault(endpoint, {"requests": 0, "failures": 0})
    counters["requests"] += 1
    if failed:
        counters["failures"] += 1


def _envelope(content: Dict[str, Any], cache_control: str) -> JSONResponse:
    return JSONResponse(status_code=200, content=content, headers={"Cache-Control": cache_control})


def _timeout_hint(raw: Optional[str]) -> Optional[float]:
    """Caller timeout in seconds; anything unusable means the adapter default."""
    value = to_float(raw)
    return value if value and value > 0 else None


# ─── Health & Metrics ───────────────────────────────────────────

@router.get("/healthz", tags=["System"])
async def health_check(request: Request):
    """Fast health check endpoint for load balancers and monitoring."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "instance": request.app.state.instance_id,
            "uptime_since": request.app.state.started_at,
            "timestamp": utc_timestamp(),
        },
    )


@router.get("/metrics", tags=["System"])
async def metrics(request: Request):
    """Request/failure counters and cache statistics."""
    settings = get_settings()
    services = _services(request)
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.version,
            "instance_id": request.app.state.instance_id,
            "started_at": request.app.state.started_at,
        },
        "endpoints": request.app.state.counters,
        "components": {
            "crypto_cache": services.crypto.stats,
            "forex_instruments": len(services.forex.instruments),
            "fallback_as_of": FALLBACK_AS_OF,
        },
        "timestamp": utc_timestamp(),
    }


# ─── Prices ─────────────────────────────────────────────────────

@router.get("/prices/crypto", tags=["Prices"])
async def crypto_prices(
    request: Request,
    page: Optional[str] = None,
    per_page: Optional[str] = None,
    ids: Optional[str] = None,
    timeout: Optional[str] = None,
):
    """One page of the crypto market listing, optionally filtered by ids."""
    max_per_page = get_settings().data.crypto_max_per_page
    page_num = parse_positive_int(page, 1)
    page_size = parse_positive_int(per_page, DEFAULT_PER_PAGE, maximum=max_per_page)
    id_list = parse_csv_list(ids)

    try:
        result = await _services(request).crypto.get_markets(
            page=page_num,
            per_page=page_size,
            ids=id_list or None,
            timeout=_timeout_hint(timeout),
        )
        content = result.model_dump(mode="json")
        if content.get("error") is None:
            content.pop("error", None)
        _count(request, "crypto", failed=not result.success)
    except Exception as e:
        logger.error("crypto_endpoint_error", error=str(e))
        _count(request, "crypto", failed=True)
        content = {
            "success": False,
            "error": "Failed to fetch prices",
            "data": [],
            "page": page_num,
            "per_page": page_size,
            "has_more": False,
        }
    return _envelope(content, SHORT_REVALIDATE)


@router.get("/prices/forex", tags=["Prices"])
async def forex_prices(request: Request, timeout: Optional[str] = None):
    """Complete forex/commodities/equities map; fallback values fill any gaps."""
    forex = _services(request).forex
    try:
        snapshot = await forex.get_prices(timeout=_timeout_hint(timeout))
    except Exception as e:
        logger.error("forex_endpoint_error", error=str(e))
        snapshot = forex.fallback_snapshot()

    data = {key: quote.model_dump(mode="json") for key, quote in snapshot.quotes.items()}
    content: Dict[str, Any] = {"success": not snapshot.all_fallback, "data": data}
    if snapshot.all_fallback:
        content["error"] = "Live prices unavailable; serving fallback values"
    _count(request, "forex", failed=snapshot.all_fallback)
    return _envelope(content, NO_STORE)


@router.get("/prices/ticker", tags=["Prices"])
async def ticker_price(request: Request, symbol: Optional[str] = None, timeout: Optional[str] = None):
    """Single venue ticker: last price and 24h change."""
    symbol = (symbol or DEFAULT_TICKER_SYMBOL).strip() or DEFAULT_TICKER_SYMBOL
    try:
        quote = await _services(request).ticker.get_quote(symbol, timeout=_timeout_hint(timeout))
    except Exception as e:
        logger.error("ticker_endpoint_error", symbol=symbol, error=str(e))
        quote = None

    _count(request, "ticker", failed=quote is None)
    if quote is None:
        return _envelope({"success": False, "price": 0, "change24h": 0}, NO_STORE)
    return _envelope({"success": True, "price": quote.price, "change24h": quote.change}, NO_STORE)


# ─── Application ────────────────────────────────────────────────

def create_app(services: Optional[MarketServices] = None) -> FastAPI:
    """
    Build the API. Injected services are used as-is; otherwise the lifespan
    opens one shared HTTP session, wires the adapters onto it, and closes it
    on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan — startup and shutdown."""
        setup_logging()
        settings = get_settings()
        app.state.started_at = utc_timestamp()

        session: Optional[aiohttp.ClientSession] = None
        if services is None:
            session = aiohttp.ClientSession()
            app.state.services = build_services(session, settings.data)
        else:
            app.state.services = services

        logger.info("market_pulse_ready", version=settings.version, instance=app.state.instance_id)
        try:
            yield
        finally:
            logger.info("market_pulse_shutting_down")
            if session is not None:
                await session.close()

    app = FastAPI(
        title="MARKET PULSE",
        description="Multi-source market price aggregation API",
        version=get_settings().version,
        lifespan=lifespan,
    )
    app.state.instance_id = str(uuid.uuid4())[:8]
    app.state.started_at = None
    app.state.counters = {}
    if services is not None:
        app.state.services = services
    app.include_router(router)
    return app


app = create_app()
