"""
MARKET PULSE — Main Entry Point
`python main.py` serves the price API; `python main.py watch` polls it and logs
each refresh.
"""
import asyncio
import sys
from typing import Dict

import uvicorn

from market_pulse.client.api_client import MarketApiClient
from market_pulse.client.poller import MarketPricesPoller
from market_pulse.client.flash import FLASH_DOWN, FLASH_UP, PriceFlash
from market_pulse.client.views import format_change, format_instrument_price, format_price, top_movers
from market_pulse.config.settings import get_settings
from market_pulse.utils.logger import setup_logging, get_logger

logger = get_logger("main")

ARROWS = {FLASH_UP: "▲", FLASH_DOWN: "▼"}


def run_api():
    """Run the FastAPI application."""
    settings = get_settings()
    setup_logging()
    logger.info("starting_market_pulse", version=settings.version, port=settings.port)
    uvicorn.run(
        "market_pulse.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


async def watch():
    """Poll the price API and log what a dashboard would render."""
    settings = get_settings()
    flashes: Dict[str, PriceFlash] = {}
    async with MarketApiClient() as client:
        async with MarketPricesPoller(client) as poller:
            while True:
                await asyncio.sleep(settings.client.refresh_interval_seconds)
                state = poller.state

                forex = {}
                for key, quote in state.forex.items():
                    rendered = format_instrument_price(key, quote.get("price") or 0)
                    flash = flashes.setdefault(
                        key, PriceFlash(rendered, duration=settings.client.flash_duration_seconds)
                    )
                    direction = flash.observe(rendered)
                    forex[key] = f"{rendered} {ARROWS.get(direction, '')}".rstrip()

                logger.info(
                    "market_snapshot",
                    error=state.error,
                    last_updated=state.last_updated.isoformat() if state.last_updated else None,
                    movers=[
                        f"{row.get('symbol', '').upper()} {format_price(row.get('current_price') or 0)} "
                        f"{format_change(row.get('price_change_percentage_24h') or 0)}"
                        for row in top_movers(state.crypto)
                    ],
                    forex=forex,
                )


def run_watch():
    setup_logging()
    try:
        asyncio.run(watch())
    except KeyboardInterrupt:
        logger.info("watch_stopped")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "watch":
        run_watch()
    else:
        run_api()
