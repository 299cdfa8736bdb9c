from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from tomorrows_winner.config import Settings
from tomorrows_winner.data.nasdaq100 import NASDAQ100
from tomorrows_winner.db import upsert_rows
from tomorrows_winner.integrations.crypto_api import fetch_top_coins
from tomorrows_winner.integrations.equities_api import EquityBar, fetch_daily_bars
from tomorrows_winner.models import CryptoCoin, CryptoPrice, EquityPrice, EquityTicker

logger = logging.getLogger(__name__)


def _to_decimal(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def ingest_crypto(session: Session, settings: Settings, as_of: date) -> dict:
    source, quotes = fetch_top_coins(settings)

    # Same-key rows cannot appear twice in one ON CONFLICT statement.
    by_coin = {quote.coin_id: quote for quote in quotes}
    price_rows = [
        {
            "coin_id": quote.coin_id,
            "as_of_date": as_of,
            "price_usd": _to_decimal(quote.price_usd),
            "market_cap": _to_decimal(quote.market_cap),
            "rank": quote.rank,
        }
        for quote in by_coin.values()
    ]
    meta_rows = [
        {"id": quote.coin_id, "symbol": quote.symbol, "name": quote.name, "rank": quote.rank}
        for quote in by_coin.values()
    ]
    upsert_rows(session, CryptoPrice, price_rows, conflict_columns=("coin_id", "as_of_date"))
    upsert_rows(session, CryptoCoin, meta_rows, conflict_columns=("id",))
    session.commit()

    logger.info("Stored %d crypto quotes for %s from %s", len(price_rows), as_of.isoformat(), source)
    return {"source": source, "as_of_date": as_of.isoformat(), "coins": len(price_rows)}


def sync_equity_tickers(session: Session, constituents: Sequence[tuple[str, str]] = NASDAQ100) -> dict[str, int]:
    rows = list({normalize_symbol(symbol): {"symbol": normalize_symbol(symbol), "name": name} for symbol, name in constituents}.values())
    upsert_rows(session, EquityTicker, rows, conflict_columns=("symbol",))

    listed = {row["symbol"] for row in rows}
    existing = session.execute(select(EquityTicker.symbol)).scalars().all()
    stale = sorted(symbol for symbol in existing if normalize_symbol(symbol) not in listed)
    if stale:
        session.execute(delete(EquityTicker).where(EquityTicker.symbol.in_(stale)))
    session.commit()
    return {"tickers": len(rows), "tickers_removed": len(stale)}


def _batches(items: Sequence[str], size: int) -> list[Sequence[str]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


def fetch_bars_batch(
    settings: Settings,
    symbols: Sequence[str],
    fetcher: Callable[[Settings, str], list[EquityBar]],
) -> tuple[list[EquityBar], list[str]]:
    bars: list[EquityBar] = []
    failed: list[str] = []
    with ThreadPoolExecutor(max_workers=min(settings.fetch_max_workers, len(symbols))) as executor:
        futures = {executor.submit(fetcher, settings, symbol): symbol for symbol in symbols}
        for future in as_completed(futures):
            symbol = futures[future]
            try:
                bars.extend(future.result())
            except Exception as exc:  # noqa: BLE001
                logger.warning("Equity fetch failed for %s: %s", symbol, exc)
                failed.append(symbol)
    return bars, failed


def ingest_equities(session: Session, settings: Settings) -> dict:
    ticker_summary = sync_equity_tickers(session, NASDAQ100)
    symbols = [normalize_symbol(symbol) for symbol, _ in NASDAQ100]
    symbols = list(dict.fromkeys(symbols))

    summary: dict[str, object] = {
        **ticker_summary,
        "requested": len(symbols),
        "processed": 0,
        "failed": 0,
        "bars_upserted": 0,
        "failed_symbols": [],
    }
    failed_symbols: list[str] = []

    batches = _batches(symbols, settings.fetch_batch_size)
    for index, batch in enumerate(batches):
        bars, failed = fetch_bars_batch(settings, batch, fetch_daily_bars)
        by_key = {(bar.symbol, bar.as_of_date): bar for bar in sorted(bars, key=lambda b: (b.symbol, b.as_of_date))}
        rows = [
            {
                "symbol": bar.symbol,
                "as_of_date": bar.as_of_date,
                "close": _to_decimal(bar.close),
                "previous_close": _to_decimal(bar.previous_close),
                "daily_change_percent": _to_decimal(bar.daily_change_percent),
            }
            for bar in by_key.values()
        ]
        upsert_rows(session, EquityPrice, rows, conflict_columns=("symbol", "as_of_date"))
        session.commit()

        summary["processed"] = int(summary["processed"]) + len(batch) - len(failed)
        summary["bars_upserted"] = int(summary["bars_upserted"]) + len(rows)
        failed_symbols.extend(failed)

        if index < len(batches) - 1 and settings.fetch_batch_delay_sec > 0:
            time.sleep(settings.fetch_batch_delay_sec)

    summary["failed"] = len(failed_symbols)
    summary["failed_symbols"] = sorted(failed_symbols)
    logger.info(
        "Equity ingest processed %s/%s symbols (%s failed)",
        summary["processed"],
        summary["requested"],
        summary["failed"],
    )
    return summary
