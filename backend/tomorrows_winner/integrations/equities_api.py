from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from tomorrows_winner.config import Settings
from tomorrows_winner.core.clock import ET
from tomorrows_winner.integrations.sources import first_success, get_json


@dataclass(frozen=True, slots=True)
class EquityBar:
    symbol: str
    as_of_date: date
    close: float
    previous_close: float | None
    daily_change_percent: float | None


def _finite(value: object) -> float | None:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def parse_chart(symbol: str, payload: object) -> list[EquityBar]:
    """Daily bars from a chart payload, oldest first, one per trading date."""
    if not isinstance(payload, dict):
        raise ValueError(f"unexpected chart payload for {symbol}")
    chart = payload.get("chart") or {}
    results = chart.get("result") or []
    if not results:
        error = chart.get("error") or {}
        raise ValueError(f"no chart data for {symbol}: {error.get('description', 'empty result')}")

    result = results[0]
    meta = result.get("meta") or {}
    tz_name = meta.get("exchangeTimezoneName")
    try:
        exchange_tz = ZoneInfo(tz_name) if tz_name else ET
    except (KeyError, ValueError):
        exchange_tz = ET
    timestamps = result.get("timestamp") or []
    quotes = (result.get("indicators") or {}).get("quote") or [{}]
    closes = quotes[0].get("close") or []

    closes_by_date: dict[date, float] = {}
    for ts, close in zip(timestamps, closes):
        price = _finite(close)
        if price is None or not isinstance(ts, (int, float)):
            continue
        closes_by_date[datetime.fromtimestamp(ts, tz=exchange_tz).date()] = price

    previous = _finite(meta.get("chartPreviousClose"))
    bars: list[EquityBar] = []
    for as_of_date in sorted(closes_by_date):
        close = closes_by_date[as_of_date]
        change = ((close - previous) / previous) * 100 if previous is not None and previous > 0 else None
        bars.append(
            EquityBar(
                symbol=symbol,
                as_of_date=as_of_date,
                close=close,
                previous_close=previous,
                daily_change_percent=change,
            )
        )
        previous = close
    if not bars:
        raise ValueError(f"no usable closes for {symbol}")
    return bars


def fetch_daily_bars(settings: Settings, symbol: str) -> list[EquityBar]:
    def _attempt(base_url: str):
        def _fetch() -> list[EquityBar]:
            payload = get_json(
                settings,
                f"{base_url}/v8/finance/chart/{symbol}",
                params={"range": f"{settings.equity_history_days}d", "interval": "1d"},
            )
            return parse_chart(symbol, payload)

        return _fetch

    _, bars = first_success(
        f"equity bars {symbol}",
        [(base_url, _attempt(base_url)) for base_url in settings.equity_chart_base_urls],
    )
    return bars
