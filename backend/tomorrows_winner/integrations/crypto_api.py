from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from tomorrows_winner.config import Settings
from tomorrows_winner.integrations.sources import first_success, get_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CoinQuote:
    coin_id: str
    symbol: str
    name: str
    rank: int | None
    price_usd: float | None
    market_cap: float | None


def _number(value: object) -> float | None:
    if value is None or value == "":
        return None
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _rank(value: object) -> int | None:
    parsed = _number(value)
    return int(parsed) if parsed is not None and parsed > 0 else None


def parse_coincap_assets(payload: object) -> list[CoinQuote]:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ValueError("unexpected CoinCap payload shape")
    quotes: list[CoinQuote] = []
    for item in payload["data"]:
        if not isinstance(item, dict) or not item.get("id") or not item.get("symbol"):
            logger.debug("Skipping malformed CoinCap record: %r", item)
            continue
        quotes.append(
            CoinQuote(
                coin_id=str(item["id"]),
                symbol=str(item["symbol"]).upper(),
                name=str(item.get("name") or item["id"]),
                rank=_rank(item.get("rank")),
                price_usd=_number(item.get("priceUsd")),
                market_cap=_number(item.get("marketCapUsd")),
            )
        )
    if not quotes:
        raise ValueError("CoinCap returned no usable assets")
    return quotes


def parse_coinpaprika_tickers(payload: object, limit: int) -> list[CoinQuote]:
    if not isinstance(payload, list):
        raise ValueError("unexpected CoinPaprika payload shape")
    quotes: list[CoinQuote] = []
    for item in payload:
        if not isinstance(item, dict) or not item.get("id") or not item.get("symbol"):
            logger.debug("Skipping malformed CoinPaprika record: %r", item)
            continue
        usd = (item.get("quotes") or {}).get("USD") or {}
        quotes.append(
            CoinQuote(
                coin_id=str(item["id"]),
                symbol=str(item["symbol"]).upper(),
                name=str(item.get("name") or item["id"]),
                rank=_rank(item.get("rank")),
                price_usd=_number(usd.get("price")),
                market_cap=_number(usd.get("market_cap")),
            )
        )
    if not quotes:
        raise ValueError("CoinPaprika returned no usable tickers")
    return quotes[:limit]


def fetch_coincap(settings: Settings) -> list[CoinQuote]:
    headers = {"Authorization": f"Bearer {settings.coincap_api_key}"} if settings.coincap_api_key else None
    payload = get_json(
        settings,
        f"{settings.coincap_base_url}/assets",
        params={"limit": settings.crypto_universe_limit},
        headers=headers,
    )
    return parse_coincap_assets(payload)


def fetch_coinpaprika(settings: Settings) -> list[CoinQuote]:
    payload = get_json(settings, f"{settings.coinpaprika_base_url}/tickers")
    return parse_coinpaprika_tickers(payload, settings.crypto_universe_limit)


def fetch_top_coins(settings: Settings) -> tuple[str, list[CoinQuote]]:
    return first_success(
        "crypto quotes",
        [
            ("coincap", lambda: fetch_coincap(settings)),
            ("coinpaprika", lambda: fetch_coinpaprika(settings)),
        ],
    )
