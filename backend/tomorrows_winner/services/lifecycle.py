"""Create, close and end handlers for daily competitions.

Each handler is safe to re-run: creation upserts by natural keys, and close/end
only select competitions whose ``closed_at``/``ended_at`` marker is still unset.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tomorrows_winner.config import Settings
from tomorrows_winner.core.clock import as_utc, et_date
from tomorrows_winner.core.ranking import (
    MAX_SCORING_RANK,
    get_points_table,
    rank_observations,
    score_guesses,
    summarize_rankings,
)
from tomorrows_winner.data.nasdaq100 import NASDAQ100
from tomorrows_winner.db import upsert_rows
from tomorrows_winner.domain.competitions import CompetitionConfig
from tomorrows_winner.domain.enums import Category
from tomorrows_winner.domain.types import GuessPick, PriceObservation
from tomorrows_winner.models import (
    Competition,
    CompetitionOption,
    CryptoCoin,
    CryptoPrice,
    EquityPrice,
    Guess,
    Result,
    Score,
)
from tomorrows_winner.services.ingest import ingest_crypto, ingest_equities, normalize_symbol
from tomorrows_winner.services.timing import generate_slug, generate_timing, should_run_competition

logger = logging.getLogger(__name__)


def _to_float(value: Decimal | float | None) -> float | None:
    return float(value) if value is not None else None


def _chunks(rows: list[dict], size: int) -> list[list[dict]]:
    return [rows[start : start + size] for start in range(0, len(rows), size)]


# Upstream data


def _fetch_crypto(session: Session, settings: Settings, now: datetime) -> dict:
    return ingest_crypto(session, settings, et_date(now))


def _fetch_equities(session: Session, settings: Settings, now: datetime) -> dict:
    return ingest_equities(session, settings)


DATA_FETCHERS: dict[Category, Callable[[Session, Settings, datetime], dict]] = {
    Category.CRYPTO: _fetch_crypto,
    Category.FINANCE: _fetch_equities,
}


def fetch_category_data(session: Session, settings: Settings, config: CompetitionConfig, now: datetime) -> dict:
    fetcher = DATA_FETCHERS.get(config.category)
    if fetcher is None:
        raise ValueError(f"no data fetcher for category '{config.category}'")
    return fetcher(session, settings, now)


# Options


def _crypto_option_rows(session: Session, settings: Settings, now: datetime) -> list[dict]:
    as_of = et_date(now)
    limit = settings.crypto_universe_limit
    coin_ids = (
        session.execute(
            select(CryptoPrice.coin_id)
            .where(CryptoPrice.as_of_date == as_of)
            .order_by(CryptoPrice.rank.asc(), CryptoPrice.coin_id.asc())
            .limit(limit)
        )
        .scalars()
        .all()
    )
    if not coin_ids:
        logger.warning("No crypto snapshot for %s, building options from coin metadata", as_of.isoformat())
        coin_ids = (
            session.execute(
                select(CryptoCoin.id).order_by(CryptoCoin.rank.asc(), CryptoCoin.id.asc()).limit(limit)
            )
            .scalars()
            .all()
        )

    meta = {coin.id: coin for coin in session.execute(select(CryptoCoin).where(CryptoCoin.id.in_(coin_ids))).scalars()}
    rows = []
    for coin_id in coin_ids:
        coin = meta.get(coin_id)
        rows.append(
            {
                "symbol": normalize_symbol(coin.symbol if coin is not None else coin_id),
                "name": coin.name if coin is not None else coin_id,
                "coin_id": coin_id,
            }
        )
    return rows


def _equity_option_rows(session: Session, settings: Settings, now: datetime) -> list[dict]:
    return [{"symbol": normalize_symbol(symbol), "name": name, "coin_id": None} for symbol, name in NASDAQ100]


OPTION_BUILDERS: dict[Category, Callable[[Session, Settings, datetime], list[dict]]] = {
    Category.CRYPTO: _crypto_option_rows,
    Category.FINANCE: _equity_option_rows,
}


def add_options(
    session: Session,
    settings: Settings,
    config: CompetitionConfig,
    competition_id: int,
    now: datetime,
) -> int:
    builder = OPTION_BUILDERS.get(config.category)
    if builder is None:
        raise ValueError(f"no option builder for category '{config.category}'")

    # Later duplicates win but keep the first one's position.
    deduped: dict[str, dict] = {}
    for row in builder(session, settings, now):
        if not row["symbol"]:
            continue
        deduped[row["symbol"]] = {"competition_id": competition_id, **row, "metadata_json": {}}

    rows = list(deduped.values())
    for chunk in _chunks(rows, settings.options_chunk_size):
        upsert_rows(session, CompetitionOption, chunk, conflict_columns=("competition_id", "symbol"))
    return len(rows)


# Create


def create_competition(session: Session, settings: Settings, config: CompetitionConfig, now: datetime) -> dict:
    timing = generate_timing(now)
    if not should_run_competition(config, timing.start_at):
        reason = "not scheduled for this date" if config.runs_on_weekends else "market closed (weekend)"
        return {"skipped": True, "reason": reason, "evaluation_date": timing.start_at.date().isoformat()}

    slug = generate_slug(config.slug_prefix, timing.start_at.date())
    data_details = fetch_category_data(session, settings, config, now)

    upsert_rows(
        session,
        Competition,
        [
            {
                "category": config.category.value,
                "title": config.name,
                "slug": slug,
                "start_at": as_utc(timing.start_at),
                "deadline_at": as_utc(timing.deadline_at),
                "evaluation_start_at": as_utc(timing.evaluation_start_at),
                "evaluation_end_at": as_utc(timing.evaluation_end_at),
                "timezone": timing.timezone,
            }
        ],
        conflict_columns=("slug",),
    )
    competition_id = session.scalar(select(Competition.id).where(Competition.slug == slug))
    if competition_id is None:
        raise RuntimeError(f"competition '{slug}' missing after upsert")

    options_added = add_options(session, settings, config, competition_id, now)
    session.commit()

    logger.info("Created %s with %d options", slug, options_added)
    return {
        "competition": {
            "id": competition_id,
            "slug": slug,
            "title": config.name,
            "timing": timing.as_dict(),
        },
        "options_added": options_added,
        "data_fetched": True,
        "data_details": data_details,
    }


# Close


def close_competitions(session: Session, config: CompetitionConfig, now: datetime) -> dict:
    now_utc = as_utc(now)
    competitions = (
        session.execute(
            select(Competition)
            .where(
                Competition.category == config.category.value,
                Competition.deadline_at < now_utc,
                Competition.closed_at.is_(None),
            )
            .order_by(Competition.id.asc())
        )
        .scalars()
        .all()
    )

    closed: list[dict[str, object]] = []
    for competition in competitions:
        competition_id, slug = competition.id, competition.slug
        try:
            competition.closed_at = now_utc
            total_votes = session.scalar(
                select(func.count(Guess.id)).where(Guess.competition_id == competition_id)
            )
            session.commit()
            closed.append(
                {
                    "id": competition_id,
                    "slug": slug,
                    "title": competition.title,
                    "deadline": as_utc(competition.deadline_at).isoformat(),
                    "total_votes": int(total_votes or 0),
                    "closed_at": now_utc.isoformat(),
                }
            )
        except Exception:  # noqa: BLE001
            session.rollback()
            logger.exception("Failed to close competition %s", slug)

    return {"closed": len(closed), "competitions": closed, "timestamp": now_utc.isoformat()}


# End


def _crypto_row_observation(row: CryptoPrice) -> PriceObservation:
    return PriceObservation(symbol=row.coin_id, as_of_date=row.as_of_date, close=_to_float(row.price_usd))


def _equity_row_observation(row: EquityPrice) -> PriceObservation:
    return PriceObservation(
        symbol=row.symbol,
        as_of_date=row.as_of_date,
        close=_to_float(row.close),
        previous_close=_to_float(row.previous_close),
        daily_change_percent=_to_float(row.daily_change_percent),
    )


OBSERVATION_SOURCES = {
    Category.CRYPTO: (CryptoPrice, _crypto_row_observation),
    Category.FINANCE: (EquityPrice, _equity_row_observation),
}


def load_observations(
    session: Session, config: CompetitionConfig, evaluation_date: date
) -> tuple[list[PriceObservation], list[PriceObservation], date, date | None]:
    """Return baseline and evaluation observations for one evaluation day.

    Evaluation rows are read at ``evaluation_date + observation_lag_days``; the
    baseline is the most recent stored date strictly before that.
    """
    source = OBSERVATION_SOURCES.get(config.category)
    if source is None:
        raise ValueError(f"no price source for category '{config.category}'")
    model, to_observation = source

    observation_date = evaluation_date + timedelta(days=config.observation_lag_days)
    baseline_date = session.scalar(select(func.max(model.as_of_date)).where(model.as_of_date < observation_date))

    evaluation = [to_observation(row) for row in session.execute(select(model).where(model.as_of_date == observation_date)).scalars()]
    baseline: list[PriceObservation] = []
    if baseline_date is not None:
        baseline = [to_observation(row) for row in session.execute(select(model).where(model.as_of_date == baseline_date)).scalars()]
    return baseline, evaluation, observation_date, baseline_date


def option_key(config: CompetitionConfig, option: CompetitionOption) -> str:
    if config.category is Category.CRYPTO:
        return option.coin_id or option.symbol
    return option.symbol


def score_competition(
    session: Session,
    config: CompetitionConfig,
    competition: Competition,
) -> dict[str, object]:
    """Write results and scores for one competition without committing."""
    options = session.execute(
        select(CompetitionOption).where(CompetitionOption.competition_id == competition.id)
    ).scalars().all()
    options_by_key = {option_key(config, option): option for option in options}

    evaluation_date = et_date(competition.evaluation_start_at)
    baseline, evaluation, observation_date, baseline_date = load_observations(session, config, evaluation_date)

    rankings = rank_observations(
        baseline,
        evaluation,
        allow_ties=config.rules.allow_ties,
        eligible=set(options_by_key),
    )
    result_rows = [
        {
            "competition_id": competition.id,
            "option_id": options_by_key[ranked.symbol].id,
            "percent_change": Decimal(str(ranked.percent_change)),
            "is_winner": ranked.is_winner,
            "rank": ranked.rank,
        }
        for ranked in rankings
    ]
    upsert_rows(session, Result, result_rows, conflict_columns=("competition_id", "option_id"))

    guesses = session.execute(
        select(Guess.user_id, CompetitionOption)
        .join(CompetitionOption, Guess.option_id == CompetitionOption.id)
        .where(Guess.competition_id == competition.id)
        .order_by(Guess.id.asc())
    ).all()
    picks = [
        GuessPick(user_id=user_id, option_id=option.id, symbol=option_key(config, option))
        for user_id, option in guesses
    ]
    display_symbols = {option.id: option.symbol for _, option in guesses}

    table = get_points_table(config.rules.points_table)
    awards = score_guesses(rankings, picks, table, MAX_SCORING_RANK)
    score_rows = [
        {
            "user_id": award.user_id,
            "competition_id": competition.id,
            "points": award.points,
            "metadata_json": {**award.metadata(), "symbol": display_symbols[award.option_id]},
        }
        for award in awards
    ]
    upsert_rows(session, Score, score_rows, conflict_columns=("user_id", "competition_id"))

    if not evaluation:
        logger.warning(
            "No evaluation prices for %s on %s; all guesses score 0",
            competition.slug,
            observation_date.isoformat(),
        )

    return {
        "id": competition.id,
        "slug": competition.slug,
        "title": competition.title,
        "evaluation_date": evaluation_date.isoformat(),
        "observation_date": observation_date.isoformat(),
        "baseline_date": baseline_date.isoformat() if baseline_date is not None else None,
        "results_upserted": len(result_rows),
        "scores_upserted": len(score_rows),
        **summarize_rankings(rankings, awards, table, MAX_SCORING_RANK),
    }


def end_competitions(session: Session, settings: Settings, config: CompetitionConfig, now: datetime) -> dict:
    now_utc = as_utc(now)
    competitions = (
        session.execute(
            select(Competition)
            .where(
                Competition.category == config.category.value,
                Competition.evaluation_end_at < now_utc,
                Competition.ended_at.is_(None),
            )
            .order_by(Competition.id.asc())
        )
        .scalars()
        .all()
    )

    refresh: dict | None = None
    if competitions and config.refresh_before_scoring:
        try:
            refresh = fetch_category_data(session, settings, config, now)
        except Exception as exc:  # noqa: BLE001
            session.rollback()
            logger.exception("Price refresh before scoring %s failed", config.id)
            refresh = {"error": str(exc)}

    ended: list[dict[str, object]] = []
    failed: list[dict[str, object]] = []
    for competition in competitions:
        competition_id, slug = competition.id, competition.slug
        try:
            summary = score_competition(session, config, competition)
            # A missed close tick must not leave voting open on an ended competition.
            if competition.closed_at is None:
                competition.closed_at = now_utc
            competition.ended_at = now_utc
            session.commit()
            ended.append({**summary, "ended_at": now_utc.isoformat()})
        except Exception as exc:  # noqa: BLE001
            session.rollback()
            logger.exception("Failed to end competition %s", slug)
            failed.append({"id": competition_id, "slug": slug, "error": str(exc)})

    return {
        "ended": len(ended),
        "competitions": ended,
        "failed": failed,
        "refresh": refresh,
        "timestamp": now_utc.isoformat(),
    }
