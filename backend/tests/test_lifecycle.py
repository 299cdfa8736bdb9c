from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from tomorrows_winner.config import get_settings
from tomorrows_winner.core.clock import ET, as_utc
from tomorrows_winner.data.nasdaq100 import NASDAQ100
from tomorrows_winner.domain.competitions import COMPETITION_CONFIGS
from tomorrows_winner.domain.enums import Category
from tomorrows_winner.models import (
    Base,
    Competition,
    CompetitionOption,
    CryptoCoin,
    CryptoPrice,
    EquityPrice,
    Guess,
    Result,
    Score,
)
from tomorrows_winner.services import lifecycle

STOCKS = COMPETITION_CONFIGS["stocks"]
CRYPTO = COMPETITION_CONFIGS["crypto"]

# 16:30 EST on Wed 2024-01-17, after Tuesday's evaluation window.
END_NOW = datetime(2024, 1, 17, 21, 30, tzinfo=timezone.utc)


def _engine():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    return engine


def _competition(session: Session, category: str, slug: str, evaluation_day: date, **markers) -> Competition:
    start = datetime.combine(evaluation_day, time(0, 0), tzinfo=ET)
    competition = Competition(
        category=category,
        title=f"{category} competition",
        slug=slug,
        start_at=as_utc(start),
        deadline_at=as_utc(start - timedelta(hours=2)),
        evaluation_start_at=as_utc(start),
        evaluation_end_at=as_utc(datetime.combine(evaluation_day, time(23, 59, 59), tzinfo=ET)),
        timezone="America/New_York",
        **markers,
    )
    session.add(competition)
    session.flush()
    return competition


def _options(session: Session, competition: Competition, *symbols: str, coin_ids: dict[str, str] | None = None) -> dict[str, CompetitionOption]:
    created = {}
    for symbol in symbols:
        option = CompetitionOption(
            competition_id=competition.id,
            symbol=symbol,
            name=f"{symbol} name",
            coin_id=(coin_ids or {}).get(symbol),
            metadata_json={},
        )
        session.add(option)
        created[symbol] = option
    session.flush()
    return created


def _guess(session: Session, user_id: str, competition: Competition, option: CompetitionOption) -> None:
    session.add(Guess(user_id=user_id, competition_id=competition.id, option_id=option.id))
    session.flush()


def _equity(session: Session, symbol: str, day: date, close: float, daily: float | None = None) -> None:
    session.add(
        EquityPrice(
            symbol=symbol,
            as_of_date=day,
            close=Decimal(str(close)),
            daily_change_percent=Decimal(str(daily)) if daily is not None else None,
        )
    )


def test_close_only_touches_due_open_competitions() -> None:
    engine = _engine()
    now = datetime(2024, 1, 16, 4, 59, tzinfo=timezone.utc)  # 23:59 EST on the 15th
    earlier_close = datetime(2024, 1, 12, 4, 59, tzinfo=timezone.utc)

    with Session(engine) as session:
        due = _competition(session, "finance", "finance-best-2024-01-16", date(2024, 1, 16))
        already = _competition(session, "finance", "finance-best-2024-01-12", date(2024, 1, 12), closed_at=earlier_close)
        future = _competition(session, "finance", "finance-best-2024-01-17", date(2024, 1, 17))
        other = _competition(session, "crypto", "crypto-best-2024-01-16", date(2024, 1, 16))
        options = _options(session, due, "AAPL", "MSFT")
        _guess(session, "u1", due, options["AAPL"])
        _guess(session, "u2", due, options["MSFT"])
        session.commit()
        ids = {"due": due.id, "already": already.id, "future": future.id, "other": other.id}

        summary = lifecycle.close_competitions(session, STOCKS, now)

        rows = {key: session.get(Competition, value) for key, value in ids.items()}

    assert summary["closed"] == 1
    assert summary["competitions"][0]["slug"] == "finance-best-2024-01-16"
    assert summary["competitions"][0]["total_votes"] == 2
    assert as_utc(rows["due"].closed_at) == now
    assert as_utc(rows["already"].closed_at) == earlier_close
    assert rows["future"].closed_at is None
    assert rows["other"].closed_at is None


def test_end_ranks_scores_and_marks_ended(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()
    refreshes: list[str] = []
    monkeypatch.setitem(
        lifecycle.DATA_FETCHERS,
        Category.FINANCE,
        lambda _session, _settings, _now: refreshes.append("equities") or {"processed": 4},
    )

    engine = _engine()
    with Session(engine) as session:
        competition = _competition(session, "finance", "finance-best-2024-01-16", date(2024, 1, 16))
        options = _options(session, competition, "AAPL", "MSFT", "NVDA", "TSLA")
        _guess(session, "u1", competition, options["NVDA"])
        _guess(session, "u2", competition, options["AAPL"])
        _guess(session, "u3", competition, options["TSLA"])

        # Friday close is the baseline across the long weekend.
        for symbol in ("AAPL", "MSFT", "NVDA", "TSLA", "ZZZ"):
            _equity(session, symbol, date(2024, 1, 12), 100.0)
        _equity(session, "AAPL", date(2024, 1, 16), 102.0)
        _equity(session, "MSFT", date(2024, 1, 16), 180.0, daily=1.5)
        _equity(session, "NVDA", date(2024, 1, 16), 105.0)
        _equity(session, "ZZZ", date(2024, 1, 16), 150.0)
        session.commit()
        competition_id = competition.id

        summary = lifecycle.end_competitions(session, settings, STOCKS, END_NOW)

        results = session.execute(
            select(CompetitionOption.symbol, Result.rank, Result.is_winner)
            .join(CompetitionOption, Result.option_id == CompetitionOption.id)
            .where(Result.competition_id == competition_id)
            .order_by(Result.rank)
        ).all()
        scores = {score.user_id: score for score in session.execute(select(Score)).scalars()}
        ended_at = session.get(Competition, competition_id).ended_at

    assert refreshes == ["equities"]
    assert summary["ended"] == 1
    assert summary["failed"] == []
    item = summary["competitions"][0]
    assert item["baseline_date"] == "2024-01-12"
    assert item["observation_date"] == "2024-01-16"
    assert item["winning_symbols"] == ["NVDA"]
    assert item["correct_guesses"] == 1
    assert item["scoring_guesses"] == 2

    assert [tuple(row) for row in results] == [("NVDA", 1, True), ("AAPL", 2, False), ("MSFT", 3, False)]
    assert scores["u1"].points == 100
    assert scores["u2"].points == 60
    assert scores["u3"].points == 0
    assert scores["u3"].metadata_json == {"rank": None, "symbol": "TSLA", "percent_change": None, "total_ranked": 3}
    assert scores["u2"].metadata_json["rank"] == 2
    assert as_utc(ended_at) == END_NOW


def test_end_is_idempotent(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()
    monkeypatch.setitem(lifecycle.DATA_FETCHERS, Category.FINANCE, lambda *_args: {"processed": 0})

    engine = _engine()
    with Session(engine) as session:
        competition = _competition(session, "finance", "finance-best-2024-01-16", date(2024, 1, 16))
        options = _options(session, competition, "AAPL", "MSFT")
        _guess(session, "u1", competition, options["AAPL"])
        for symbol, close in (("AAPL", 110.0), ("MSFT", 101.0)):
            _equity(session, symbol, date(2024, 1, 12), 100.0)
            _equity(session, symbol, date(2024, 1, 16), close)
        session.commit()

        first = lifecycle.end_competitions(session, settings, STOCKS, END_NOW)
        snapshot = (
            session.execute(select(Result.option_id, Result.rank, Result.percent_change).order_by(Result.id)).all(),
            session.execute(select(Score.user_id, Score.points).order_by(Score.id)).all(),
        )
        second = lifecycle.end_competitions(session, settings, STOCKS, END_NOW + timedelta(days=1))
        after = (
            session.execute(select(Result.option_id, Result.rank, Result.percent_change).order_by(Result.id)).all(),
            session.execute(select(Score.user_id, Score.points).order_by(Score.id)).all(),
        )
        ended_at = session.get(Competition, competition.id).ended_at

    assert first["ended"] == 1
    assert second["ended"] == 0
    assert second["refresh"] is None
    assert snapshot == after
    assert as_utc(ended_at) == END_NOW


def test_end_closes_competitions_that_missed_their_close_tick() -> None:
    get_settings.cache_clear()
    settings = get_settings()
    earlier_close = datetime(2024, 1, 15, 4, 59, tzinfo=timezone.utc)

    engine = _engine()
    with Session(engine) as session:
        unclosed = _competition(session, "crypto", "crypto-best-2024-01-16", date(2024, 1, 16))
        closed = _competition(session, "crypto", "crypto-best-2024-01-15", date(2024, 1, 15), closed_at=earlier_close)
        session.commit()
        unclosed_id, closed_id = unclosed.id, closed.id

        summary = lifecycle.end_competitions(session, settings, CRYPTO, END_NOW)
        session.expire_all()
        repaired = session.get(Competition, unclosed_id)
        untouched = session.get(Competition, closed_id)

    assert summary["ended"] == 2
    assert as_utc(repaired.closed_at) == END_NOW
    assert as_utc(repaired.ended_at) == END_NOW
    assert as_utc(untouched.closed_at) == earlier_close
    assert as_utc(untouched.ended_at) == END_NOW


def test_end_with_missing_evaluation_data_scores_zero() -> None:
    get_settings.cache_clear()
    settings = get_settings()

    engine = _engine()
    with Session(engine) as session:
        competition = _competition(session, "crypto", "crypto-best-2024-01-16", date(2024, 1, 16))
        options = _options(session, competition, "BTC", coin_ids={"BTC": "bitcoin"})
        _guess(session, "u1", competition, options["BTC"])
        session.add(CryptoPrice(coin_id="bitcoin", as_of_date=date(2024, 1, 16), price_usd=Decimal("43000")))
        session.commit()

        summary = lifecycle.end_competitions(session, settings, CRYPTO, END_NOW)
        score = session.execute(select(Score)).scalar_one()
        result_count = session.scalar(select(func.count(Result.id)))

    assert summary["ended"] == 1
    assert summary["refresh"] is None
    assert summary["competitions"][0]["options_evaluated"] == 0
    assert result_count == 0
    assert score.points == 0
    assert score.metadata_json["rank"] is None


def test_end_crypto_uses_next_day_snapshot() -> None:
    get_settings.cache_clear()
    settings = get_settings()

    engine = _engine()
    with Session(engine) as session:
        competition = _competition(session, "crypto", "crypto-best-2024-01-16", date(2024, 1, 16))
        options = _options(session, competition, "BTC", "ETH", coin_ids={"BTC": "bitcoin", "ETH": "ethereum"})
        _guess(session, "u1", competition, options["ETH"])
        prices = {
            date(2024, 1, 16): {"bitcoin": "40000", "ethereum": "2000"},
            date(2024, 1, 17): {"bitcoin": "40400", "ethereum": "2100"},
        }
        for day, by_coin in prices.items():
            for coin_id, price in by_coin.items():
                session.add(CryptoPrice(coin_id=coin_id, as_of_date=day, price_usd=Decimal(price)))
        session.commit()

        summary = lifecycle.end_competitions(session, settings, CRYPTO, END_NOW)
        score = session.execute(select(Score)).scalar_one()

    item = summary["competitions"][0]
    assert item["observation_date"] == "2024-01-17"
    assert item["baseline_date"] == "2024-01-16"
    assert item["winning_symbols"] == ["ethereum"]
    assert score.points == 100
    assert score.metadata_json["symbol"] == "ETH"


def test_end_failure_is_isolated_per_competition(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()
    original = lifecycle.score_competition

    def flaky(session, config, competition):
        if competition.slug == "crypto-best-2024-01-15":
            raise RuntimeError("boom")
        return original(session, config, competition)

    monkeypatch.setattr(lifecycle, "score_competition", flaky)

    engine = _engine()
    with Session(engine) as session:
        bad = _competition(session, "crypto", "crypto-best-2024-01-15", date(2024, 1, 15))
        good = _competition(session, "crypto", "crypto-best-2024-01-16", date(2024, 1, 16))
        session.commit()
        bad_id, good_id = bad.id, good.id

        summary = lifecycle.end_competitions(session, settings, CRYPTO, END_NOW)
        bad_row = session.get(Competition, bad_id)
        good_row = session.get(Competition, good_id)

    assert summary["ended"] == 1
    assert summary["failed"] == [{"id": bad_id, "slug": "crypto-best-2024-01-15", "error": "boom"}]
    assert bad_row.ended_at is None
    assert good_row.ended_at is not None


def test_end_tolerates_refresh_failure(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()

    def broken(*_args):
        raise RuntimeError("chart hosts down")

    monkeypatch.setitem(lifecycle.DATA_FETCHERS, Category.FINANCE, broken)

    engine = _engine()
    with Session(engine) as session:
        competition = _competition(session, "finance", "finance-best-2024-01-16", date(2024, 1, 16))
        _options(session, competition, "AAPL")
        _equity(session, "AAPL", date(2024, 1, 12), 100.0)
        _equity(session, "AAPL", date(2024, 1, 16), 101.0)
        session.commit()

        summary = lifecycle.end_competitions(session, settings, STOCKS, END_NOW)

    assert summary["refresh"] == {"error": "chart hosts down"}
    assert summary["ended"] == 1
    assert summary["competitions"][0]["winning_symbols"] == ["AAPL"]


def test_create_stocks_competition_is_upserted(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()
    monkeypatch.setitem(lifecycle.DATA_FETCHERS, Category.FINANCE, lambda *_args: {"processed": 101, "failed": 0})
    now = datetime(2024, 1, 15, 5, 1, tzinfo=timezone.utc)  # 00:01 EST Monday

    engine = _engine()
    with Session(engine) as session:
        first = lifecycle.create_competition(session, settings, STOCKS, now)
        second = lifecycle.create_competition(session, settings, STOCKS, now)
        competitions = session.execute(select(Competition)).scalars().all()
        option_count = session.scalar(select(func.count(CompetitionOption.id)))

    expected_options = len({symbol.upper() for symbol, _ in NASDAQ100})
    assert first["competition"]["slug"] == "finance-best-2024-01-16"
    assert first["competition"]["timing"]["deadline_at"] == "2024-01-15T22:00:00-05:00"
    assert first["options_added"] == expected_options
    assert first["data_fetched"] is True
    assert first["data_details"] == {"processed": 101, "failed": 0}
    assert second["competition"]["id"] == first["competition"]["id"]
    assert len(competitions) == 1
    assert competitions[0].category == "finance"
    assert as_utc(competitions[0].deadline_at) == datetime(2024, 1, 16, 3, 0, tzinfo=timezone.utc)
    assert option_count == expected_options


def test_create_stocks_skips_weekend_evaluation(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()
    calls: list[str] = []
    monkeypatch.setitem(lifecycle.DATA_FETCHERS, Category.FINANCE, lambda *_args: calls.append("fetch") or {})
    friday = datetime(2024, 1, 19, 5, 1, tzinfo=timezone.utc)

    engine = _engine()
    with Session(engine) as session:
        result = lifecycle.create_competition(session, settings, STOCKS, friday)
        count = session.scalar(select(func.count(Competition.id)))

    assert result == {"skipped": True, "reason": "market closed (weekend)", "evaluation_date": "2024-01-20"}
    assert calls == []
    assert count == 0


def test_create_crypto_builds_deduplicated_options(monkeypatch) -> None:
    get_settings.cache_clear()
    settings = get_settings()
    now = datetime(2024, 1, 15, 5, 1, tzinfo=timezone.utc)

    def fake_ingest(session, _settings, as_of):
        coins = [("bitcoin", "BTC", 1), ("ethereum", "eth", 2), ("bitcoin-bep2", "btc", 3), ("blank", " ", 4)]
        for coin_id, symbol, rank in coins:
            session.add(CryptoCoin(id=coin_id, symbol=symbol, name=coin_id.title(), rank=rank))
            session.add(CryptoPrice(coin_id=coin_id, as_of_date=as_of, price_usd=Decimal("1"), rank=rank))
        session.commit()
        return {"source": "coincap", "coins": len(coins)}

    monkeypatch.setattr(lifecycle, "ingest_crypto", fake_ingest)

    engine = _engine()
    with Session(engine) as session:
        result = lifecycle.create_competition(session, settings, CRYPTO, now)
        options = session.execute(select(CompetitionOption).order_by(CompetitionOption.id)).scalars().all()

    assert result["competition"]["slug"] == "crypto-best-2024-01-16"
    assert result["options_added"] == 2
    assert [(o.symbol, o.coin_id) for o in options] == [("BTC", "bitcoin-bep2"), ("ETH", "ethereum")]


def test_crypto_options_fall_back_to_coin_metadata() -> None:
    get_settings.cache_clear()
    settings = get_settings()
    now = datetime(2024, 1, 15, 5, 1, tzinfo=timezone.utc)

    engine = _engine()
    with Session(engine) as session:
        competition = _competition(session, "crypto", "crypto-best-2024-01-16", date(2024, 1, 16))
        session.add(CryptoCoin(id="solana", symbol="SOL", name="Solana", rank=5))
        session.add(CryptoCoin(id="bitcoin", symbol="BTC", name="Bitcoin", rank=1))
        session.commit()

        added = lifecycle.add_options(session, settings, CRYPTO, competition.id, now)
        session.commit()
        symbols = session.execute(select(CompetitionOption.symbol).order_by(CompetitionOption.id)).scalars().all()

    assert added == 2
    assert symbols == ["BTC", "SOL"]
