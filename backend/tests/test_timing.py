from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from tomorrows_winner.core.clock import as_utc
from tomorrows_winner.domain.competitions import COMPETITION_CONFIGS
from tomorrows_winner.domain.enums import CompetitionPhase
from tomorrows_winner.services.timing import (
    competition_phase,
    generate_slug,
    generate_timing,
    next_action_time,
    should_run_competition,
)


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_generate_timing_for_winter_day() -> None:
    timing = generate_timing(_utc(2024, 1, 15, 15, 0))

    assert timing.deadline_at.isoformat() == "2024-01-15T22:00:00-05:00"
    assert timing.start_at.isoformat() == "2024-01-16T00:00:00-05:00"
    assert timing.evaluation_start_at == timing.start_at
    assert timing.evaluation_end_at.isoformat() == "2024-01-16T23:59:59-05:00"
    assert timing.timezone == "America/New_York"


def test_generate_timing_keeps_offsets_across_spring_forward() -> None:
    timing = generate_timing(_utc(2024, 3, 9, 15, 0))

    assert timing.deadline_at.isoformat() == "2024-03-09T22:00:00-05:00"
    assert timing.start_at.isoformat() == "2024-03-10T00:00:00-05:00"
    assert timing.evaluation_end_at.isoformat() == "2024-03-10T23:59:59-04:00"
    assert as_utc(timing.evaluation_end_at) - as_utc(timing.start_at) == timedelta(hours=22, minutes=59, seconds=59)


def test_generate_timing_keeps_offsets_across_fall_back() -> None:
    timing = generate_timing(_utc(2024, 11, 2, 14, 0))

    assert timing.deadline_at.isoformat() == "2024-11-02T22:00:00-04:00"
    assert timing.start_at.isoformat() == "2024-11-03T00:00:00-04:00"
    assert timing.evaluation_end_at.isoformat() == "2024-11-03T23:59:59-05:00"


def test_generate_timing_uses_local_today_late_evening() -> None:
    # 02:00 UTC on the 16th is 21:00 on the 15th in New York.
    timing = generate_timing(_utc(2024, 1, 16, 2, 0))
    assert timing.deadline_at.date() == date(2024, 1, 15)
    assert timing.start_at.date() == date(2024, 1, 16)


def test_generate_slug() -> None:
    assert generate_slug("sp500-best", date(2024, 1, 15)) == "sp500-best-2024-01-15"
    assert generate_slug("crypto-best", _utc(2024, 1, 16, 3, 0)) == "crypto-best-2024-01-15"


def test_should_run_competition_weekend_policy() -> None:
    stocks = COMPETITION_CONFIGS["stocks"]
    crypto = COMPETITION_CONFIGS["crypto"]
    saturday = _utc(2024, 3, 9, 17, 0)
    sunday = _utc(2024, 3, 10, 17, 0)
    monday = _utc(2024, 3, 11, 17, 0)

    assert should_run_competition(stocks, saturday) is False
    assert should_run_competition(stocks, sunday) is False
    assert should_run_competition(stocks, monday) is True
    assert should_run_competition(crypto, saturday) is True
    assert should_run_competition(crypto, sunday) is True


def test_competition_phase_progression() -> None:
    timing = generate_timing(_utc(2024, 1, 15, 15, 0))

    assert competition_phase(timing, _utc(2024, 1, 15, 4, 0)) is CompetitionPhase.SETUP
    assert competition_phase(timing, _utc(2024, 1, 15, 15, 0)) is CompetitionPhase.VOTING
    assert competition_phase(timing, _utc(2024, 1, 16, 3, 30)) is CompetitionPhase.CLOSED
    assert competition_phase(timing, _utc(2024, 1, 16, 18, 0)) is CompetitionPhase.EVALUATION
    assert competition_phase(timing, _utc(2024, 1, 17, 5, 0)) is CompetitionPhase.ENDED


def test_next_action_time() -> None:
    timing = generate_timing(_utc(2024, 1, 15, 15, 0))

    assert next_action_time(timing, _utc(2024, 1, 15, 15, 0)) == (CompetitionPhase.CLOSED, timing.deadline_at)
    assert next_action_time(timing, _utc(2024, 1, 16, 18, 0)) == (
        CompetitionPhase.ENDED,
        timing.evaluation_end_at,
    )
    assert next_action_time(timing, _utc(2024, 1, 17, 5, 0)) is None
