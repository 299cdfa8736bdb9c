from __future__ import annotations

from datetime import date, datetime, time, timedelta

from tomorrows_winner.core.clock import ET, REFERENCE_TZ_NAME, et_date, to_et
from tomorrows_winner.domain.competitions import CompetitionConfig
from tomorrows_winner.domain.enums import CompetitionPhase
from tomorrows_winner.domain.types import CompetitionTiming

DEADLINE_TIME = time(22, 0, 0)
EVALUATION_END_TIME = time(23, 59, 59)


def _local(day: date, at: time) -> datetime:
    # zoneinfo resolves the offset for that civil time, so values on either side
    # of a DST switch legitimately carry different offsets.
    return datetime.combine(day, at, tzinfo=ET)


def generate_timing(now: datetime) -> CompetitionTiming:
    today = et_date(now)
    tomorrow = today + timedelta(days=1)
    start_at = _local(tomorrow, time(0, 0, 0))
    return CompetitionTiming(
        start_at=start_at,
        deadline_at=_local(today, DEADLINE_TIME),
        evaluation_start_at=start_at,
        evaluation_end_at=_local(tomorrow, EVALUATION_END_TIME),
        timezone=REFERENCE_TZ_NAME,
    )


def generate_slug(prefix: str, value: datetime | date) -> str:
    day = et_date(value) if isinstance(value, datetime) else value
    return f"{prefix}-{day.year:04d}-{day.month:02d}-{day.day:02d}"


def should_run_competition(config: CompetitionConfig, value: datetime) -> bool:
    if config.runs_on_weekends:
        return True
    return to_et(value).weekday() < 5


def voting_opens_at(timing: CompetitionTiming) -> datetime:
    # Competitions are created just after midnight on the day their vote closes.
    return _local(to_et(timing.deadline_at).date(), time(0, 0, 0))


def competition_phase(timing: CompetitionTiming, now: datetime) -> CompetitionPhase:
    if now < voting_opens_at(timing):
        return CompetitionPhase.SETUP
    if now < timing.deadline_at:
        return CompetitionPhase.VOTING
    if now < timing.evaluation_start_at:
        return CompetitionPhase.CLOSED
    if now < timing.evaluation_end_at:
        return CompetitionPhase.EVALUATION
    return CompetitionPhase.ENDED


def next_action_time(timing: CompetitionTiming, now: datetime) -> tuple[CompetitionPhase, datetime] | None:
    phase = competition_phase(timing, now)
    if phase is CompetitionPhase.SETUP:
        return CompetitionPhase.VOTING, voting_opens_at(timing)
    if phase is CompetitionPhase.VOTING:
        return CompetitionPhase.CLOSED, timing.deadline_at
    if phase is CompetitionPhase.CLOSED:
        return CompetitionPhase.EVALUATION, timing.evaluation_start_at
    if phase is CompetitionPhase.EVALUATION:
        return CompetitionPhase.ENDED, timing.evaluation_end_at
    return None
