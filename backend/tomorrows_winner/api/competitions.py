from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from tomorrows_winner.core.clock import to_et, utc_now
from tomorrows_winner.db import get_db
from tomorrows_winner.domain.types import CompetitionTiming
from tomorrows_winner.models import Competition, CompetitionOption, Guess, Result
from tomorrows_winner.services.timing import competition_phase, next_action_time

router = APIRouter(tags=["competitions"])


def competition_timing(competition: Competition) -> CompetitionTiming:
    return CompetitionTiming(
        start_at=to_et(competition.start_at),
        deadline_at=to_et(competition.deadline_at),
        evaluation_start_at=to_et(competition.evaluation_start_at),
        evaluation_end_at=to_et(competition.evaluation_end_at),
        timezone=competition.timezone,
    )


def _serialize(competition: Competition) -> dict[str, object]:
    timing = competition_timing(competition)
    now = utc_now()
    upcoming = next_action_time(timing, now)
    return {
        "id": competition.id,
        "category": competition.category,
        "title": competition.title,
        "slug": competition.slug,
        "timing": timing.as_dict(),
        "phase": competition_phase(timing, now).value,
        "next_phase": upcoming[0].value if upcoming else None,
        "next_phase_at": upcoming[1].isoformat() if upcoming else None,
        "closed_at": competition.closed_at,
        "ended_at": competition.ended_at,
    }


@router.get("/competitions")
def list_competitions(
    category: str | None = Query(None),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
) -> list[dict[str, object]]:
    stmt = select(Competition).order_by(desc(Competition.start_at), desc(Competition.id)).limit(limit)
    if category:
        stmt = stmt.where(Competition.category == category)
    return [_serialize(row) for row in db.execute(stmt).scalars().all()]


@router.get("/competitions/{slug}")
def competition_detail(slug: str, db: Session = Depends(get_db)) -> dict[str, object]:
    competition = db.execute(select(Competition).where(Competition.slug == slug)).scalars().first()
    if competition is None:
        raise HTTPException(status_code=404, detail=f"competition '{slug}' not found")

    option_count = db.scalar(select(func.count(CompetitionOption.id)).where(CompetitionOption.competition_id == competition.id))
    total_votes = db.scalar(select(func.count(Guess.id)).where(Guess.competition_id == competition.id))
    results = db.execute(
        select(Result, CompetitionOption.symbol)
        .join(CompetitionOption, Result.option_id == CompetitionOption.id)
        .where(Result.competition_id == competition.id)
        .order_by(Result.rank.asc())
    ).all()
    return {
        **_serialize(competition),
        "options": int(option_count or 0),
        "total_votes": int(total_votes or 0),
        "results": [
            {
                "rank": result.rank,
                "symbol": symbol,
                "percent_change": float(result.percent_change),
                "is_winner": result.is_winner,
            }
            for result, symbol in results
        ],
    }
