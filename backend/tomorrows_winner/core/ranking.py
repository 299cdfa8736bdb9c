from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

from tomorrows_winner.domain.types import GuessPick, PriceObservation, RankedResult, ScoreAward

MAX_SCORING_RANK = 16

RANKING_POINTS: dict[int, int] = {
    1: 100,
    2: 60,
    3: 40,
    4: 25,
    5: 20,
    6: 15,
    7: 12,
    8: 10,
    9: 8,
    10: 7,
    11: 6,
    12: 5,
    13: 4,
    14: 3,
    15: 2,
    16: 1,
}

POINTS_TABLES: dict[str, dict[int, int]] = {"ranking_v1": RANKING_POINTS}


def get_points_table(name: str) -> dict[int, int]:
    table = POINTS_TABLES.get(name)
    if table is None:
        raise ValueError(f"unknown points table '{name}'")
    return table


def points_for_rank(
    rank: int | None,
    table: Mapping[int, int] = RANKING_POINTS,
    max_scoring_rank: int = MAX_SCORING_RANK,
) -> int:
    if rank is None or rank < 1 or rank > max_scoring_rank:
        return 0
    return table.get(rank, 0)


def _finite_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def percent_change(evaluation: PriceObservation, baseline: PriceObservation | None) -> float | None:
    """Fractional change for one asset, or None when it cannot be ranked.

    A provider-supplied daily change (in percent) wins over the close-to-close
    computation, which needs a strictly positive baseline close.
    """
    daily = _finite_or_none(evaluation.daily_change_percent)
    if daily is not None:
        return daily / 100.0

    close = _finite_or_none(evaluation.close)
    base_close = _finite_or_none(baseline.close) if baseline is not None else None
    if close is None or base_close is None or base_close <= 0:
        return None
    return (close - base_close) / base_close


def rank_observations(
    baseline: Iterable[PriceObservation],
    evaluation: Iterable[PriceObservation],
    allow_ties: bool = True,
    eligible: set[str] | None = None,
) -> list[RankedResult]:
    """Order assets by evaluation-window change, best first.

    Ranks are sequential positions even for exact ties (no shared ranks); equal
    changes keep their evaluation encounter order. Top performers are every
    asset equal to the best change when ties are allowed, otherwise only the
    first one.
    """
    baseline_by_symbol = {obs.symbol: obs for obs in baseline}
    evaluation_by_symbol = {obs.symbol: obs for obs in evaluation}

    changes: list[tuple[str, float]] = []
    best_pct = -math.inf
    for symbol, obs in evaluation_by_symbol.items():
        if eligible is not None and symbol not in eligible:
            continue
        pct = percent_change(obs, baseline_by_symbol.get(symbol))
        if pct is None:
            continue
        changes.append((symbol, pct))
        if pct > best_pct:
            best_pct = pct

    ordered = sorted(changes, key=lambda item: item[1], reverse=True)

    results: list[RankedResult] = []
    winner_taken = False
    for position, (symbol, pct) in enumerate(ordered, start=1):
        is_winner = pct == best_pct and (allow_ties or not winner_taken)
        if is_winner:
            winner_taken = True
        results.append(RankedResult(symbol=symbol, percent_change=pct, rank=position, is_winner=is_winner))
    return results


def score_guesses(
    rankings: list[RankedResult],
    guesses: Iterable[GuessPick],
    table: Mapping[int, int] = RANKING_POINTS,
    max_scoring_rank: int = MAX_SCORING_RANK,
) -> list[ScoreAward]:
    by_symbol = {result.symbol: result for result in rankings}
    total_ranked = len(rankings)
    awards: list[ScoreAward] = []
    for guess in guesses:
        ranked = by_symbol.get(guess.symbol)
        rank = ranked.rank if ranked is not None else None
        awards.append(
            ScoreAward(
                user_id=guess.user_id,
                option_id=guess.option_id,
                symbol=guess.symbol,
                points=points_for_rank(rank, table, max_scoring_rank),
                rank=rank,
                percent_change=ranked.percent_change if ranked is not None else None,
                total_ranked=total_ranked,
                is_winner=ranked.is_winner if ranked is not None else False,
            )
        )
    return awards


def summarize_rankings(
    rankings: list[RankedResult],
    awards: list[ScoreAward],
    table: Mapping[int, int] = RANKING_POINTS,
    max_scoring_rank: int = MAX_SCORING_RANK,
    top_n: int = 20,
) -> dict[str, object]:
    winners = [result.symbol for result in rankings if result.is_winner]
    total = len(awards)
    correct = sum(1 for award in awards if award.is_winner)
    scoring = sum(1 for award in awards if award.points > 0)
    return {
        "winners": len(winners),
        "winning_symbols": winners,
        "best_performance": rankings[0].percent_change if rankings else None,
        "options_evaluated": len(rankings),
        "total_guesses": total,
        "correct_guesses": correct,
        "scoring_guesses": scoring,
        "accuracy": (correct / total) * 100 if total else 0.0,
        "scoring_rate": (scoring / total) * 100 if total else 0.0,
        "top_performers": [
            {
                "rank": result.rank,
                "symbol": result.symbol,
                "percent_change": result.percent_change,
                "points": points_for_rank(result.rank, table, max_scoring_rank),
            }
            for result in rankings[:top_n]
        ],
    }
