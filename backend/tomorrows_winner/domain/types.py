from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True, slots=True)
class PriceObservation:
    """One daily price record. ``symbol`` is the ticker for equities and the
    provider coin id for crypto."""

    symbol: str
    as_of_date: date
    close: float | None
    previous_close: float | None = None
    daily_change_percent: float | None = None

    def __post_init__(self) -> None:
        if not self.symbol.strip():
            raise ValueError("symbol must not be empty")


@dataclass(frozen=True, slots=True)
class RankedResult:
    symbol: str
    percent_change: float
    rank: int
    is_winner: bool

    def __post_init__(self) -> None:
        if self.rank < 1:
            raise ValueError("rank must be 1 or greater")


@dataclass(frozen=True, slots=True)
class GuessPick:
    user_id: str
    option_id: int
    symbol: str


@dataclass(frozen=True, slots=True)
class ScoreAward:
    user_id: str
    option_id: int
    symbol: str
    points: int
    rank: int | None
    percent_change: float | None
    total_ranked: int
    is_winner: bool

    def metadata(self) -> dict[str, object]:
        return {
            "rank": self.rank,
            "symbol": self.symbol,
            "percent_change": self.percent_change,
            "total_ranked": self.total_ranked,
        }


@dataclass(frozen=True, slots=True)
class CompetitionTiming:
    start_at: datetime
    deadline_at: datetime
    evaluation_start_at: datetime
    evaluation_end_at: datetime
    timezone: str

    def as_dict(self) -> dict[str, str]:
        return {
            "start_at": self.start_at.isoformat(),
            "deadline_at": self.deadline_at.isoformat(),
            "evaluation_start_at": self.evaluation_start_at.isoformat(),
            "evaluation_end_at": self.evaluation_end_at.isoformat(),
            "timezone": self.timezone,
        }
