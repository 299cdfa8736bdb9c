"""Static rules for each competition category.

Configs are loaded once at import and never mutated. A new category needs a new
entry here plus its ingest and option-building functions.
"""

from __future__ import annotations

from dataclasses import dataclass

from tomorrows_winner.domain.enums import Category


@dataclass(frozen=True, slots=True)
class LocalTime:
    hour: int
    minute: int

    def __post_init__(self) -> None:
        if not (0 <= self.hour <= 23 and 0 <= self.minute <= 59):
            raise ValueError(f"invalid local time {self.hour:02d}:{self.minute:02d}")


@dataclass(frozen=True, slots=True)
class CompetitionRules:
    points_table: str
    allow_ties: bool
    min_participants: int = 1


@dataclass(frozen=True, slots=True)
class CompetitionSchedule:
    create_at: LocalTime
    close_at: LocalTime
    end_at: LocalTime


@dataclass(frozen=True, slots=True)
class CompetitionConfig:
    id: str
    name: str
    category: Category
    description: str
    slug_prefix: str
    rules: CompetitionRules
    runs_on_weekends: bool
    schedule: CompetitionSchedule
    required_data_sources: tuple[str, ...]
    observation_lag_days: int
    refresh_before_scoring: bool


COMPETITION_CONFIGS: dict[str, CompetitionConfig] = {
    "crypto": CompetitionConfig(
        id="crypto",
        name="Crypto Best Performer",
        category=Category.CRYPTO,
        description="Predict which cryptocurrency will have the highest percentage gain in the next 24 hours.",
        slug_prefix="crypto-best",
        rules=CompetitionRules(
            points_table="ranking_v1",
            allow_ties=True,
            min_participants=1,
        ),
        # 24/7 market
        runs_on_weekends=True,
        schedule=CompetitionSchedule(
            create_at=LocalTime(0, 1),
            close_at=LocalTime(23, 59),
            end_at=LocalTime(16, 30),
        ),
        required_data_sources=("crypto_prices", "crypto_metadata"),
        # A snapshot taken just after midnight describes the previous day's close.
        observation_lag_days=1,
        refresh_before_scoring=False,
    ),
    "stocks": CompetitionConfig(
        id="stocks",
        name="Nasdaq 100 Best Performer",
        category=Category.FINANCE,
        description="Predict which Nasdaq 100 stock will have the highest percentage gain during market hours.",
        slug_prefix="finance-best",
        rules=CompetitionRules(
            points_table="ranking_v1",
            allow_ties=True,
            min_participants=1,
        ),
        runs_on_weekends=False,
        schedule=CompetitionSchedule(
            create_at=LocalTime(0, 1),
            close_at=LocalTime(23, 59),
            end_at=LocalTime(16, 30),
        ),
        required_data_sources=("stock_prices", "nasdaq100_constituents"),
        observation_lag_days=0,
        refresh_before_scoring=True,
    ),
}


def get_competition_config(config_id: str) -> CompetitionConfig | None:
    return COMPETITION_CONFIGS.get(config_id)


def require_competition_config(config_id: str) -> CompetitionConfig:
    config = get_competition_config(config_id)
    if config is None:
        raise ValueError(f"unknown competition category '{config_id}'")
    return config


def all_competition_configs() -> list[CompetitionConfig]:
    return list(COMPETITION_CONFIGS.values())
