"""competition schema

Revision ID: 0001_competition_schema
Revises:
Create Date: 2026-10-05 00:00:00

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_competition_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "competitions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category", sa.String(length=16), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(length=64), nullable=False, unique=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deadline_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("evaluation_start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("evaluation_end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_competitions_category_deadline", "competitions", ["category", "deadline_at"])
    op.create_index("ix_competitions_category_evaluation_end", "competitions", ["category", "evaluation_end_at"])

    op.create_table(
        "options",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("competition_id", sa.Integer(), sa.ForeignKey("competitions.id"), nullable=False),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("coin_id", sa.String(length=128), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        sa.UniqueConstraint("competition_id", "symbol", name="uq_options_competition_symbol"),
    )
    op.create_index("ix_options_competition_id", "options", ["competition_id"])

    op.create_table(
        "guesses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("competition_id", sa.Integer(), sa.ForeignKey("competitions.id"), nullable=False),
        sa.Column("option_id", sa.Integer(), sa.ForeignKey("options.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "competition_id", name="uq_guesses_user_competition"),
    )
    op.create_index("ix_guesses_competition_id", "guesses", ["competition_id"])

    op.create_table(
        "results",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("competition_id", sa.Integer(), sa.ForeignKey("competitions.id"), nullable=False),
        sa.Column("option_id", sa.Integer(), sa.ForeignKey("options.id"), nullable=False),
        sa.Column("percent_change", sa.Numeric(20, 10), nullable=False),
        sa.Column("is_winner", sa.Boolean(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.UniqueConstraint("competition_id", "option_id", name="uq_results_competition_option"),
    )
    op.create_index("ix_results_competition_id", "results", ["competition_id"])

    op.create_table(
        "scores",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("competition_id", sa.Integer(), sa.ForeignKey("competitions.id"), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        sa.UniqueConstraint("user_id", "competition_id", name="uq_scores_user_competition"),
    )
    op.create_index("ix_scores_user_id", "scores", ["user_id"])
    op.create_index("ix_scores_competition_id", "scores", ["competition_id"])

    op.create_table(
        "equity_tickers",
        sa.Column("symbol", sa.String(length=32), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
    )

    op.create_table(
        "equity_prices_eod",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("close", sa.Numeric(20, 6), nullable=True),
        sa.Column("previous_close", sa.Numeric(20, 6), nullable=True),
        sa.Column("daily_change_percent", sa.Numeric(20, 10), nullable=True),
        sa.UniqueConstraint("symbol", "as_of_date", name="uq_equity_prices_symbol_date"),
    )
    op.create_index("ix_equity_prices_eod_as_of_date", "equity_prices_eod", ["as_of_date"])

    op.create_table(
        "crypto_coins",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("symbol", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=True),
    )

    op.create_table(
        "crypto_prices_daily",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coin_id", sa.String(length=128), nullable=False),
        sa.Column("as_of_date", sa.Date(), nullable=False),
        sa.Column("price_usd", sa.Numeric(30, 12), nullable=True),
        sa.Column("market_cap", sa.Numeric(30, 2), nullable=True),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.UniqueConstraint("coin_id", "as_of_date", name="uq_crypto_prices_coin_date"),
    )
    op.create_index("ix_crypto_prices_daily_as_of_date", "crypto_prices_daily", ["as_of_date"])


def downgrade() -> None:
    op.drop_index("ix_crypto_prices_daily_as_of_date", table_name="crypto_prices_daily")
    op.drop_table("crypto_prices_daily")
    op.drop_table("crypto_coins")
    op.drop_index("ix_equity_prices_eod_as_of_date", table_name="equity_prices_eod")
    op.drop_table("equity_prices_eod")
    op.drop_table("equity_tickers")
    op.drop_index("ix_scores_competition_id", table_name="scores")
    op.drop_index("ix_scores_user_id", table_name="scores")
    op.drop_table("scores")
    op.drop_index("ix_results_competition_id", table_name="results")
    op.drop_table("results")
    op.drop_index("ix_guesses_competition_id", table_name="guesses")
    op.drop_table("guesses")
    op.drop_index("ix_options_competition_id", table_name="options")
    op.drop_table("options")
    op.drop_index("ix_competitions_category_evaluation_end", table_name="competitions")
    op.drop_index("ix_competitions_category_deadline", table_name="competitions")
    op.drop_table("competitions")
