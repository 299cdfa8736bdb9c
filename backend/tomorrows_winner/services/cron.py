from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from tomorrows_winner.config import Settings
from tomorrows_winner.core.clock import as_utc, et_date, is_time_match, local_midnight, utc_now
from tomorrows_winner.domain.competitions import (
    CompetitionConfig,
    get_competition_config,
    require_competition_config,
)
from tomorrows_winner.domain.enums import ActionType
from tomorrows_winner.models import CronRun
from tomorrows_winner.services.lifecycle import close_competitions, create_competition, end_competitions
from tomorrows_winner.services.timing import should_run_competition

logger = logging.getLogger(__name__)

RUN_TYPES = ("unified", "manual")


@dataclass(frozen=True)
class CronAction:
    type: ActionType
    category: str
    should_run: Callable[[datetime], bool]
    handler: Callable[[Session, Settings, datetime], dict]


def _tomorrow(now: datetime) -> datetime:
    return local_midnight(et_date(now) + timedelta(days=1))


def run_action(session: Session, settings: Settings, category: str, action: ActionType, now: datetime) -> dict:
    config = require_competition_config(category)
    if action is ActionType.CREATE:
        return create_competition(session, settings, config, now)
    if action is ActionType.CLOSE:
        return close_competitions(session, config, now)
    return end_competitions(session, settings, config, now)


def _handler(category: str, action: ActionType) -> Callable[[Session, Settings, datetime], dict]:
    def handler(session: Session, settings: Settings, now: datetime) -> dict:
        return run_action(session, settings, category, action, now)

    return handler


def actions_for_config(config: CompetitionConfig) -> list[CronAction]:
    schedule = config.schedule

    def create_due(now: datetime) -> bool:
        return is_time_match(now, schedule.create_at.hour, schedule.create_at.minute) and should_run_competition(
            config, _tomorrow(now)
        )

    # The vote closes the evening before evaluation, so the gate looks at tomorrow.
    def close_due(now: datetime) -> bool:
        return is_time_match(now, schedule.close_at.hour, schedule.close_at.minute) and should_run_competition(
            config, _tomorrow(now)
        )

    def end_due(now: datetime) -> bool:
        return is_time_match(now, schedule.end_at.hour, schedule.end_at.minute)

    return [
        CronAction(ActionType.CREATE, config.id, create_due, _handler(config.id, ActionType.CREATE)),
        CronAction(ActionType.CLOSE, config.id, close_due, _handler(config.id, ActionType.CLOSE)),
        CronAction(ActionType.END, config.id, end_due, _handler(config.id, ActionType.END)),
    ]


def build_actions(settings: Settings) -> list[CronAction]:
    actions: list[CronAction] = []
    for category in settings.enabled_categories:
        config = get_competition_config(category)
        if config is None:
            logger.warning("Ignoring unknown competition category '%s'", category)
            continue
        actions.extend(actions_for_config(config))
    return actions


def manual_action(category: str, action: ActionType) -> CronAction:
    return CronAction(action, category, lambda _now: True, _handler(category, action))


def execute(
    session: Session,
    settings: Settings,
    now: datetime | None = None,
    actions: list[CronAction] | None = None,
) -> dict:
    """Run every action whose predicate matches ``now``.

    One failing action is recorded in the report and never stops the others.
    """
    now = as_utc(now) if now is not None else utc_now()
    if actions is None:
        actions = build_actions(settings)

    results: list[dict[str, object]] = []
    for action in actions:
        if not action.should_run(now):
            continue
        entry: dict[str, object] = {"type": action.type.value, "category": action.category}
        try:
            entry["result"] = action.handler(session, settings, now)
            entry["success"] = True
        except Exception as exc:  # noqa: BLE001
            session.rollback()
            logger.exception("Cron action %s/%s failed", action.category, action.type.value)
            entry["success"] = False
            entry["error"] = str(exc)
        results.append(entry)

    return {
        "timestamp": now.isoformat(),
        "actions_executed": len(results),
        "results": results,
    }


def _log_run(
    session: Session,
    *,
    run_type: str,
    status: str,
    actions_executed: int,
    stats: dict,
    error: str | None = None,
) -> None:
    session.add(
        CronRun(
            run_type=run_type,
            status=status,
            actions_executed=actions_executed,
            stats_json=json.dumps(stats, sort_keys=True, default=str),
            error=error,
        )
    )
    session.commit()


def run_and_log(
    session: Session,
    settings: Settings,
    now: datetime | None = None,
    run_type: str = "unified",
    actions: list[CronAction] | None = None,
) -> dict:
    report = execute(session, settings, now=now, actions=actions)
    errors = {
        f"{item['category']}:{item['type']}": item["error"] for item in report["results"] if not item["success"]
    }
    _log_run(
        session,
        run_type=run_type,
        status="ok" if not errors else "error",
        actions_executed=report["actions_executed"],
        stats=report,
        error=json.dumps(errors, sort_keys=True) if errors else None,
    )
    if report["actions_executed"]:
        logger.info("Cron %s run executed %d actions (%d failed)", run_type, report["actions_executed"], len(errors))
    return report


def list_cron_runs(session: Session, limit: int = 50) -> list[dict[str, object]]:
    rows = (
        session.execute(select(CronRun).order_by(desc(CronRun.created_at), desc(CronRun.id)).limit(limit))
        .scalars()
        .all()
    )
    return [
        {
            "id": row.id,
            "created_at": row.created_at,
            "run_type": row.run_type,
            "status": row.status,
            "actions_executed": row.actions_executed,
            "stats_json": row.stats_json,
            "error": row.error,
        }
        for row in rows
    ]


def latest_run_statuses(session: Session) -> dict[str, dict[str, object] | None]:
    output: dict[str, dict[str, object] | None] = {}
    for run_type in RUN_TYPES:
        row = (
            session.execute(
                select(CronRun)
                .where(CronRun.run_type == run_type)
                .order_by(desc(CronRun.created_at), desc(CronRun.id))
                .limit(1)
            )
            .scalars()
            .first()
        )
        output[run_type] = (
            {
                "status": row.status,
                "created_at": row.created_at,
                "actions_executed": row.actions_executed,
                "error": row.error,
            }
            if row is not None
            else None
        )
    return output
