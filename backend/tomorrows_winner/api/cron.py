from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from tomorrows_winner.config import get_settings
from tomorrows_winner.core.scheduler import scheduler_is_running, scheduler_next_run_times
from tomorrows_winner.db import can_reach_db, get_db
from tomorrows_winner.domain.enums import ActionType
from tomorrows_winner.services.cron import latest_run_statuses, list_cron_runs, manual_action, run_and_log

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cron"])

ACTION_ALIASES = {"new": ActionType.CREATE}


@dataclass(frozen=True)
class CronAuth:
    ok: bool
    provided: str
    source: str

    def context(self) -> dict[str, str]:
        return {"provided": "***" if self.provided else "none", "source": self.source}


def _matches(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode(), expected.encode())


def read_cron_secret(header_value: str | None, query_value: str | None, configured: str) -> CronAuth:
    """Check a trigger secret taken from the header, else the query string.

    The configured value may be wrapped in quotes, and when it contains ``#`` the
    part before it is accepted too. An empty configured secret rejects everything.
    """
    expected = configured.strip()
    if len(expected) >= 2 and expected[0] == expected[-1] and expected[0] in {"'", '"'}:
        expected = expected[1:-1]
    expected_prefix = expected.split("#", 1)[0]

    if header_value is not None:
        provided, source = header_value, "header" if header_value else "none"
    elif query_value is not None:
        provided, source = query_value, "query" if query_value else "none"
    else:
        provided, source = "", "none"

    ok = bool(expected) and (
        _matches(provided, expected) or (bool(expected_prefix) and _matches(provided, expected_prefix))
    )
    return CronAuth(ok=ok, provided=provided, source=source)


def _error(status_code: int, message: str, context: dict | None = None) -> JSONResponse:
    payload: dict[str, object] = {"ok": False, "error": message}
    if context:
        payload["context"] = context
    return JSONResponse(status_code=status_code, content=payload)


def _authorize(x_cron_secret: str | None, secret: str | None) -> CronAuth:
    auth = read_cron_secret(x_cron_secret, secret, get_settings().cron_secret)
    if not auth.ok:
        logger.warning("Rejected cron trigger: %s", auth.context())
    return auth


@router.post("/cron/unified", response_model=None)
def cron_unified(
    x_cron_secret: str | None = Header(default=None),
    secret: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict[str, object] | JSONResponse:
    auth = _authorize(x_cron_secret, secret)
    if not auth.ok:
        return _error(403, "forbidden", auth.context())
    if not can_reach_db(db):
        return _error(500, "datastore unavailable")

    report = run_and_log(db, get_settings(), run_type="unified")
    return {"ok": True, **report}


@router.get("/cron/unified")
def cron_unified_get() -> PlainTextResponse:
    return PlainTextResponse("Use POST with x-cron-secret header", status_code=405)


@router.post("/competition/{category}/{action}", response_model=None)
def competition_action(
    category: str,
    action: str,
    x_cron_secret: str | None = Header(default=None),
    secret: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict[str, object] | JSONResponse:
    auth = _authorize(x_cron_secret, secret)
    if not auth.ok:
        return _error(403, "forbidden", auth.context())

    action_type = ACTION_ALIASES.get(action)
    if action_type is None:
        try:
            action_type = ActionType(action)
        except ValueError:
            return _error(404, f"unknown action '{action}'")

    if not can_reach_db(db):
        return _error(500, "datastore unavailable")

    report = run_and_log(db, get_settings(), run_type="manual", actions=[manual_action(category, action_type)])
    return {"ok": True, **report}


@router.get("/competition/{category}/{action}")
def competition_action_get(category: str, action: str) -> PlainTextResponse:
    return PlainTextResponse("Use POST with x-cron-secret header", status_code=405)


@router.get("/cron/runs")
def cron_runs(limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)) -> list[dict[str, object]]:
    return list_cron_runs(db, limit=limit)


@router.get("/cron/health")
def cron_health(db: Session = Depends(get_db)) -> dict[str, object]:
    return {
        "scheduler_enabled": scheduler_is_running(),
        "next_run_times": scheduler_next_run_times(),
        "last_run_statuses": latest_run_statuses(db),
        "enabled_categories": list(get_settings().enabled_categories),
    }
