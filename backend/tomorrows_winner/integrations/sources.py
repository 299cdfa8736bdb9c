from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

import requests

from tomorrows_winner.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataSourceError(RuntimeError):
    def __init__(self, what: str, failures: list[tuple[str, str]]) -> None:
        self.what = what
        self.failures = failures
        detail = ", ".join(f"{name}: {message}" for name, message in failures) or "no sources configured"
        super().__init__(f"all sources failed for {what} ({detail})")


def first_success(what: str, attempts: Sequence[tuple[str, Callable[[], T]]]) -> tuple[str, T]:
    """Run ``attempts`` in order and return ``(source_name, value)`` of the first
    one that does not raise."""
    failures: list[tuple[str, str]] = []
    for name, attempt in attempts:
        try:
            return name, attempt()
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s source %s failed: %s", what, name, exc)
            failures.append((name, str(exc)))
    raise DataSourceError(what, failures)


def get_json(settings: Settings, url: str, params: dict[str, object] | None = None, headers: dict[str, str] | None = None) -> object:
    response = requests.get(
        url,
        params=params,
        headers={
            "Accept": "application/json",
            "User-Agent": settings.http_user_agent,
            **(headers or {}),
        },
        timeout=settings.http_timeout_sec,
    )
    response.raise_for_status()
    return response.json()
