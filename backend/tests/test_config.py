from tomorrows_winner.config import get_settings


def test_settings_defaults(monkeypatch) -> None:
    for key in [
        "CRON_SECRET",
        "ENABLE_SCHEDULER",
        "SCHED_REQUIRE_DB",
        "SCHED_TICK_SECOND",
        "ENABLED_CATEGORIES",
        "HTTP_TIMEOUT_SEC",
        "FETCH_BATCH_SIZE",
        "FETCH_BATCH_DELAY_SEC",
        "EQUITY_HISTORY_DAYS",
        "EQUITY_CHART_BASE_URLS",
        "CRYPTO_UNIVERSE_LIMIT",
        "OPTIONS_CHUNK_SIZE",
    ]:
        monkeypatch.delenv(key, raising=False)

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.cron_secret == ""
    assert settings.enable_scheduler is False
    assert settings.sched_require_db is True
    assert settings.sched_tick_second == 5
    assert settings.enabled_categories == ("stocks", "crypto")
    assert settings.http_timeout_sec == 10.0
    assert settings.fetch_batch_size == 25
    assert settings.fetch_batch_delay_sec == 0.5
    assert settings.equity_history_days == 7
    assert settings.equity_chart_base_urls == (
        "https://query1.finance.yahoo.com",
        "https://query2.finance.yahoo.com",
    )
    assert settings.crypto_universe_limit == 100
    assert settings.options_chunk_size == 200


def test_settings_env_overrides_defaults(monkeypatch) -> None:
    monkeypatch.setenv("CRON_SECRET", "s3cret")
    monkeypatch.setenv("ENABLE_SCHEDULER", "true")
    monkeypatch.setenv("ENABLED_CATEGORIES", " crypto ,, ")
    monkeypatch.setenv("FETCH_BATCH_SIZE", "0")
    monkeypatch.setenv("FETCH_BATCH_DELAY_SEC", "0")
    monkeypatch.setenv("HTTP_TIMEOUT_SEC", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.cron_secret == "s3cret"
    assert settings.enable_scheduler is True
    assert settings.enabled_categories == ("crypto",)
    assert settings.fetch_batch_size == 1
    assert settings.fetch_batch_delay_sec == 0.0
    assert settings.http_timeout_sec == 2.5
    assert settings.log_level == "DEBUG"
    get_settings.cache_clear()
