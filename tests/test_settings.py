import structlog

from dsreader.log import configure_logging
from dsreader.settings import DEFAULT_BASE_URL, Settings


def test_settings_load_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("DSREADER_BASE_URL", "https://repo.test/")
    monkeypatch.setenv("DSREADER_PAGE_SIZE", "25")
    monkeypatch.setenv("DSREADER_TIMEOUT", "5")

    settings = Settings.load()

    assert settings.base_url == "https://repo.test"
    assert settings.rest_url == "https://repo.test/rest"
    assert settings.page_size == 25
    assert settings.timeout_seconds == 5.0


def test_settings_defaults(monkeypatch) -> None:
    for key in ("DSREADER_BASE_URL", "DSREADER_PAGE_SIZE", "DSREADER_TIMEOUT", "DSREADER_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings.load()

    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.page_size == 100
    assert settings.log_level == "INFO"


def test_configure_logging_filters_below_level(capsys) -> None:
    configure_logging("WARNING")
    log = structlog.get_logger("dsreader.test")
    log.info("hidden.event")
    log.warning("shown.event", key="value")

    err = capsys.readouterr().err
    assert "hidden.event" not in err
    assert "shown.event" in err
    assert "key=value" in err
