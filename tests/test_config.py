import pytest
from pydantic import ValidationError

from ingest.config import Settings, load_settings
from ingest.infra.scheduler import Scheduler


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("INGEST_CONFIG", "INGEST_DB_PATH", "SCHEDULER_MODE"):
        monkeypatch.delenv(name, raising=False)


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "absent.yaml"))
    assert settings == Settings()
    assert settings.intervals == {"news": 6, "events": 6, "businesses": 168}
    assert settings.scheduler.jobs["businesses"] == "0 6 * * mon"


def test_yaml_values_and_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(
        "db_path: custom.db\n"
        "http:\n"
        "  retry:\n"
        "    max_attempts: 5\n"
        "    backoff_ms: 200\n"
        "intervals:\n"
        "  news: 3\n"
    )
    settings = load_settings(str(path))
    assert settings.db_path == "custom.db"
    assert settings.http.retry.policy().max_attempts == 5
    assert settings.http.retry.policy().backoff_seconds == 0.2
    assert settings.intervals == {"news": 3}

    monkeypatch.setenv("INGEST_CONFIG", str(path))
    monkeypatch.setenv("INGEST_DB_PATH", "/tmp/override.db")
    monkeypatch.setenv("SCHEDULER_MODE", "disabled")
    settings = load_settings()
    assert settings.db_path == "/tmp/override.db"
    assert settings.scheduler.mode == "disabled"


def test_invalid_values_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("http:\n  timeout: 0\n")
    with pytest.raises(ValidationError):
        load_settings(str(path))


@pytest.mark.parametrize(
    "expression,valid",
    [
        ("0 6 * * *", True),
        ("0 6 * * mon", True),
        ("*/15 * * * *", True),
        ("0 6 * *", False),
        ("0 6 * * * *", False),
        ("61 6 * * *", False),
    ],
)
def test_validate_cron_expression(expression, valid):
    assert Scheduler.validate_cron_expression(expression) is valid


async def noop(type_):
    return type_


async def test_add_cron_job_registers_job():
    scheduler = Scheduler()
    scheduler.add_cron_job(noop, "0 6 * * mon", job_id="ingest-businesses", args=("businesses",))
    jobs = scheduler.list_jobs()
    assert list(jobs) == ["ingest-businesses"]
    assert "day_of_week='mon'" in jobs["ingest-businesses"]["trigger"]

    with pytest.raises(ValueError):
        scheduler.add_cron_job(noop, "not a cron", job_id="bad")
