import logging

from intake.core.config import Settings, setup_logging

def test_defaults():
    s = Settings(_env_file=None)
    assert s.upload_attempt_limit == 3
    assert s.rate_limit_cooldown_seconds == 30
    assert (s.birth_year_min, s.birth_year_max) == (1970, 2011)

def test_env_overrides(monkeypatch):
    monkeypatch.setenv("UPLOAD_ATTEMPT_LIMIT", "5")
    monkeypatch.setenv("BACKEND_BASE_URL", "https://backend.test")
    s = Settings(_env_file=None)
    assert s.upload_attempt_limit == 5
    assert s.backend_base_url == "https://backend.test"

def test_setup_logging_quiets_httpx():
    setup_logging("debug")
    assert logging.getLogger("httpx").level == logging.WARNING
