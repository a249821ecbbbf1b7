import pytest

from helpers import ENCRYPTION_KEY


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """
    Ensure tests never pick up real credentials or scheduler flags from .env
    """
    from tracker.config import settings

    monkeypatch.setattr(settings, "INTEGRATION_ENCRYPTION_KEY", ENCRYPTION_KEY)
    monkeypatch.setattr(settings, "TRAKT_CLIENT_ID", "test-client")
    monkeypatch.setattr(settings, "TMDB_API_KEY", None)
    monkeypatch.setattr(settings, "ENABLE_SCHEDULER", False)
    monkeypatch.setattr(settings, "SYNC_ON_STARTUP", False)
    monkeypatch.setattr(settings, "SYNC_USER_DELAY_SECONDS", 0)
