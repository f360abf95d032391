"""Settings defaults and derived values."""
from __future__ import annotations

from app.config import Settings
from app.constants import DEFAULT_NOTIFICATION_CAP


def test_retention_cap_defaults_to_shared_constant(monkeypatch) -> None:
    monkeypatch.delenv("NOTIFICATION_RETENTION_CAP", raising=False)

    settings = Settings(DATABASE_URL="sqlite+pysqlite:///:memory:")

    assert settings.notification_retention_cap == DEFAULT_NOTIFICATION_CAP


def test_staff_roles_are_normalised(monkeypatch) -> None:
    monkeypatch.setenv("FEEDBACK_STAFF_ROLES", " Admin, office ,,marketing")

    settings = Settings(DATABASE_URL="sqlite+pysqlite:///:memory:")

    assert settings.staff_role_names == ["admin", "office", "marketing"]
