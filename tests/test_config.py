# Overview: Pytest coverage for duration parsing and database URL assembly.

from datetime import timedelta

import pytest

from shelfguard import config


@pytest.mark.parametrize("raw, expected", [
    ("30s", timedelta(seconds=30)),
    ("15m", timedelta(minutes=15)),
    ("1h", timedelta(hours=1)),
    ("7d", timedelta(days=7)),
    ("90", timedelta(seconds=90)),
    (45, timedelta(seconds=45)),
    (timedelta(minutes=2), timedelta(minutes=2)),
])
def test_parse_duration(raw, expected):
    assert config.parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", "soon", "1w", "-5m", None])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        config.parse_duration(raw)


class TestDatabaseUri:
    def _clear(self, monkeypatch):
        for name in ("DATABASE_URL", "DB_HOST", "DB_DIALECT", "DB_USER", "DB_PASSWORD", "DB_PORT", "DB_NAME"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults_to_sqlite(self, monkeypatch):
        self._clear(monkeypatch)
        assert config._database_uri() == "sqlite:///shelfguard.sqlite3"

    def test_database_url_wins(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/x")
        monkeypatch.setenv("DB_HOST", "ignored")
        assert config._database_uri() == "postgresql://u:p@db/x"

    def test_assembled_from_parts(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv("DB_HOST", "db.internal")
        monkeypatch.setenv("DB_DIALECT", "postgres")
        monkeypatch.setenv("DB_USER", "shelf")
        monkeypatch.setenv("DB_PASSWORD", "pw")
        monkeypatch.setenv("DB_NAME", "inventory")
        assert config._database_uri() == "postgresql://shelf:pw@db.internal:5432/inventory"


def test_cors_origins_split(monkeypatch):
    monkeypatch.setenv("CORS_ORIGIN", "http://a.test, http://b.test")
    assert config._cors_origins() == ["http://a.test", "http://b.test"]
