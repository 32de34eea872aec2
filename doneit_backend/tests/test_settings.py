from dataclasses import replace

import pytest

from src.api import repositories
from src.api.db import SQLiteRepository
from src.api.pg import PostgresRepository, build_connect_args, normalize_database_url
from src.api.settings import get_settings

_ENV = (
    "DATABASE_URL",
    "SQLITE_DB_PATH",
    "DB_POSTGRESDB_SSL_ENABLED",
    "DB_POSTGRESDB_SSL_REJECT_UNAUTHORIZED",
    "DB_POOL_SIZE",
    "APP_ENV",
    "CORS_ALLOW_ORIGINS",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def fresh_repository_cache():
    repositories._build_repository.cache_clear()
    yield
    repositories._build_repository.cache_clear()


class TestSettings:
    def test_defaults(self, clean_env):
        s = get_settings()
        assert s.database_url is None
        assert s.persistence_backend == "sqlite"
        assert s.sqlite_db_path == "./data/doneit.db"
        assert s.db_ssl_enabled is False
        assert s.db_ssl_reject_unauthorized is True
        assert s.session_cookie_name == "done-it-session"
        assert s.session_max_age == 60 * 60 * 24 * 7
        assert s.is_production is False
        assert s.cors_allow_origins == ["*"]
        assert s.log_level == "INFO"

    def test_connection_string_selects_postgres(self, clean_env):
        clean_env.setenv("DATABASE_URL", "postgresql://u:p@db:5432/doneit")
        assert get_settings().persistence_backend == "postgres"

    def test_blank_connection_string_is_ignored(self, clean_env):
        clean_env.setenv("DATABASE_URL", "   ")
        assert get_settings().persistence_backend == "sqlite"

    def test_parsing(self, clean_env):
        clean_env.setenv("DB_POSTGRESDB_SSL_ENABLED", "true")
        clean_env.setenv("DB_POSTGRESDB_SSL_REJECT_UNAUTHORIZED", "false")
        clean_env.setenv("DB_POOL_SIZE", "not-a-number")
        clean_env.setenv("APP_ENV", "production")
        clean_env.setenv("CORS_ALLOW_ORIGINS", "http://a.test, http://b.test ,")
        clean_env.setenv("LOG_LEVEL", "loud")
        s = get_settings()
        assert s.db_ssl_enabled is True
        assert s.db_ssl_reject_unauthorized is False
        assert s.db_pool_size == 5
        assert s.is_production is True
        assert s.cors_allow_origins == ["http://a.test", "http://b.test"]
        assert s.log_level == "INFO"


class TestBackendSelection:
    def test_sqlite_without_connection_string(self, clean_env, fresh_repository_cache, tmp_path):
        clean_env.setenv("SQLITE_DB_PATH", str(tmp_path / "nested" / "app.db"))
        repo = repositories.get_repository()
        assert isinstance(repo, SQLiteRepository)
        assert repositories.get_repository() is repo
        assert (tmp_path / "nested" / "app.db").exists()

    @pytest.mark.parametrize("url", ["postgres://u:p@db.invalid:5432/doneit", "postgresql://u:p@db.invalid:5432/doneit"])
    def test_postgres_with_connection_string(self, clean_env, fresh_repository_cache, url):
        clean_env.setenv("DATABASE_URL", url)
        # Building the engine does not connect
        repo = repositories._build_repository()
        assert isinstance(repo, PostgresRepository)
        assert repo._engine.dialect.driver == "psycopg2"

    def test_postgres_requires_connection_string(self, clean_env):
        with pytest.raises(ValueError, match="DATABASE_URL"):
            PostgresRepository.from_settings(replace(get_settings(), database_url=None))


class TestPostgresHelpers:
    def test_normalize_database_url(self):
        assert normalize_database_url("postgres://u@h/db") == "postgresql+psycopg2://u@h/db"
        assert normalize_database_url(" postgresql://u@h/db ") == "postgresql+psycopg2://u@h/db"
        assert normalize_database_url("postgresql+psycopg://u@h/db") == "postgresql+psycopg://u@h/db"
        assert normalize_database_url("postgresql+psycopg2://u@h/db") == "postgresql+psycopg2://u@h/db"

    @pytest.mark.parametrize(
        "enabled,reject,mode",
        [(False, True, "disable"), (False, False, "disable"), (True, True, "verify-full"), (True, False, "require")],
    )
    def test_ssl_modes(self, enabled, reject, mode):
        assert build_connect_args(enabled, reject) == {"sslmode": mode}
