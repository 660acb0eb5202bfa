"""Unit tests for settings parsing and production validation."""

import pytest

from infrastructure.config.settings import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        "url",
        ["postgres://u:p@db:5432/bt", "postgresql://u:p@db:5432/bt"],
    )
    def test_rewritten_to_asyncpg(self, url):
        assert _settings(database_url=url).database_url == "postgresql+asyncpg://u:p@db:5432/bt"

    def test_sqlite_untouched(self):
        url = "sqlite+aiosqlite:///:memory:"
        assert _settings(database_url=url).database_url == url


class TestSecrets:
    def test_development_generates_secret(self):
        s = _settings(environment="development", jwt_secret_key="")
        assert len(s.jwt_secret_key) >= 32

    def test_production_requires_secret(self):
        s = _settings(environment="production", jwt_secret_key="", resend_api_key="re_x")
        assert s.jwt_secret_key == ""
        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            s.validate_production_secrets()

    def test_production_requires_email_key(self):
        s = _settings(environment="production", jwt_secret_key="k" * 40, resend_api_key=None)
        with pytest.raises(ValueError, match="RESEND_API_KEY"):
            s.validate_production_secrets()

    def test_production_valid(self):
        s = _settings(environment="production", jwt_secret_key="k" * 40, resend_api_key="re_x")
        s.validate_production_secrets()


class TestCorsOrigins:
    def test_comma_separated(self):
        s = _settings(cors_origins="https://app.example.com/, https://admin.example.com")
        assert s.cors_origins_list == ["https://app.example.com", "https://admin.example.com"]

    def test_json_list(self):
        s = _settings(cors_origins='["https://app.example.com/"]')
        assert s.cors_origins_list == ["https://app.example.com"]
