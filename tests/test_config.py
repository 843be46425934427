"""Tests for settings loading."""

from crawler_combat.config import Settings, get_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch):
        """Test the default values."""
        monkeypatch.delenv("CRAWLER_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.database_url.startswith("sqlite+aiosqlite")
        assert settings.terminology_mode == "classic"
        assert settings.formation_front_capacity == 3
        assert settings.formation_back_capacity == 3
        assert settings.default_experience_value == 10
        assert settings.rng_seed is None

    def test_environment_overrides(self, monkeypatch):
        """Test that CRAWLER_ variables override defaults."""
        monkeypatch.setenv("CRAWLER_TERMINOLOGY_MODE", "cyber")
        monkeypatch.setenv("CRAWLER_RNG_SEED", "42")
        monkeypatch.setenv("CRAWLER_FORMATION_FRONT_CAPACITY", "2")

        settings = Settings(_env_file=None)

        assert settings.terminology_mode == "cyber"
        assert settings.rng_seed == 42
        assert settings.formation_front_capacity == 2

    def test_get_settings_is_cached(self):
        """Test that get_settings returns one shared instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()
