"""
Tests for core configuration.

Settings are read from BIGTOOL_* environment variables; get_settings()
caches one instance per process.
"""

import pytest
from pydantic import ValidationError

from bigtool.core.config import EmptyQueryPolicy, Settings, get_settings


# =============================================================================
# Defaults
# =============================================================================


class TestSettingsDefaults:
    """Default values match the documented configuration."""

    def test_cache_ttl_defaults_to_seven_days(self):
        """Cached embeddings are retained for a week by default."""
        assert Settings().cache_ttl_seconds == 7 * 24 * 60 * 60

    def test_retrieval_limit_defaults_to_two(self):
        assert Settings().retrieval_limit == 2

    def test_empty_query_policy_defaults_to_show_all(self):
        assert Settings().empty_query_policy == EmptyQueryPolicy.SHOW_ALL

    def test_search_is_not_strict_by_default(self):
        assert Settings().strict_search is False

    def test_query_embeddings_are_cached_by_default(self):
        assert Settings().cache_query_embeddings is True

    def test_turn_loop_is_bounded_by_default(self):
        assert Settings().max_turn_iterations == 10


# =============================================================================
# Environment
# =============================================================================


class TestSettingsEnvironment:
    """Environment variables with the BIGTOOL_ prefix override defaults."""

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("BIGTOOL_REDIS_URL", "redis://cache:6380")
        monkeypatch.setenv("BIGTOOL_CACHE_NAMESPACE", "prod:embeddings")
        monkeypatch.setenv("BIGTOOL_RETRIEVAL_LIMIT", "5")
        monkeypatch.setenv("BIGTOOL_EMPTY_QUERY_POLICY", "empty")

        settings = Settings()

        assert settings.redis_url == "redis://cache:6380"
        assert settings.cache_namespace == "prod:embeddings"
        assert settings.retrieval_limit == 5
        assert settings.empty_query_policy == EmptyQueryPolicy.EMPTY

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_picks_up_new_environment(self, monkeypatch):
        """get_settings.cache_clear() makes environment changes visible."""
        first = get_settings()
        monkeypatch.setenv("BIGTOOL_RETRIEVAL_LIMIT", "7")
        get_settings.cache_clear()

        second = get_settings()

        assert second is not first
        assert second.retrieval_limit == 7


# =============================================================================
# Validation
# =============================================================================


class TestSettingsValidation:
    """Field validators reject malformed values."""

    def test_rejects_non_redis_url(self):
        with pytest.raises(ValidationError):
            Settings(redis_url="http://localhost:6379")

    def test_accepts_tls_redis_url(self):
        assert Settings(redis_url="rediss://cache:6380").redis_url == "rediss://cache:6380"

    def test_strips_trailing_slash_from_embeddings_url(self):
        settings = Settings(embeddings_service_url="http://embeddings:8001/")
        assert settings.embeddings_service_url == "http://embeddings:8001"

    def test_rejects_embeddings_url_without_scheme(self):
        with pytest.raises(ValidationError):
            Settings(embeddings_service_url="embeddings:8001")

    def test_normalizes_log_level(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="VERBOSE")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("cache_ttl_seconds", 0),
            ("retrieval_limit", 0),
            ("embeddings_batch_size", 0),
            ("max_turn_iterations", 0),
            ("cache_operation_timeout_seconds", 0.0),
        ],
    )
    def test_rejects_out_of_range_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_rejects_empty_namespace(self):
        with pytest.raises(ValidationError):
            Settings(cache_namespace="")
