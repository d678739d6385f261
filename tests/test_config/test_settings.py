"""Tests for environment-based settings."""

import pytest
from pydantic import ValidationError

from src.config.settings import DEFAULT_FEED_URL, ConfigurationError, Settings, load_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.appwrite_collection_id == "articles"
        assert settings.appwrite_platform_collection_id == "platform_stats"
        assert settings.rss_feed_url == DEFAULT_FEED_URL
        assert settings.thm_total_users == 3_000_000
        assert settings.offsec_percentile == "ELITE"
        assert settings.http_timeout_seconds == 15.0
        assert settings.max_http_retries == 2

    def test_reads_environment(self, clean_env):
        clean_env.setenv("APPWRITE_ENDPOINT", "https://cloud.example.com/v1")
        clean_env.setenv("THM_TOTAL_USERS", "4000000")
        clean_env.setenv("HTB_FIELD_PRIORITY", '{"rank": ["global_ranking", "ranking"]}')

        settings = Settings(_env_file=None)

        assert settings.appwrite_endpoint == "https://cloud.example.com/v1"
        assert settings.thm_total_users == 4_000_000
        assert settings.htb_field_priority == {"rank": ["global_ranking", "ranking"]}

    def test_reads_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("THM_USERNAME=alice\nOFFSEC_RANK=12\n")

        settings = Settings(_env_file=env_file)

        assert settings.thm_username == "alice"
        assert settings.offsec_rank == 12

    def test_validate_required_lists_every_missing_var(self, clean_env):
        clean_env.setenv("APPWRITE_PROJECT_ID", "proj")

        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None).validate_required()

        assert exc_info.value.missing == [
            "APPWRITE_ENDPOINT",
            "APPWRITE_API_KEY",
            "APPWRITE_DATABASE_ID",
        ]
        assert "APPWRITE_DATABASE_ID" in str(exc_info.value)

    def test_validate_required_passes(self, test_settings):
        test_settings.validate_required()
        assert test_settings.missing_required == []

    def test_rejects_negative_stats(self, clean_env):
        clean_env.setenv("OFFSEC_PWNED", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize(
        "overrides,expected",
        [
            ({}, (False, False, False)),
            ({"thm_username": "alice"}, (True, False, False)),
            ({"htb_username": "neo"}, (False, False, False)),
            ({"htb_user_id": "2238318", "htb_api_token": "tok"}, (False, True, False)),
            ({"offsec_username": "trinity"}, (False, False, False)),
            ({"offsec_username": "trinity", "offsec_pwned": 3}, (False, False, True)),
        ],
    )
    def test_source_configured_flags(self, clean_env, overrides, expected):
        settings = Settings(_env_file=None, **overrides)

        assert (
            settings.tryhackme_configured,
            settings.hackthebox_configured,
            settings.offsec_configured,
        ) == expected

    def test_empty_values_fall_back_to_defaults(self, clean_env):
        clean_env.setenv("OFFSEC_USERNAME", "trinity")
        clean_env.setenv("OFFSEC_RANK", "")
        clean_env.setenv("OFFSEC_PWNED", "")
        clean_env.setenv("THM_TOTAL_USERS", "")
        clean_env.setenv("HTB_API_TOKEN", "")

        settings = Settings(_env_file=None)

        assert settings.offsec_rank == 0
        assert settings.offsec_pwned == 0
        assert settings.thm_total_users == 3_000_000
        assert settings.htb_api_token is None
        assert not settings.offsec_configured


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_returns_settings(self, clean_env):
        clean_env.setenv("THM_USERNAME", "alice")

        settings = load_settings(_env_file=None)

        assert settings.thm_username == "alice"

    def test_unparseable_number_is_configuration_error(self, clean_env):
        clean_env.setenv("THM_TOTAL_USERS", "lots")
        clean_env.setenv("OFFSEC_RANK", "-5")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_env_file=None)

        assert sorted(exc_info.value.invalid) == ["OFFSEC_RANK", "THM_TOTAL_USERS"]
        assert "THM_TOTAL_USERS" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_unparseable_json_is_configuration_error(self, clean_env):
        clean_env.setenv("HTB_FIELD_PRIORITY", "notjson")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(_env_file=None)

        assert "htb_field_priority" in str(exc_info.value)
