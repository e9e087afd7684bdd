"""
Blog API — Settings Tests
===========================
"""

import pytest
from pydantic import ValidationError

from blogapi.config import DEFAULT_JWT_SECRET, Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.jwt_lifetime_seconds == 3600
        assert settings.unpublished_blog_visibility == "hidden"
        assert settings.comment_delete_capability == "admin"
        assert settings.republish_behavior == "idempotent"
        assert settings.allow_anonymous_comments is False
        assert settings.allowed_image_types_set == {"png", "jpeg", "gif"}

    def test_environment_variables_are_read(self, monkeypatch):
        monkeypatch.setenv("REPUBLISH_BEHAVIOR", "reject")
        monkeypatch.setenv("ALLOW_ANONYMOUS_COMMENTS", "true")

        settings = Settings(_env_file=None)

        assert settings.republish_behavior == "reject"
        assert settings.allow_anonymous_comments is True

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_bad_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    @pytest.mark.parametrize("raw, expected", [("api/v2/", "/api/v2"), ("/", ""), ("/v1", "/v1")])
    def test_api_prefix_normalized(self, raw, expected):
        assert Settings(_env_file=None, api_prefix=raw).api_prefix == expected

    def test_unknown_policy_value(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, comment_delete_capability="anyone")

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, jwt_secret="short")

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, ,http://b.test")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


class TestProductionValidation:

    def test_placeholder_secret_refused_in_production(self):
        settings = Settings(_env_file=None, environment="production", jwt_secret=DEFAULT_JWT_SECRET)

        with pytest.raises(ValueError, match="JWT_SECRET"):
            settings.validate_required_for_production()

    def test_placeholder_secret_allowed_outside_production(self):
        Settings(_env_file=None, environment="development").validate_required_for_production()

    def test_real_secret_passes(self):
        Settings(
            _env_file=None, environment="production", jwt_secret="x" * 48
        ).validate_required_for_production()
