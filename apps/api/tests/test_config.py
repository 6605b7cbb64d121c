"""
Tests for settings validation.
"""
import pytest
from pydantic import ValidationError

from catering_ops.core.config import Settings

SECRET = "test-only-jwt-secret-key-with-at-least-32-characters"


class TestJwtSecret:

    def test_insecure_default_rejected(self):
        with pytest.raises(ValidationError, match="insecure default"):
            Settings(JWT_SECRET_KEY="changeme")

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(JWT_SECRET_KEY="x" * 20)

    def test_long_secret_accepted(self):
        assert Settings(JWT_SECRET_KEY=SECRET).JWT_SECRET_KEY == SECRET


class TestBusinessRules:

    def test_defaults(self):
        settings = Settings(JWT_SECRET_KEY=SECRET)
        assert settings.HIGH_WASTE_THRESHOLD == 5.0
        assert settings.COGS_FALLBACK_RATIO == 0.30

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError, match="IANA timezone"):
            Settings(JWT_SECRET_KEY=SECRET, BUSINESS_TIMEZONE="Dubai/Marina")

    def test_known_timezone_accepted(self):
        settings = Settings(JWT_SECRET_KEY=SECRET, BUSINESS_TIMEZONE="Europe/London")
        assert settings.BUSINESS_TIMEZONE == "Europe/London"

    @pytest.mark.parametrize("ratio", [0, -0.1, 1.5])
    def test_cogs_ratio_out_of_range(self, ratio):
        with pytest.raises(ValidationError, match="COGS_FALLBACK_RATIO"):
            Settings(JWT_SECRET_KEY=SECRET, COGS_FALLBACK_RATIO=ratio)

    def test_negative_waste_threshold_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Settings(JWT_SECRET_KEY=SECRET, HIGH_WASTE_THRESHOLD=-1)
