"""Unit tests for settings, secrets and error types."""

import pytest

from config.errors import (
    ConfigUnavailableError,
    ErrorCode,
    LandQuoteError,
    NotReadyForPricingError,
    ValidationError,
)
from config.secrets import clear_secret_cache, get_openai_api_key, get_secret, is_emulator_mode
from config.settings import Settings


class TestSettings:
    """Tests for the Settings dataclass."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("COMPLETION_THRESHOLD", "0.9")
        monkeypatch.setenv("AI_VALIDATION_ENABLED", "true")

        settings = Settings()

        assert settings.completion_threshold == 0.9
        assert settings.ai_validation_enabled is True

    def test_thresholds_must_be_ordered(self):
        settings = Settings(recognition_confidence_threshold=0.8, completion_threshold=0.6)

        with pytest.raises(ValueError):
            settings.validate()

    def test_ai_validation_requires_key(self):
        settings = Settings(ai_validation_enabled=True, use_firebase_emulators=False, _openai_api_key="")

        with pytest.raises(ValueError):
            settings.validate()

    def test_valid(self):
        Settings(
            recognition_confidence_threshold=0.7,
            completion_threshold=0.85,
            ai_validation_enabled=False
        ).validate()

    def test_emulator_mode(self):
        assert Settings(use_firebase_emulators=True).is_emulator_mode is True


class TestSecrets:
    """Tests for secret resolution in emulator mode."""

    @pytest.fixture(autouse=True)
    def emulator_env(self, monkeypatch):
        monkeypatch.setenv("FUNCTIONS_EMULATOR", "true")
        clear_secret_cache()
        yield
        clear_secret_cache()

    def test_emulator_detected(self):
        assert is_emulator_mode() is True

    def test_secret_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        assert get_secret("OPENAI_API_KEY") == "sk-test"

    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv("LANDQUOTE_MISSING_SECRET", raising=False)

        assert get_secret("LANDQUOTE_MISSING_SECRET") is None

    def test_openai_key_cached_until_cleared(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-first")
        assert get_openai_api_key() == "sk-first"

        monkeypatch.setenv("OPENAI_API_KEY", "sk-rotated")
        assert get_openai_api_key() == "sk-first"

        clear_secret_cache()
        assert get_openai_api_key() == "sk-rotated"


class TestErrors:
    """Tests for structured errors."""

    def test_to_dict(self):
        error = LandQuoteError(ErrorCode.PRICING_FAILED, "boom", {"service": "Paver Patio"})

        assert error.to_dict() == {
            "code": "PRICING_FAILED",
            "message": "boom",
            "details": {"service": "Paver Patio"},
        }

    def test_validation_error_field(self):
        error = ValidationError("message is required", field="message")

        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.details == {"field": "message"}

    def test_config_unavailable(self):
        error = ConfigUnavailableError("offline", company_id="company-1", resource="pricingConfig")

        assert error.code == ErrorCode.CONFIG_UNAVAILABLE
        assert error.details["resource"] == "pricingConfig"
        assert error.company_id == "company-1"

    def test_not_ready_carries_missing_info(self):
        error = NotReadyForPricingError("not ready", missing_info=["Irrigation zone count"])

        assert error.details["missing_info"] == ["Irrigation zone count"]
        assert isinstance(error, LandQuoteError)
