"""LandQuote configuration settings.

Loads configuration from environment variables with sensible defaults.
Secrets are loaded via Firebase Secrets Manager (production) or environment variables (emulator).
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for non-secret configuration (emulator hosts, feature flags, etc.)
# Secrets should come from Firebase Secrets Manager or environment variables
load_dotenv()


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: Secrets (OPENAI_API_KEY, etc.) should be accessed via config.secrets module,
    not directly from this class. The openai_api_key property delegates to the
    secrets module.
    """

    # LLM Configuration (non-secrets)
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.1")))

    # Firebase Configuration
    firebase_project_id: Optional[str] = field(default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID"))
    use_firebase_emulators: bool = field(default_factory=lambda: os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true")
    firestore_emulator_host: str = field(default_factory=lambda: os.getenv("FIRESTORE_EMULATOR_HOST", "localhost:8081"))

    # Recognition / Collection thresholds
    recognition_confidence_threshold: float = field(default_factory=lambda: float(os.getenv("RECOGNITION_CONFIDENCE_THRESHOLD", "0.7")))
    completion_threshold: float = field(default_factory=lambda: float(os.getenv("COMPLETION_THRESHOLD", "0.85")))
    special_service_discount: float = field(default_factory=lambda: float(os.getenv("SPECIAL_SERVICE_DISCOUNT", "0.9")))
    implicit_unit_discount: float = field(default_factory=lambda: float(os.getenv("IMPLICIT_UNIT_DISCOUNT", "0.9")))
    ai_failure_discount: float = field(default_factory=lambda: float(os.getenv("AI_FAILURE_DISCOUNT", "0.9")))

    # AI validation pass (secondary "did we miss a service" check)
    ai_validation_enabled: bool = field(default_factory=lambda: os.getenv("AI_VALIDATION_ENABLED", "false").lower() == "true")

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Internal: cached secret value (use openai_api_key property instead)
    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """Get OpenAI API key from Firebase Secrets Manager or environment."""
        if self._openai_api_key is None:
            from config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    def validate(self) -> None:
        """Validate required settings are present.

        Raises:
            ValueError: If required settings are missing or out of range.
        """
        if self.ai_validation_enabled and not self.openai_api_key and not self.use_firebase_emulators:
            raise ValueError("OPENAI_API_KEY is required when AI validation is enabled")
        if self.completion_threshold < self.recognition_confidence_threshold:
            raise ValueError(
                "COMPLETION_THRESHOLD must not be lower than RECOGNITION_CONFIDENCE_THRESHOLD"
            )

    @property
    def is_emulator_mode(self) -> bool:
        """Check if running in emulator mode."""
        return self.use_firebase_emulators


# Singleton settings instance
settings = Settings()
