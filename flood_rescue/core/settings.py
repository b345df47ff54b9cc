"""
Core settings and environment variables for Flood Rescue AI.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Flood Rescue AI"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - officer dashboard and reporting client dev servers
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:5174,http://127.0.0.1:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # In-process store for local development without Firebase credentials
    USE_MEMORY_STORE: bool = False

    # Collection names (shared with the web clients)
    CASES_COLLECTION: str = "requests"
    CENTERS_COLLECTION: str = "evacuation_centers"

    # AI Configuration
    AI_ENABLED: bool = True  # If False, the rule-based mock model is used
    AI_PROVIDER: str = "gemini"  # "gemini", "gemini_rest" or "mock"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"  # gemini_rest only
    # Probed in order at startup, first responder wins
    MODEL_CANDIDATES: str = "gemini-flash-latest,gemini-pro-latest,gemini-2.5-pro,gemini-2.5-flash"
    AI_TIMEOUT_SECONDS: float = 30.0

    # Triage worker
    TRIAGE_ENABLED: bool = True
    TRIAGE_MAX_WORKERS: int = 32
    CRITICAL_RISK_SCORE: int = 8  # risk_score at or above this counts as critical

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins(self) -> List[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def model_candidates(self) -> List[str]:
        return _split_csv(self.MODEL_CANDIDATES)


# Default settings instance, used when create_app() is called without overrides
settings = Settings()
