"""
Configuration module for the Inkling backend.
Loads settings from .env file and environment variables.
"""

import os
from pathlib import Path
from typing import List

# Try to load .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    with open(_env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value


class Settings:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        self.app_name: str = os.getenv("APP_NAME", "Inkling")
        self.api_version: str = os.getenv("API_VERSION", "v1")
        self.debug: bool = os.getenv("DEBUG", "true").lower() in ("true", "1", "yes")
        self.environment: str = os.getenv("ENVIRONMENT", "development")

        # Firebase
        self.firebase_credentials_path: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "")
        self.storage_bucket: str = os.getenv("STORAGE_BUCKET", "")

        # Generative AI
        self.groq_api_key: str = os.getenv("GROQ_API_KEY", "")
        self.gemini_api_key: str = os.getenv("GEMINI_API_KEY", os.getenv("GOOGLE_API_KEY", ""))

        # Payment gateway
        self.razorpay_key_id: str = os.getenv("RAZORPAY_KEY_ID", "")
        self.razorpay_key_secret: str = os.getenv("RAZORPAY_KEY_SECRET", "")

        # CORS
        cors_raw = os.getenv("CORS_ORIGINS", "*")
        self.cors_origins: List[str] = [s.strip() for s in cors_raw.split(",")]

        # Story generation
        self.story_page_count: int = int(os.getenv("STORY_PAGE_COUNT", "12"))
        self.illustrated_page_count: int = int(os.getenv("ILLUSTRATED_PAGE_COUNT", "4"))
        self.session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
        self.placeholder_cover_url: str = os.getenv(
            "PLACEHOLDER_COVER_URL", "https://placehold.co/600x400.png"
        )

        # Local dev mode
        self.local_data_dir: str = os.getenv("LOCAL_DATA_DIR", "./data")
        self.public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

        # Security
        self.secret_key: str = os.getenv("SECRET_KEY", "inkling-dev-secret")
        self.algorithm: str = os.getenv("ALGORITHM", "HS256")
        self.access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    @property
    def media_dir(self) -> str:
        """Directory that holds uploaded images in local dev mode."""
        return str(Path(self.local_data_dir) / "media")


_settings = None


def get_settings() -> Settings:
    """Get application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
