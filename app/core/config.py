from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    APP_NAME: str = "Voice Studio API"
    APP_ENV: str = "development"  # development or production
    CORS_ORIGINS: List[str] = ["http://localhost:3001"]

    DATABASE_URL: str = "sqlite+aiosqlite:///./voice_studio.db"
    DB_AUTO_CREATE: bool = False

    # Authentication settings
    SECRET_KEY: str = "secret-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Redis settings for Celery
    REDIS_URL: str = "redis://localhost:6379/0"

    # Generative model (Gemini) settings, used for speech and script generation
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TTS_MODEL: str = "gemini-2.5-flash-preview-tts"
    GEMINI_TTS_TIMEOUT_SECONDS: float = 60.0
    GEMINI_SCRIPT_MODEL: str = "gemini-2.5-flash"

    # Managed cloud TTS (Google Cloud Text-to-Speech) settings
    GOOGLE_TTS_API_KEY: Optional[str] = None
    GOOGLE_TTS_API_BASE_URL: str = "https://texttospeech.googleapis.com/v1"
    GOOGLE_TTS_AUDIO_ENCODING: str = "MP3"  # options: MP3, LINEAR16, OGG_OPUS
    GOOGLE_TTS_TIMEOUT_SECONDS: float = 30.0

    # Razorpay payment gateway settings
    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    RAZORPAY_API_BASE_URL: str = "https://api.razorpay.com/v1"
    SUBSCRIPTION_DURATION_DAYS: int = 30

    # Generated audio storage
    AUDIO_STORAGE_DIR: str = "uploads"
    AUDIO_TTL_HOURS: int = 24
    AUDIO_SWEEP_INTERVAL_SECONDS: int = 60 * 60
    AUDIO_SWEEP_STARTUP_DELAY_SECONDS: int = 5

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

def get_settings():
    return Settings()

settings = get_settings()
