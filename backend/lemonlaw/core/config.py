"""
Lemon Law Fee Suite
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import Optional, List
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Lemon Law Fee Suite"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./lemonlaw.db"

    # File storage
    EXPORT_DIR: str = "./exports"
    MAX_UPLOAD_SIZE_MB: int = 25

    # Fee comparison
    DEFAULT_YEARS_EXPERIENCE: int = 5  # When neither the entry nor the roster has it

    # Court document formatting
    COURT_FONT: str = "Times New Roman"
    COURT_FONT_SIZE: int = 12
    DEFAULT_COURT_NAME: str = "SUPERIOR COURT OF THE STATE OF CALIFORNIA"
    DEFAULT_COUNTY: str = "LOS ANGELES"

    # OpenAI extraction
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_MAX_TOKENS: int = 4096
    OPENAI_TEMPERATURE: float = 0.1
    MAX_EXTRACT_CHARS: int = 60000

    # CORS Origins
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()


def init_directories():
    """Create required directories on startup"""
    Path(settings.EXPORT_DIR).mkdir(parents=True, exist_ok=True)
