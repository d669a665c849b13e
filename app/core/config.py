from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    APP_NAME: str = "Chamada"
    AUTH_MODE: Literal["supabase", "mock"] = "mock"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    CORS_ORIGINS: str = "http://localhost:3000"

    # Calendar day boundaries ("today") follow the school's wall clock
    SCHOOL_TIMEZONE: str = "America/Sao_Paulo"
    LOCK_WINDOW_MINUTES: int = 60

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
