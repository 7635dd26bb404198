from pydantic_settings import BaseSettings
from typing import List
import os


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "kr-portal"
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = True
    TESTING: bool = False

    # Supabase project
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "http://localhost:54321")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Access tokens issued by Supabase auth
    SUPABASE_JWT_SECRET: str = os.getenv("SUPABASE_JWT_SECRET", "super-secret-jwt-token-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    # Realtime notifications
    NOTIFICATION_DURATION_MS: int = 5000
    NOTIFICATION_DEDUP_WINDOW: int = 256

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:8080"]

    class Config:
        env_file = ".env"

settings = Settings()
