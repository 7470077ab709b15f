from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SECRET_KEY: str = "change-me-in-production"
    DATABASE_URL: str = "sqlite:///./migration_dashboard.db"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 30
    MIGRATION_REUSE_WINDOW_HOURS: int = 24
    DEFAULT_AI_MODEL: str = "gemini-2.5-pro"
    MAX_UPLOAD_SIZE: int = 10_485_760  # 10 MB
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
