from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"

# =================================================================
# FOCUS MODES - closed table of reward multipliers (percent)
# =================================================================
FOCUS_MODES: dict[str, dict] = {
    "fun": {
        "multiplier": 150,
        "display_name": "Fun",
        "description": "Lenient - 1.5x reward (1hr focus = 1hr 30min reward)",
    },
    "easy": {
        "multiplier": 100,
        "display_name": "Easy",
        "description": "Balanced - 1x reward (1hr focus = 1hr reward)",
    },
    "medium": {
        "multiplier": 50,
        "display_name": "Medium",
        "description": "Challenging - 0.5x reward (1hr focus = 30min reward)",
    },
    "hard": {
        "multiplier": 25,
        "display_name": "Hard",
        "description": "Hardcore - 0.25x reward (1hr focus = 15min reward)",
    },
}

MIN_FOCUS_DURATION_MINUTES = 1
MAX_FOCUS_DURATION_MINUTES = 240


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    DATABASE_URL: str = ""
    DB_APPLY_SCHEMA: bool = False

    # Clerk settings
    CLERK_SECRET_KEY: str = ""
    CLERK_JWKS_URL: str | None = None
    CLERK_AUTHORIZED_PARTIES: list[str] = []
    CLERK_WEBHOOK_SECRET: str = ""
    WEBHOOK_TOLERANCE_SECONDS: int = 300

    # CORS (native iOS clients don't need it; web dashboards do)
    CORS_ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour
    DB_STATEMENT_TIMEOUT: str = "15s"

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def jwks_url(self) -> str:
        if self.CLERK_JWKS_URL:
            return self.CLERK_JWKS_URL
        return "https://api.clerk.com/v1/jwks"

    def missing_required(self) -> list[str]:
        """Names of required settings that are empty."""
        required = {
            "DATABASE_URL": self.DATABASE_URL,
            "CLERK_SECRET_KEY": self.CLERK_SECRET_KEY,
            "CLERK_WEBHOOK_SECRET": self.CLERK_WEBHOOK_SECRET,
        }
        return [name for name, value in required.items() if not value]

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 10.0,
                }
            )

        return config


settings = Settings()
