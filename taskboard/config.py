"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with the TASKBOARD_
prefix, e.g. ``TASKBOARD_JWT_SECRET`` or ``TASKBOARD_BCRYPT_ROUNDS``.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via TASKBOARD_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Bearer tokens
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 24

    # Sessions
    session_ttl_seconds: int = 24 * 60 * 60
    session_cookie_name: str = "taskboard.sid"

    # Password hashing work factor (bcrypt accepts 4..31)
    bcrypt_rounds: int = 12

    # Demo account created at startup
    seed_default_user: bool = True
    default_username: str = "QualitySensei"
    default_password: str = "12345678"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = {"env_prefix": "TASKBOARD_"}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Refuse the default signing secret outside development."""
        if self.environment != "development" and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError(
                "TASKBOARD_JWT_SECRET must be set to a secure value in "
                "non-development environments"
            )
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("TASKBOARD_BCRYPT_ROUNDS must be between 4 and 31")
        return self


# Singleton, import this everywhere
settings = Settings()
