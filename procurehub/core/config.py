"""
Application configuration with environment variables.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "ProcureHub"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    SECRET_KEY: str = "your-secret-key-change-in-production"

    # Database
    POSTGRES_USER: str = "procurehub"
    POSTGRES_PASSWORD: str = "procurehub"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "procurehub"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    # Redis (background jobs)
    REDIS_URL: str = "redis://redis:6379/0"

    # JWT Settings
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Server-side sessions backing each issued token
    SESSION_TTL_HOURS: int = 24 * 7
    BCRYPT_ROUNDS: int = 12

    # Where GET /api/login sends the browser (identity provider entry point)
    LOGIN_REDIRECT_URL: str = "/"
    # Delay before a client follows the login redirect after a 401
    UNAUTHORIZED_REDIRECT_DELAY_MS: int = 500

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:5000", "http://localhost:3000"]

    # Demo seeding - MUST be false in production
    SEED_DEMO: bool = False

    # Admin bootstrap - only used if no users exist in database
    ADMIN_BOOTSTRAP_EMAIL: Optional[str] = None
    ADMIN_BOOTSTRAP_PASSWORD: Optional[str] = None

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def assemble_db_url(cls, v: Optional[str], info) -> str:
        if isinstance(v, str) and v:
            return v

        data = info.data
        user = data.get("POSTGRES_USER", "procurehub")
        password = data.get("POSTGRES_PASSWORD", "procurehub")
        host = data.get("POSTGRES_HOST", "postgres")
        port = data.get("POSTGRES_PORT", "5432")
        db = data.get("POSTGRES_DB", "procurehub")

        # Only checked when the URL is assembled from parts
        if password in {"procurehub", "postgres", "password", "changeme", ""} and not data.get("DEBUG", False):
            raise ValueError(
                "POSTGRES_PASSWORD is set to a default value. "
                "Set a strong database password for production."
            )

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"

    @field_validator('SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str, info) -> str:
        """Reject weak SECRET_KEY in production, warn in development."""
        weak_keys = {
            "your-secret-key-change-in-production",
            "change-me-in-production",
            "secret",
            "changeme",
        }
        is_weak = v in weak_keys or len(v) < 32
        if is_weak:
            debug = info.data.get("DEBUG", False)
            if not debug:
                raise ValueError(
                    "SECRET_KEY is weak or default. "
                    "Generate a strong key with: openssl rand -hex 32"
                )
            import warnings
            warnings.warn(
                "SECRET_KEY is weak or default! Set a strong key before deploying.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @field_validator('SEED_DEMO')
    @classmethod
    def validate_seed_demo(cls, v: bool, info) -> bool:
        """Prevent demo seeding in production."""
        if v and not info.data.get("DEBUG", False):
            raise ValueError(
                "SEED_DEMO=true is not allowed when DEBUG=false. "
                "Demo seeding creates predictable credentials."
            )
        return v


settings = Settings()
