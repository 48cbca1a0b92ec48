import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="RANKFORGE_")

    app_name: str = "rankforge"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///rankforge.db"

    # Unknown enum strings in persisted records decode to a fallback variant
    # (and are logged). When True they raise DataIntegrityError instead.
    strict_enum_decoding: bool = False


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts and embedding applications."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
