from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".flashdeck" / "data"
    sqlite_filename: str = "flashdeck.db"
    log_level: str = "info"
    forecast_days: int = 7
    due_limit_default: int = 20
    mature_interval_days: int = 21  # reviewed cards at or past this interval count as mature
    cors_origins: list[str] = ["*"]

    model_config = {"env_prefix": "FLASHDECK_"}


settings = Settings()
