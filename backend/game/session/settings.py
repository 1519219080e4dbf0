"""Scorekeeper process configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class ScorekeeperSettings(BaseSettings):
    model_config = {"env_prefix": "SCOREKEEPER_"}

    database_path: str = Field(default="backend/storage.db", min_length=1)
    log_dir: str = Field(default="backend/logs/scorekeeper", min_length=1)
    # quiet period before pending round edits are written out
    save_debounce_seconds: float = Field(default=0.3, ge=0)
