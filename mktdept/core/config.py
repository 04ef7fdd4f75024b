from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_name: str = "mktdept"
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    redis_url: str = "redis://localhost:6379/0"

    projects_dir: str = "./projects"
    settings_dir: str = str(Path.home() / ".marketing-department")

    grok_api_key: str | None = None
    grok_model: str = "grok-2"
    grok_api_url: str = "https://api.x.ai/v1/chat/completions"

    getlate_api_key: str | None = None
    getlate_api_base: str = "https://getlate.dev/api/v1"

    devto_api_key: str | None = None
    devto_api_base: str = "https://dev.to/api"

    verify_timeout: float = 30.0
    ai_timeout: float = 120.0
    publish_timeout: float = 60.0

    @property
    def profiles_path(self) -> Path:
        return Path(self.settings_dir) / "profiles.json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
