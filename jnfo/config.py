from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    jellyfin_url: str = ""
    jellyfin_api_key: str = ""
    host: str = "0.0.0.0"
    port: int = 5000
    static_dir: str = "./dist"
    latest_limit: int = 10
    recent_window_minutes: int = 20
    bot_clients: list[str] = ["jellyseerr"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def base_url(self) -> str:
        """Jellyfin URL without a trailing slash."""
        return self.jellyfin_url.rstrip("/")

    @property
    def static_path(self) -> Path:
        return Path(self.static_dir)

    def missing_required(self) -> list[str]:
        """Names of required settings that are unset."""
        missing = []
        if not self.jellyfin_url:
            missing.append("JELLYFIN_URL")
        if not self.jellyfin_api_key:
            missing.append("JELLYFIN_API_KEY")
        return missing


settings = Settings()
