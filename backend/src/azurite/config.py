from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    port: int = 8080
    host: str = "localhost"
    env: str = "development"
    db_path: Path = Path("./azurite.db")
    jwt_secret: str = "your-secret-key-change-in-production"
    public_url: str = ""

    github_client_id: str = ""
    github_client_secret: str = ""
    discord_client_id: str = ""
    discord_client_secret: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""

    mods_path: Path = Path("./storage/mods")
    images_path: Path = Path("./storage/images")
    max_file_size: int = 104_857_600
    migrations_path: Path = Path("")

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    from_email: str = "noreply@azurite.dev"

    scan_delay_seconds: float = 5.0
    file_scan_delay_seconds: float = 3.0
    scan_workers: int = Field(default=4, ge=1)

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @model_validator(mode="after")
    def _resolve_defaults(self) -> "Settings":
        if not self.public_url:
            if self.is_production:
                self.public_url = f"https://{self.host}"
            else:
                self.public_url = f"http://{self.host}:{self.port}"
        self.public_url = self.public_url.rstrip("/")
        if self.migrations_path == Path(""):
            self.migrations_path = Path(__file__).parent / "migrations"
        return self


settings = Settings()
