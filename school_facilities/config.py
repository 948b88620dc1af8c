from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./school_facilities.db"
    sql_echo: bool = False

    # ---- Maintenance workflow ----
    # Priority is fixed at creation unless the surrounding system opts in.
    allow_reprioritization: bool = False

    # ---- Credentials ----
    pbkdf2_iterations: int = 210_000

    # ---- Listings ----
    default_page_limit: int = 200

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod and self.database_url.startswith("sqlite"):
            raise ValueError("database_url: sqlite is not allowed in prod")

        if int(self.pbkdf2_iterations) < 1_000:
            raise ValueError("pbkdf2_iterations must be >= 1000")


settings = Settings()
