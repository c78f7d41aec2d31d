from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379"

    # Collaborators (empty URL disables the HTTP client; static tables are used)
    property_data_url: str = ""
    property_data_api_key: str = ""
    municipal_data_url: str = ""
    provider_timeout_s: float = 10.0

    # Optional JSON file replacing the built-in rule tables
    rule_tables_path: str = ""

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
