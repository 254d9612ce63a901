import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

AUTH_TYPES = ("password", "session")
DEFAULT_JWT_SECRET = "your_super_secret_key_change_me"


def load_world_config() -> Dict[str, Any]:
    """Read config.yml from WORLD_CONFIG_PATH, else the copy beside the package."""
    candidates = [
        Path(os.getenv("WORLD_CONFIG_PATH", "/app/worldserver/config.yml")),
        Path(__file__).resolve().parents[2] / "config.yml",
    ]
    for path in candidates:
        if path.exists():
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
    return {}


world_config = load_world_config()


def _option(env_name: str, section: str, key: str, default: Any) -> str:
    """Environment variable first, then the YAML section, then ``default``."""
    return os.getenv(env_name, str(world_config.get(section, {}).get(key, default)))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = _option("DATABASE_URL", "database", "url", "sqlite:///./worldserver.db")
    DATABASE_ECHO: bool = _option("DATABASE_ECHO", "database", "echo", "false").lower() in (
        "true",
        "1",
        "yes",
    )

    AUTH_TYPE: str = _option("AUTH_TYPE", "auth", "type", "password")
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", DEFAULT_JWT_SECRET)
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    SESSION_TOKEN_EXPIRE_MINUTES: int = int(
        _option("SESSION_TOKEN_EXPIRE_MINUTES", "auth", "session_expire_minutes", 60)
    )
    BCRYPT_ROUNDS: int = int(_option("BCRYPT_ROUNDS", "auth", "bcrypt_rounds", 12))

    # id, name and flags per group
    GROUPS: List[Dict[str, Any]] = world_config.get("groups", [])

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    @model_validator(mode="after")
    def validate_auth_settings(self) -> "Settings":
        if self.AUTH_TYPE not in AUTH_TYPES:
            raise ValueError(
                f"AUTH_TYPE must be one of {', '.join(AUTH_TYPES)}, got {self.AUTH_TYPE!r}"
            )
        if self.ENVIRONMENT != "development" and self.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
            raise ValueError(
                "JWT_SECRET_KEY must be changed from default outside development"
            )
        return self


settings = Settings()
