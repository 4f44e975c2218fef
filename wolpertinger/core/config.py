"""Application settings and configuration."""

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore


class ApiToken(BaseModel):
    """An authentication token handed to a probing organisation."""

    organisation: str
    token: str


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENV: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    PROJECT_NAME: str = Field(default="Wolpertinger")

    # Identifier derivation
    MASTER_KEY: str | None = Field(default=None)

    # Authentication
    API_TOKENS: list[ApiToken] = Field(default_factory=list)

    # Bridge sources
    DATABASE_URL: str = Field(default="sqlite:///bridges.sqlite")
    EXTRAINFO_FILE: str = Field(default="cached-extrainfo")
    REFRESH_INTERVAL_SECONDS: float = Field(default=3600.0, gt=0)

    # Distribution - accept string or list, normalized to list
    MAX_BRIDGES_PER_RESPONSE: int = Field(default=3, ge=1)
    PROBING_RESISTANT_TRANSPORTS: str | list[str] = Field(default="obfs4,scramblesuit")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str | None = Field(default=None)

    # Listener
    LISTEN_HOST: str = Field(default="0.0.0.0")
    LISTEN_PORT: int = Field(default=7000)
    TLS_CERT_FILE: str | None = Field(default=None)
    TLS_KEY_FILE: str | None = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def parse_transport_names(cls, data):
        """Parse PROBING_RESISTANT_TRANSPORTS from comma-separated string or list."""
        if isinstance(data, dict) and "PROBING_RESISTANT_TRANSPORTS" in data:
            names = data["PROBING_RESISTANT_TRANSPORTS"]
            if isinstance(names, str):
                data["PROBING_RESISTANT_TRANSPORTS"] = [
                    name.strip() for name in names.split(",") if name.strip()
                ]
        return data

    def __init__(self, **kwargs):
        """Validate settings on initialization."""
        super().__init__(**kwargs)
        # Defaults and env values bypass the before-validator
        if isinstance(self.PROBING_RESISTANT_TRANSPORTS, str):
            object.__setattr__(
                self,
                "PROBING_RESISTANT_TRANSPORTS",
                [
                    name.strip()
                    for name in self.PROBING_RESISTANT_TRANSPORTS.split(",")
                    if name.strip()
                ],
            )
        # Fail fast in production if critical vars are missing
        if self.ENV == "prod":
            if not self.MASTER_KEY:
                raise ValueError("MASTER_KEY must be set in production")
            if not self.API_TOKENS:
                raise ValueError("API_TOKENS must contain at least one token in production")
        if bool(self.TLS_CERT_FILE) != bool(self.TLS_KEY_FILE):
            raise ValueError("TLS_CERT_FILE and TLS_KEY_FILE must be set together")

    @property
    def master_key_bytes(self) -> bytes:
        """The HMAC key used for external identifiers."""
        if not self.MASTER_KEY:
            raise ValueError("MASTER_KEY must be set")
        return self.MASTER_KEY.encode("utf-8")

    @classmethod
    def from_json_file(cls, path: str | Path, **overrides) -> "Settings":
        """
        Load settings from a JSON configuration file.

        Keys are matched case-insensitively against the settings fields.
        The legacy ``sqlite_file`` key is turned into a SQLite DATABASE_URL.
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Failed to load config file '{path}': {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"Config file '{path}' must contain a JSON object")

        data = {key.upper(): value for key, value in raw.items()}
        sqlite_file = data.pop("SQLITE_FILE", None)
        if sqlite_file and "DATABASE_URL" not in data:
            data["DATABASE_URL"] = f"sqlite:///{sqlite_file}"
        data.update(overrides)
        return cls(**data)


# Global settings instance
settings = Settings()
