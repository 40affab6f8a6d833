# File: src/mallpark/infrastructure/config.py
"""
Application settings, read from MALLPARK_* environment variables
"""

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator


ENV_PREFIX = "MALLPARK_"


class Settings(BaseModel):
    """
    Runtime configuration for the API server and its infrastructure.
    """
    database_url: str = Field(default="sqlite:///./mallpark.db", description="SQLAlchemy database URL")
    redis_url: Optional[str] = Field(default=None, description="Redis URL; events are published there when set")
    event_channel: str = Field(default="mallpark.events", description="Redis channel for domain events")
    log_level: str = Field(default="INFO", description="Root log level")
    log_dir: str = Field(default="logs", description="Directory for the application log file")
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=5000, ge=1, le=65535, description="Bind port")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    seed_on_startup: bool = Field(default=True, description="Seed default pricing and inventory when missing")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment; unset variables keep defaults"""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
