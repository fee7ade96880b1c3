"""
Configuration management for the BIND control plane API
"""

import math
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application settings
    APP_NAME: str = "BIND Control Plane API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Security
    SECRET_KEY: str = Field(..., description="Application secret key")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS and hosts
    ALLOWED_HOSTS: Annotated[List[str], NoDecode] = Field(default=["localhost", "127.0.0.1"])

    @field_validator('ALLOWED_HOSTS', mode='before')
    @classmethod
    def parse_allowed_hosts(cls, v):
        if isinstance(v, str):
            return [host.strip() for host in v.split(',') if host.strip()]
        return v

    # Server Configuration
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000

    # named.conf lifecycle
    NAMED_CONF_DIR: str = "/etc/named"
    NAMED_CONF_FILE: str = "named.conf"
    NAMED_CHECKCONF: str = "named-checkconf"
    VALIDATOR_TIMEOUT: float = 5.0  # seconds
    VALIDATE_BEFORE_WRITE: bool = True
    MAX_INCLUDE_DEPTH: int = 16

    @field_validator('VALIDATOR_TIMEOUT')
    @classmethod
    def validate_timeout(cls, v):
        # The checker must never be allowed to run unbounded
        if v is None or not math.isfinite(v) or v <= 0:
            return 5.0
        return v

    # Backup Settings
    BACKUP_DIR: str = "./backup"
    MAX_BACKUPS: int = 10

    @field_validator('MAX_BACKUPS')
    @classmethod
    def validate_max_backups(cls, v):
        if v is None or v <= 0:
            return 10
        return v

    # BIND9 service control
    BIND9_SERVICE_NAME: str = "named"
    RNDC_KEY: Optional[str] = None
    RNDC_PORT: str = "953"
    BIND_EXEC_START: Optional[str] = None
    BIND_EXEC_STOP: Optional[str] = None
    BIND_EXEC_RELOAD: Optional[str] = None
    BIND_COMMAND_TIMEOUT: int = 10  # seconds

    # Zone stanzas
    ZONE_DEFAULT_ALLOW_QUERY: str = "any"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = None

    # File Paths
    @property
    def config_dir(self) -> Path:
        """Get the directory holding named.conf"""
        return Path(self.NAMED_CONF_DIR)

    @property
    def named_conf_path(self) -> Path:
        """Path to the tracked named.conf"""
        return self.config_dir / self.NAMED_CONF_FILE

    @property
    def backup_dir(self) -> Path:
        """Get backup directory path"""
        return Path(self.BACKUP_DIR)

    class Config:
        # Look for .env file in multiple locations
        env_file = [".env", "../.env"]
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra environment variables


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()

