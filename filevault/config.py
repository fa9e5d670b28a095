from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8')

    app_name: str = 'filevault'
    app_host: str = '0.0.0.0'
    app_port: int = 8080
    database_url: str = 'sqlite:///./filevault.db'
    base_dir: str = './data'
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = 'HS256'
    jwt_expire_minutes: int = Field(default=1440, ge=5, le=10080)
    chunk_size: int = Field(default=64 * 1024, ge=1024)
    archive_spool_max_bytes: int = Field(default=16 * 1024 * 1024, ge=0)
    log_level: str = 'info'
    cors_origins: str = ''


settings = Settings()
