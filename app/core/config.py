from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "BackupNow Job Engine"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False

    database_url: str = "sqlite:///./backupnow.db"
    encryption_key: str = "aLxM0wHk0w0oVx3G9iYfn7lr5J2v3xH5cM8D6lQ1t2Q="

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    auto_create_tables: bool = True
    resume_on_startup: bool = True

    backup_folder_prefix: str = "BackupNow"
    backup_files_dirname: str = "files"
    copy_chunk_size: int = 1024 * 1024

    runner_mode: Literal["thread", "inline", "celery"] = "thread"
    remote_backend: Literal["smb", "local"] = "smb"
    local_share_root: str = "data/shares"

    smb_port: int = 445
    smb_connection_timeout: int = 60
    smb_require_signing: bool = True

    celery_broker_url: str = ""
    celery_result_backend: str = ""
    celery_task_always_eager: bool = False

    def get_celery_broker_url(self) -> str:
        return self.celery_broker_url or "memory://"

    def get_celery_result_backend(self) -> str:
        return self.celery_result_backend or "cache+memory://"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
