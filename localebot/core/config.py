from __future__ import annotations

from typing import Annotated, List, Optional
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file explicitly
ENV_FILE_NAME = ".env"
env_path = Path(__file__).parent.parent.parent / ENV_FILE_NAME
load_dotenv(env_path, override=False)


class Settings(BaseSettings):
    BOT_TOKEN: str = ""
    OWNER_IDS: Annotated[List[int], NoDecode] = []
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/bot.db"

    FALLBACK_LOCALE: str = "zh-CN"
    DOCUMENT_LANG: Optional[str] = None
    PREFERENCE_KEY: str = "locale"
    I18N_DEBUG: bool = False
    BUNDLE_LOAD_TIMEOUT: Optional[float] = None

    DEBUG: bool = False
    LOG_FILE: bool = True

    @field_validator("OWNER_IDS", mode="before")
    @classmethod
    def parse_owner_ids(cls, v):  # type: ignore
        if v in (None, "", []):
            return []
        if isinstance(v, (list, tuple)):
            return [int(x) for x in v]
        if isinstance(v, str):
            return [int(x.strip()) for x in v.split(",") if x.strip()]
        if isinstance(v, int):
            return [v]
        return []

    @field_validator("DOCUMENT_LANG", "BUNDLE_LOAD_TIMEOUT", mode="before")
    @classmethod
    def empty_as_none(cls, v):  # type: ignore
        return None if v == "" else v

    model_config = SettingsConfigDict(
        env_file=ENV_FILE_NAME,
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
