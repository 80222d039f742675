from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from beanie_paginate.options import PaginateOptions

CountStrategy = Literal["concurrent", "sequential"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # App
    debug: bool = Field(default=False, description="DEBUG")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="paginate", alias="MONGODB_DB_NAME")

    # Pagination defaults
    default_limit: int = Field(default=10, ge=1, alias="PAGINATE_DEFAULT_LIMIT")
    max_limit: int | None = Field(default=None, ge=1, alias="PAGINATE_MAX_LIMIT")
    lean: bool = Field(default=False, alias="PAGINATE_LEAN")
    lean_with_id: bool = Field(default=True, alias="PAGINATE_LEAN_WITH_ID")
    # concurrent: count runs alongside the page fetch and is cancelled on a short page
    # sequential: count only runs after a full page
    count_strategy: CountStrategy = Field(default="concurrent", alias="PAGINATE_COUNT_STRATEGY")

    def default_options(self) -> PaginateOptions:
        return PaginateOptions(limit=self.default_limit, lean=self.lean, lean_with_id=self.lean_with_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()
