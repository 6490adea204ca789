# Configuration management

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore


class ConflictStrategy(str, Enum):
    """How values that do not fit their column are handled."""
    DROP = "null"
    PRESERVE_AS_FRAGMENT = "malformed"
    SUFFIX_AND_FRAGMENT = "type_suffix_and_malformed"

    @property
    def suffixes_fields(self) -> bool:
        return self is ConflictStrategy.SUFFIX_AND_FRAGMENT

    @property
    def keeps_fragments(self) -> bool:
        return self is not ConflictStrategy.DROP


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CRATESINK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Schema evolution
    conflict_strategy: ConflictStrategy = ConflictStrategy.SUFFIX_AND_FRAGMENT
    sanitize_field_names: bool = True
    decode_index_arrays: bool = True

    # Catalog
    table_schema: str = "doc"

    # Observability
    metrics_enabled: bool = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
