import os
from functools import lru_cache
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from src.specs.common.enums import FailureMode
from src.specs.common.errors import ConfigurationError


class AppConfig(BaseModel):
    cosmos_connection_string: str = Field(..., min_length=1)
    cosmos_database: str = Field(..., min_length=1)
    posts_container: str = "posts"
    blob_connection_string: str = Field(..., min_length=1)
    media_bucket_id: str = "media"
    failure_mode: FailureMode = FailureMode.LENIENT


_REQUIRED = {
    "cosmos_connection_string": "COSMOS_DB_CONNECTION_STRING",
    "cosmos_database": "COSMOS_DB_NAME",
    "blob_connection_string": "PUBLIC_BLOB_CONNECTION_STRING",
}


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build the configuration from environment variables.

    Raises:
        ConfigurationError: If a required variable is missing or a value is invalid
    """
    env = os.environ if environ is None else environ
    missing = [name for name in _REQUIRED.values() if not env.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required settings: {', '.join(missing)}",
            details={"missing": missing},
        )
    try:
        return AppConfig(
            cosmos_connection_string=env["COSMOS_DB_CONNECTION_STRING"],
            cosmos_database=env["COSMOS_DB_NAME"],
            posts_container=env.get("COSMOS_DB_CONTAINER_POSTS") or "posts",
            blob_connection_string=env["PUBLIC_BLOB_CONNECTION_STRING"],
            media_bucket_id=env.get("MEDIA_BUCKET_ID") or "media",
            failure_mode=(env.get("SUBMISSION_FAILURE_MODE") or FailureMode.LENIENT.value).lower(),
        )
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    """Get the process configuration (cached)"""
    return config_from_env()
