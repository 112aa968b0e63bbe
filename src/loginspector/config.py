"""Configuration for the log store.

Settings are read from keyword arguments, environment variables and an
optional .env file. Both models are frozen once built.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from loginspector.core.exceptions import ConfigurationError
from loginspector.core.pagination import DEFAULT_PAGE_SIZE

MEMORY_DATA_DIR = ":memory:"


class StoreSettings(BaseSettings):
    """Connection settings of the backing store.

    host, port, username, password and namespace identify and authenticate
    the store. data_dir is where the embedded store keeps one database
    file per namespace; ":memory:" keeps the store in process.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGINSPECTOR_STORE_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    host: str = Field(min_length=1)
    port: int = Field(27017, ge=1, le=65535)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)
    namespace: str = Field(min_length=1)
    data_dir: str = Field("data", min_length=1)

    connect_timeout: int = Field(20_000, ge=0, description="Milliseconds")
    heartbeat_connect_retry_frequency: int = Field(10, ge=0)
    heartbeat_connect_timeout: int = Field(20_000, ge=0, description="Milliseconds")
    heartbeat_socket_timeout: int = Field(20_000, ge=0, description="Milliseconds")

    @field_validator("host", "username", "password", "namespace", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @property
    def address(self) -> str:
        """Human-readable address of the store, without credentials."""
        return f"{self.host}:{self.port}/{self.namespace}"


class KeywordScope(str, Enum):
    """Which parts of a record a keyword filter searches."""

    MESSAGE = "message"
    ALL = "all"


class QuerySettings(BaseSettings):
    """Behavior of the query and inspector engines.

    Keyword matching is case-insensitive by default. It uses SQL LIKE,
    which folds ASCII letters only: "error" matches "ERROR", but "érror"
    does not match "ÉRROR". Set keyword_case_sensitive for exact matching.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGINSPECTOR_QUERY_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1)
    keyword_case_sensitive: bool = False
    keyword_scope: KeywordScope = KeywordScope.ALL
    # Levels aggregated by the inspector; empty means every collection.
    inspector_levels: tuple[str, ...] = ()


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "settings"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def load_store_settings(
    values: Mapping[str, Any] | None = None, **overrides: Any
) -> StoreSettings:
    """Build StoreSettings, reporting invalid input as ConfigurationError.

    Args:
        values: Explicit settings, e.g. parsed from a properties file.
        **overrides: Individual settings taking precedence over values.

    Returns:
        Validated StoreSettings.

    Raises:
        ConfigurationError: If a required field is missing or malformed.
    """
    try:
        return StoreSettings(**{**dict(values or {}), **overrides})
    except ValidationError as exc:
        raise ConfigurationError(
            f"invalid store configuration: {_describe(exc)}"
        ) from exc


def load_query_settings(
    values: Mapping[str, Any] | None = None, **overrides: Any
) -> QuerySettings:
    """Build QuerySettings, reporting invalid input as ConfigurationError."""
    try:
        return QuerySettings(**{**dict(values or {}), **overrides})
    except ValidationError as exc:
        raise ConfigurationError(
            f"invalid query configuration: {_describe(exc)}"
        ) from exc


def configure_logging(level: int | str = logging.INFO) -> None:
    """Send loginspector logs to the console at the given level.

    Meant for application entry points; library code never calls it.
    """
    package_logger = logging.getLogger("loginspector")
    package_logger.setLevel(level)
    if package_logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    package_logger.addHandler(handler)
