from __future__ import annotations

import logging
import math
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DATABASE_DEFAULTS: dict[str, Any] = {
    "host": "localhost",
    "port": 3306,
    "user": "auth_express_mysql_test_user",
    "password": "password123456",
    "database": "auth_express_mysql_testing",
}

SCHEMA_DEFAULTS: dict[str, Any] = {
    "table_name": "SESSIONS",
    "column_names": {
        "session_id": "SESSION_ID",
        "expires": "EXPIRES",
        "data": "DATA",
        "user": "USER",
    },
}

DEFAULTS: dict[str, Any] = {
    **DATABASE_DEFAULTS,
    **SCHEMA_DEFAULTS,
    "driver": "mysql",
    "expiration": 86_400_000,
}

# Environment variables win over caller options, which win over defaults.
ENV_VARIABLES: dict[str, str] = {
    "host": "HOST",
    "port": "DATABASE_PORT",
    "user": "DATABASE_USER",
    "password": "DATABASE_PASSWORD",
    "database": "DATABASE_NAME",
    "driver": "DATABASE_DRIVER",
}

_OPTION_ALIASES = {
    "tableName": "table_name",
    "columnNames": "column_names",
    "sessionID": "session_id",
    "sessionId": "session_id",
}

_EXPECTED = {
    "port": "coercible to an integer",
    "driver": "one of 'mysql', 'sqlite'",
    "expiration": "a positive integer number of milliseconds",
}


class ColumnNames(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    session_id: str
    expires: str
    data: str
    user: str


class DatabaseSettings(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    host: str
    port: int
    user: str
    password: str
    database: str

    @field_validator("port", mode="before")
    @classmethod
    def truncate_port(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("port cannot be a boolean")
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("port must be finite")
            return int(value)
        return value


class StoreConfig(BaseModel):
    """Validated, immutable settings owned by a session store for its lifetime."""

    model_config = ConfigDict(frozen=True, strict=True)

    database: DatabaseSettings
    driver: Literal["mysql", "sqlite"] = "mysql"
    table_name: str
    column_names: ColumnNames
    expiration: int = Field(gt=0)


def resolve(
    env: Mapping[str, str],
    options: Optional[Mapping[str, Any]] = None,
    defaults: Mapping[str, Any] = DEFAULTS,
) -> StoreConfig:
    """Merge environment, caller options and defaults into a validated config.

    Missing or empty values fall through to the next source. Any value of the
    wrong type raises ``ConfigurationError`` naming the field and the type
    actually received.
    """
    opts = _normalise_keys(options or {})
    raw_columns = opts.get("column_names") or {}
    if not isinstance(raw_columns, Mapping):
        raise ConfigurationError("column_names", type(raw_columns).__name__, "a mapping")
    column_opts = _normalise_keys(raw_columns)
    column_defaults = defaults["column_names"]

    values = {
        name: _first_set(_from_env(env, name), opts.get(name), defaults[name])
        for name in ENV_VARIABLES
    }
    columns = {
        name: _first_set(column_opts.get(name), column_defaults[name]) for name in column_defaults
    }

    column_names = _build(ColumnNames, columns, prefix="column_names.")
    database = _build(
        DatabaseSettings,
        {name: values[name] for name in DATABASE_DEFAULTS},
        prefix="",
    )
    config = _build(
        StoreConfig,
        {
            "database": database,
            "driver": values["driver"],
            "table_name": _first_set(opts.get("table_name"), defaults["table_name"]),
            "column_names": column_names,
            "expiration": _first_set(opts.get("expiration"), defaults["expiration"]),
        },
        prefix="",
    )
    logger.debug(
        "Resolved session store config: driver=%s host=%s port=%s database=%s table=%s",
        config.driver,
        config.database.host,
        config.database.port,
        config.database.database,
        config.table_name,
    )
    return config


def _build(model: type[BaseModel], values: dict[str, Any], *, prefix: str) -> Any:
    try:
        return model(**values)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        actual_type = type(error.get("input")).__name__
        expected = _EXPECTED.get(field, "a string")
        logger.error("Invalid session store configuration for %s%s: %s", prefix, field, error["msg"])
        raise ConfigurationError(f"{prefix}{field}", actual_type, expected) from None


def _from_env(env: Mapping[str, str], name: str) -> Any:
    raw = env.get(ENV_VARIABLES[name])
    if not raw:
        return None
    if name != "port":
        return raw
    try:
        return int(raw, 10)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", ENV_VARIABLES[name], raw)
        return None


def _first_set(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None and candidate != "":
            return candidate
    return None


def _normalise_keys(options: Mapping[str, Any]) -> dict[str, Any]:
    return {_OPTION_ALIASES.get(key, key): value for key, value in options.items()}
