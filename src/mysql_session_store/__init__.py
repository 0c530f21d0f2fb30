# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""SQL-backed session store with lazy expiry and per-operation connections."""

from .config import StoreConfig, resolve
from .errors import (
    ConfigurationError,
    QueryError,
    SerializationError,
    SessionStoreError,
    StoreConnectionError,
)
from .models import OperationResult, SessionRecord
from .store import MySQLSessionStore, SessionStoreProtocol

__all__ = [
    "ConfigurationError",
    "MySQLSessionStore",
    "OperationResult",
    "QueryError",
    "SerializationError",
    "SessionRecord",
    "SessionStoreError",
    "SessionStoreProtocol",
    "StoreConfig",
    "StoreConnectionError",
    "resolve",
]
