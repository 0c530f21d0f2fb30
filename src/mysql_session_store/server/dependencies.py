from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import Depends

from ..store import MySQLSessionStore

logger = logging.getLogger(__name__)

_SESSION_STORE: Optional[MySQLSessionStore] = None


def initialise_session_store() -> MySQLSessionStore:
    """Create session store instance using configuration."""
    global _SESSION_STORE
    if _SESSION_STORE is not None:
        return _SESSION_STORE

    options = {}
    table_name = os.environ.get("SESSION_TABLE_NAME")
    if table_name:
        options["table_name"] = table_name
    store = MySQLSessionStore(options)
    _SESSION_STORE = store
    logger.info(
        "Initialised session store for %s database %s",
        store.config.driver,
        store.config.database.database,
    )
    return store


def set_session_store(store: Optional[MySQLSessionStore]) -> None:
    global _SESSION_STORE
    _SESSION_STORE = store


def get_session_store(_: MySQLSessionStore = Depends(initialise_session_store)) -> MySQLSessionStore:
    if _SESSION_STORE is None:
        raise RuntimeError("Session store has not been initialised")
    return _SESSION_STORE
