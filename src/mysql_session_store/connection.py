from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Literal, Optional, Sequence

import pymysql

from .config import StoreConfig
from .errors import QueryError, StoreConnectionError

FetchMode = Literal["none", "one", "all"]

_DRIVER_ERRORS = (pymysql.MySQLError, sqlite3.Error)


def _ensure_pragmas(connection: sqlite3.Connection) -> None:
    connection.execute("PRAGMA journal_mode = WAL;")


class ConnectionManager:
    """Owns a single short-lived connection for one store operation.

    ``open`` never raises: a failed attempt is logged and leaves the manager
    without a connection, so the following ``execute`` fails with a
    ``QueryError`` that reaches the caller through the normal error channel.
    """

    def __init__(self, config: StoreConfig, logger: Optional[logging.Logger] = None) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)
        self._connection: Any = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self) -> bool:
        try:
            self._connection = self._connect()
        except (*_DRIVER_ERRORS, OSError) as exc:
            self._connection = None
            error = StoreConnectionError(f"Unable to connect to the database: {exc}")
            self._logger.error("%s", error)
            return False
        self._logger.debug("Successfully connected to the %s database", self._config.driver)
        return True

    def execute(self, statement: str, params: Sequence[Any] = (), fetch: FetchMode = "none") -> Any:
        """Run one statement and commit.

        Returns the fetched row(s) for ``fetch="one"``/``"all"`` and the
        affected row count otherwise.
        """
        if self._connection is None:
            raise QueryError("No open database connection", statement=statement)
        try:
            cursor = self._connection.cursor()
            try:
                cursor.execute(statement, tuple(params))
                if fetch == "all":
                    result = list(cursor.fetchall())
                elif fetch == "one":
                    result = cursor.fetchone()
                else:
                    result = cursor.rowcount
                self._connection.commit()
            finally:
                cursor.close()
        except (*_DRIVER_ERRORS, OverflowError) as exc:
            raise QueryError(str(exc), statement=statement) from exc
        return result

    def close(self) -> None:
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.close()
        except _DRIVER_ERRORS as exc:
            self._logger.warning("Error while closing the database connection: %s", exc)
            return
        self._logger.debug("Successfully closed the database connection")

    def __enter__(self) -> "ConnectionManager":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _connect(self) -> Any:
        settings = self._config.database
        if self._config.driver == "sqlite":
            path = Path(settings.database)
            if path.name != ":memory:":
                path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(str(path))
            _ensure_pragmas(connection)
            return connection
        return pymysql.connect(
            host=settings.host,
            port=settings.port,
            user=settings.user,
            password=settings.password,
            database=settings.database,
            charset="utf8mb4",
        )
