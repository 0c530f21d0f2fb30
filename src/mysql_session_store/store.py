from __future__ import annotations

import asyncio
import json
import logging
import math
import os
import time
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from .callbacks import Callback, CallbackAdapter
from .config import StoreConfig, resolve
from .connection import ConnectionManager, FetchMode
from .dialects import SessionStatements, get_dialect
from .errors import QueryError, SerializationError
from .models import OperationResult, SessionRecord


@runtime_checkable
class SessionStoreProtocol(Protocol):
    """Operations a session middleware calls on its store."""

    async def all(self, *, callback: Optional[Callback] = None) -> OperationResult: ...

    async def clear(self, *, callback: Optional[Callback] = None) -> OperationResult: ...

    async def destroy(self, session_id: str, *, callback: Optional[Callback] = None) -> OperationResult: ...

    async def get(self, session_id: str, *, callback: Optional[Callback] = None) -> OperationResult: ...

    async def length(self, *, callback: Optional[Callback] = None) -> OperationResult: ...

    async def set(
        self, session_id: str, session: Mapping[str, Any], *, callback: Optional[Callback] = None
    ) -> OperationResult: ...

    async def touch(
        self, session_id: str, session: Mapping[str, Any], *, callback: Optional[Callback] = None
    ) -> OperationResult: ...


class MySQLSessionStore:
    """Session repository over a single SQL table.

    Every operation opens its own connection, runs one parameterized
    statement in a worker thread, closes the connection and then reports
    ``(error, data)`` through the optional callback and the returned
    ``OperationResult``. Nothing raises after construction.

    Expiry is lazy: reads compare the stored ``expires`` (epoch ms) against
    the current time, and nothing deletes expired rows unless
    ``expired_clear`` is called.
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._logger.info("MySQLSessionStore is initializing...")
        self._config = resolve(os.environ if env is None else env, options)
        self._statements = SessionStatements(self._config, get_dialect(self._config.driver))
        self._clock = clock or _now_ms
        self._logger.info(
            "MySQLSessionStore successfully initialized (driver=%s, table=%s)",
            self._config.driver,
            self._config.table_name,
        )

    @property
    def config(self) -> StoreConfig:
        return self._config

    async def close(self) -> None:
        """Lifespan hook for hosting apps. Connections are per-operation, so nothing is held open."""
        return None

    async def create_table(self, *, callback: Optional[Callback] = None) -> OperationResult:
        result = await self._run("create_table", self._statements.create_table, callback=callback)
        if result.ok:
            self._logger.info("Session table %s is ready", self._config.table_name)
        return result

    async def all(self, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run(
            "all",
            self._statements.select_active,
            (self._clock(),),
            fetch="all",
            callback=callback,
            on_success=self._rows_to_records,
        )

    async def expired(self, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run(
            "expired",
            self._statements.select_expired,
            (self._clock(),),
            fetch="all",
            callback=callback,
            on_success=self._rows_to_records,
        )

    async def length(self, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run(
            "length",
            self._statements.count_active,
            (self._clock(),),
            fetch="one",
            callback=callback,
            on_success=_count,
        )

    async def expired_length(self, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run(
            "expired_length",
            self._statements.count_expired,
            (self._clock(),),
            fetch="one",
            callback=callback,
            on_success=_count,
        )

    async def clear(self, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run("clear", self._statements.truncate, callback=callback)

    async def expired_clear(self, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run(
            "expired_clear", self._statements.delete_expired, (self._clock(),), callback=callback
        )

    async def destroy(self, session_id: str, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run(
            f"destroy({session_id})", self._statements.delete_one, (session_id,), callback=callback
        )

    async def destroy_user(self, user: str, *, callback: Optional[Callback] = None) -> OperationResult:
        return await self._run(
            f"destroy_user({user})", self._statements.delete_user, (str(user),), callback=callback
        )

    async def get(self, session_id: str, *, callback: Optional[Callback] = None) -> OperationResult:
        def _load(row: Optional[Sequence[Any]]) -> Any:
            if row is None:
                self._logger.debug("Session %s not found or expired", session_id)
                return None
            return _decode(row[0], session_id)

        return await self._run(
            f"get({session_id})",
            self._statements.select_one,
            (session_id, self._clock()),
            fetch="one",
            callback=callback,
            on_success=_load,
        )

    async def set(
        self, session_id: str, session: Mapping[str, Any], *, callback: Optional[Callback] = None
    ) -> OperationResult:
        """Insert a session, leaving any existing row with the same ID untouched.

        This is insert-ignore, not an upsert: setting an ID that already
        exists is a silent no-op. Use ``touch`` to change a stored session.
        """
        try:
            data, expires, user = self._prepare(session_id, session)
        except SerializationError as exc:
            self._logger.error("Session %s cannot be created: %s", session_id, exc)
            return await CallbackAdapter(callback, self._logger).finish(exc)
        return await self._run(
            f"set({session_id})",
            self._statements.insert_ignore,
            (session_id, data, expires, user),
            callback=callback,
        )

    async def touch(
        self, session_id: str, session: Mapping[str, Any], *, callback: Optional[Callback] = None
    ) -> OperationResult:
        try:
            data, expires, _ = self._prepare(session_id, session)
        except SerializationError as exc:
            self._logger.error("Session %s cannot be touched: %s", session_id, exc)
            return await CallbackAdapter(callback, self._logger).finish(exc)
        return await self._run(
            f"touch({session_id})",
            self._statements.update_one,
            (data, expires, session_id),
            callback=callback,
        )

    # Names used by the original middleware contract.
    expiredLength = expired_length
    expiredClear = expired_clear
    destroyUser = destroy_user
    createTable = create_table

    async def _run(
        self,
        action: str,
        statement: str,
        params: Sequence[Any] = (),
        *,
        fetch: FetchMode = "none",
        callback: Optional[Callback] = None,
        on_success: Optional[Callable[[Any], Any]] = None,
    ) -> OperationResult:
        adapter = CallbackAdapter(callback, self._logger)
        try:
            raw = await asyncio.to_thread(self._query, statement, params, fetch)
        except QueryError as exc:
            self._logger.error("Session store %s failed: %s", action, exc)
            return await adapter.finish(exc)

        if on_success is None:
            self._logger.debug("Session store %s succeeded; %s row(s) affected", action, raw)
            return await adapter.finish()
        try:
            data = on_success(raw)
        except SerializationError as exc:
            self._logger.error("Session store %s returned unreadable data: %s", action, exc)
            return await adapter.finish(exc)
        self._logger.debug("Session store %s succeeded", action)
        return await adapter.finish(None, data)

    def _query(self, statement: str, params: Sequence[Any], fetch: FetchMode) -> Any:
        manager = ConnectionManager(self._config, self._logger)
        manager.open()
        try:
            return manager.execute(statement, params, fetch)
        finally:
            manager.close()

    def _prepare(self, session_id: str, session: Mapping[str, Any]) -> tuple[str, int, str]:
        try:
            data = json.dumps(session, default=_json_default)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Session {session_id} cannot be serialized: {exc}") from exc
        return data, self._expires_of(session), _user_of(session)

    def _expires_of(self, session: Any) -> int:
        value = None
        if isinstance(session, Mapping):
            value = session.get("expires")
            cookie = session.get("cookie")
            if value is None and isinstance(cookie, Mapping):
                value = cookie.get("expires")
        if value is None or value == "":
            return self._clock() + self._config.expiration
        return _to_epoch_ms(value)

    def _rows_to_records(self, rows: list[Sequence[Any]]) -> list[SessionRecord]:
        return [
            SessionRecord(
                session_id=row[0],
                data=_decode(row[1], row[0]),
                expires=int(row[2]),
                user=row[3],
            )
            for row in rows
        ]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _count(row: Optional[Sequence[Any]]) -> int:
    return int(row[0]) if row else 0


def _decode(raw: Any, session_id: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Session {session_id} holds unreadable data: {exc}") from exc


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


_BIGINT_MIN = -(2**63)
_BIGINT_MAX = 2**63 - 1


def _to_epoch_ms(value: Any) -> int:
    expires = _parse_epoch_ms(value)
    if not _BIGINT_MIN <= expires <= _BIGINT_MAX:
        raise SerializationError(f"Session expiry out of range: {value!r}")
    return expires


def _parse_epoch_ms(value: Any) -> int:
    if isinstance(value, bool):
        raise SerializationError(f"Invalid session expiry: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise SerializationError(f"Invalid session expiry: {value!r}")
        return int(value)
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as exc:
            raise SerializationError(f"Invalid session expiry: {value!r}") from exc
    else:
        raise SerializationError(f"Invalid session expiry of type {type(value).__name__}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def _user_of(session: Any) -> str:
    if not isinstance(session, Mapping):
        return ""
    passport = session.get("passport")
    user = passport.get("user") if isinstance(passport, Mapping) else None
    if user is None:
        user = session.get("user")
    return "" if user is None else str(user)
