from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

from .errors import SessionStoreError
from .models import OperationResult

Callback = Callable[[Optional[SessionStoreError], Any], Any]


class CallbackAdapter:
    """Deliver an operation's outcome as ``callback(error, data)``.

    The connection is already closed when ``finish`` runs. A missing callback
    is a no-op; coroutine callbacks are awaited.
    """

    def __init__(self, callback: Optional[Callback] = None, logger: Optional[logging.Logger] = None) -> None:
        self._callback = callback if callable(callback) else None
        self._logger = logger or logging.getLogger(__name__)
        if callback is not None and self._callback is None:
            self._logger.warning("Ignoring non-callable callback of type %s", type(callback).__name__)

    async def finish(
        self, error: Optional[SessionStoreError] = None, data: Any = None
    ) -> OperationResult:
        result = OperationResult(error=error, data=data)
        if self._callback is None:
            return result
        outcome = self._callback(error, data)
        if inspect.isawaitable(outcome):
            await outcome
        return result
