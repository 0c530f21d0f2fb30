from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .errors import SessionStoreError


@dataclass(slots=True)
class SessionRecord:
    session_id: str
    data: Any
    expires: int
    user: str


@dataclass(slots=True)
class OperationResult:
    error: Optional[SessionStoreError] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None
