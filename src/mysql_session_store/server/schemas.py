from __future__ import annotations

from pydantic import BaseModel, Field


class SessionStats(BaseModel):
    active: int = Field(description="Sessions whose expiry is still in the future.")
    expired: int = Field(description="Expired sessions awaiting reclamation.")


class ExpiredSession(BaseModel):
    session_id: str
    user: str
    expires: int


class ExpiredSessionList(BaseModel):
    sessions: list[ExpiredSession]


class DeleteResponse(BaseModel):
    success: bool
