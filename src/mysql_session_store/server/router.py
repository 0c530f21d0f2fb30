from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..models import OperationResult, SessionRecord
from ..store import MySQLSessionStore
from .dependencies import get_session_store
from .schemas import DeleteResponse, ExpiredSession, ExpiredSessionList, SessionStats

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("/stats", response_model=SessionStats)
async def session_stats(store: MySQLSessionStore = Depends(get_session_store)) -> SessionStats:
    active = _unwrap(await store.length())
    expired = _unwrap(await store.expired_length())
    return SessionStats(active=active, expired=expired)


@router.get("/expired", response_model=ExpiredSessionList)
async def list_expired_sessions(
    store: MySQLSessionStore = Depends(get_session_store),
) -> ExpiredSessionList:
    records = _unwrap(await store.expired())
    return ExpiredSessionList(sessions=[_to_expired(record) for record in records])


@router.delete("/expired", response_model=DeleteResponse)
async def clear_expired_sessions(
    store: MySQLSessionStore = Depends(get_session_store),
) -> DeleteResponse:
    _unwrap(await store.expired_clear())
    return DeleteResponse(success=True)


@router.delete("/users/{user}", response_model=DeleteResponse)
async def destroy_user_sessions(
    user: str,
    store: MySQLSessionStore = Depends(get_session_store),
) -> DeleteResponse:
    _unwrap(await store.destroy_user(user))
    return DeleteResponse(success=True)


@router.delete("/ids/{session_id}", response_model=DeleteResponse)
async def destroy_session(
    session_id: str,
    store: MySQLSessionStore = Depends(get_session_store),
) -> DeleteResponse:
    _unwrap(await store.destroy(session_id))
    return DeleteResponse(success=True)


def _unwrap(result: OperationResult):
    if result.error is not None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(result.error))
    return result.data


def _to_expired(record: SessionRecord) -> ExpiredSession:
    return ExpiredSession(session_id=record.session_id, user=record.user, expires=record.expires)
