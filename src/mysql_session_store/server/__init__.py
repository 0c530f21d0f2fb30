"""FastAPI wiring and maintenance endpoints for the session store."""

from .dependencies import get_session_store
from .router import router

__all__ = ["get_session_store", "router"]
