# roomchat/api/routes/health.py

from fastapi import APIRouter

from roomchat.core import state
from roomchat.core.config import settings

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns:
        dict: Status, store backend, open connections, active sessions
    """
    return {
        "status": "healthy" if state.stores is not None else "starting",
        "store_backend": settings.STORE_BACKEND,
        "connections": len(state.sessions),
        "active_sessions": sum(1 for s in state.sessions.values() if s.active),
    }
