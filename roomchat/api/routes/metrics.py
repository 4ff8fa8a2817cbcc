# roomchat/api/routes/metrics.py
from collections import Counter
from datetime import datetime, timezone

from fastapi import APIRouter

from roomchat.core import state

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Usage metrics.

    Example Response:
        {
            "total_messages": 120,
            "uptime_hours": 1.5,
            "messages_per_second": 0.02,
            "concurrent_connections": 4,
            "active_sessions": 3,
            "sessions_per_room": {"ROOM123": 2, "LOBBY": 1}
        }

    ``total_messages`` counts text and file messages sent through this
    process; join/leave notices are not included.
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()

    if uptime_seconds > 0:
        messages_per_second = state.message_counter / uptime_seconds
    else:
        messages_per_second = 0

    per_room = Counter(s.room_code for s in state.sessions.values() if s.active)

    return {
        "total_messages": state.message_counter,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),
        "concurrent_connections": len(state.sessions),
        "active_sessions": sum(per_room.values()),
        "sessions_per_room": dict(per_room),
    }
