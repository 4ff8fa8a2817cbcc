# roomchat/core/state.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import WebSocket

from roomchat.services.factory import Stores
from roomchat.services.session import ChatSession

# Set on startup by main.py
stores: Optional[Stores] = None

# One chat session per open WebSocket
sessions: Dict[WebSocket, ChatSession] = {}

# Metrics
message_counter: int = 0
app_start_time: datetime = datetime.now(timezone.utc)


def get_stores() -> Stores:
    if stores is None:
        raise RuntimeError("Stores not initialised - application startup has not run")
    return stores
