# roomchat/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Room Chat",
        "version": "1.0",
        "delivery": "full room history pushed on every change",
        "features": ["room_codes", "text_messages", "file_attachments", "presence_notices"],
        "endpoints": {
            "websocket": "/ws",
            "members": "/rooms/{room_code}/members",
            "messages": "/rooms/{room_code}/messages",
            "files": "/files/{room_code}/{name}",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
