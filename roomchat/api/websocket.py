# roomchat/api/websocket.py

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from typing import List

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from roomchat.core import state
from roomchat.core.errors import InvalidInput, RoomChatError
from roomchat.models.models import FileUpload, Message
from roomchat.services.session import ChatSession

logger = logging.getLogger(__name__)

router = APIRouter()


def messages_frame(session: ChatSession) -> dict:
    return {
        "type": "messages",
        "room_code": session.room_code,
        "messages": [m.model_dump() for m in session.revealed_messages()],
    }


async def _pump(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """Single writer for the socket; everything sent goes through ``outbox``."""
    while True:
        frame = await outbox.get()
        try:
            await websocket.send_json(frame)
        except Exception as e:
            logger.error(f"Send error: {e}")
            return


# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint: one chat session per connection.

    Protocol:
    =========

    Client -> Server Actions:
    -------------------------
    Join Room:
        {"action": "join", "display_name": "alice", "room_code": "room123"}
        Response: {"type": "joined", "room_code": "ROOM123", "member": {...}}

    Send Text:
        {"action": "send_text", "text": "hello"}
        Response: {"type": "sent", "id": "<message id>"}

    Send File:
        {"action": "send_file", "file_name": "notes.pdf", "data": "<base64>"}
        Response: {"type": "sent", "id": "<message id>"}

    Exit Room:
        {"action": "exit"}
        Response: {"type": "left"}

    Server -> Client Messages:
    -------------------------
    Room History (full sequence, replaces whatever the client shows):
        {"type": "messages", "room_code": "ROOM123", "messages": [...]}

    Error:
        {"type": "error", "error": "InvalidInput", "message": "..."}

    Closing the socket exits the room.
    """
    await websocket.accept()

    session = state.get_stores().new_session()
    state.sessions[websocket] = session
    outbox: asyncio.Queue = asyncio.Queue()
    sender = asyncio.create_task(_pump(websocket, outbox))

    def on_messages(_messages: List[Message]) -> None:
        outbox.put_nowait(messages_frame(session))

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
                if not isinstance(message, dict):
                    raise json.JSONDecodeError("Expected a JSON object", data, 0)
                action = message.get("action")
                logger.info(f"Websocket input: Action: {action}")

                if action == "join":
                    member = await session.join(
                        _field(message, "display_name"),
                        _field(message, "room_code"),
                        on_messages=on_messages,
                    )
                    outbox.put_nowait(
                        {"type": "joined", "room_code": session.room_code, "member": member.model_dump()}
                    )

                elif action == "send_text":
                    message_id = await session.send_text(_field(message, "text"))
                    if message_id is not None:
                        state.message_counter += 1
                    outbox.put_nowait({"type": "sent", "id": message_id})

                elif action == "send_file":
                    upload = FileUpload(
                        file_name=_field(message, "file_name"),
                        data=_decode_file_data(_field(message, "data")),
                    )
                    message_id = await session.send_file(upload)
                    state.message_counter += 1
                    outbox.put_nowait({"type": "sent", "id": message_id})

                elif action == "exit":
                    await session.exit()
                    outbox.put_nowait({"type": "left"})

                else:
                    outbox.put_nowait({"type": "error", "error": "UnknownAction", "message": f"Unknown action: {action}"})

            except json.JSONDecodeError:
                outbox.put_nowait({"type": "error", "error": "InvalidJSON", "message": "Invalid JSON"})
            except ValidationError as e:
                outbox.put_nowait({"type": "error", "error": "InvalidInput", "message": str(e)})
            except RoomChatError as e:
                outbox.put_nowait({"type": "error", "error": type(e).__name__, "message": str(e)})

    except WebSocketDisconnect:
        logger.info("WebSocket closed by client")
    except Exception as e:
        logger.error("WebSocket error: %s", e)
    finally:
        await session.exit()
        sender.cancel()
        state.sessions.pop(websocket, None)


def _field(message: dict, name: str) -> str:
    value = message.get(name, "")
    if not isinstance(value, str):
        raise InvalidInput(f"'{name}' must be a string")
    return value


def _decode_file_data(data: str) -> bytes:
    if not data:
        raise InvalidInput("File data is required")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput(f"File data is not valid base64: {e}") from e
