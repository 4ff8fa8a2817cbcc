# roomchat/api/routes/rooms.py

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from roomchat.core import state
from roomchat.core.errors import InvalidInput, StoreUnavailable, UploadFailed
from roomchat.models.models import MembersResponse, MessagesResponse
from roomchat.services.blob_store import LocalBlobStore
from roomchat.services.room_directory import normalize_room_code

router = APIRouter()

# ============================================================================
# ROOM READ ENDPOINTS
# ============================================================================

@router.get("/rooms/{room_code}/members", response_model=MembersResponse)
async def list_members(room_code: str):
    """
    Current members of a room.

    Raises:
        HTTPException: 400 on a blank code, 503 if the store is unreachable
    """
    stores = state.get_stores()
    try:
        room = normalize_room_code(room_code)
        members = await stores.directory.members(room)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return MembersResponse(room_code=room, members=members)


@router.get("/rooms/{room_code}/messages", response_model=MessagesResponse)
async def list_messages(room_code: str):
    """
    Room history exactly as stored, in store order.

    Text stays obscured here; only a joined session reveals it.
    """
    stores = state.get_stores()
    try:
        room = normalize_room_code(room_code)
        messages = await stores.messages.list_messages(room)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return MessagesResponse(room_code=room, messages=messages)


@router.delete("/rooms/{room_code}/messages/{message_id}")
async def delete_message(room_code: str, message_id: str):
    """
    Delete one message by id.

    Subscribers of the room get the new, shorter sequence pushed to them.

    TODO: Add authorization check (only the sender should be able to delete)
    """
    stores = state.get_stores()
    try:
        room = normalize_room_code(room_code)
        await stores.messages.delete_message(room, message_id)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "deleted", "room_code": room, "id": message_id}


@router.get("/files/{room_code}/{name}")
async def get_file(room_code: str, name: str):
    """Serve a file stored by the local blob store."""
    blobs = state.get_stores().blobs
    if not isinstance(blobs, LocalBlobStore):
        raise HTTPException(status_code=404, detail="File not found")

    try:
        path = blobs.path_for(normalize_room_code(room_code), name)
    except (InvalidInput, UploadFailed):
        raise HTTPException(status_code=404, detail="File not found")

    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")

    # Stored names carry an "{epoch_ms}_" prefix; hand back the original name
    download_name = name.split("_", 1)[1] if "_" in name else name
    return FileResponse(path, filename=download_name)
