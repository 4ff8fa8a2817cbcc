# roomchat/services/room_directory.py

from __future__ import annotations

import logging
from typing import List

from roomchat.core.errors import InvalidInput, RoomChatError, StoreUnavailable
from roomchat.models.models import Member
from roomchat.services.stores import MembershipStore

logger = logging.getLogger(__name__)


def normalize_room_code(room_code: str) -> str:
    """
    Canonical form of a room code: trimmed and uppercased, so "abc" and
    "ABC" land in the same room.
    """
    code = (room_code or "").strip().upper()
    if not code:
        raise InvalidInput("Room code is required")
    return code


# ============================================================================
# ROOM DIRECTORY
# ============================================================================

class RoomDirectory:
    """
    Room membership on top of a MembershipStore.

    Rooms exist implicitly: the first join creates one and nothing ever
    deletes it. Both mutations are idempotent, and the member map itself is
    serialized by the store, not here.

    Usage:
        directory = RoomDirectory(InMemoryMembershipStore())
        member = await directory.join("room123", member_id, "alice")
        await directory.leave("ROOM123", member_id)
    """

    def __init__(self, store: MembershipStore) -> None:
        self.store = store

    async def join(self, room_code: str, member_id: str, display_name: str) -> Member:
        """
        Register (or re-register) a member in a room.

        Rejoining with the same member_id overwrites the record and its
        join time.

        Raises:
            InvalidInput: blank room code or display name
            StoreUnavailable: the membership store call failed
        """
        room = normalize_room_code(room_code)
        if not (display_name or "").strip():
            raise InvalidInput("Display name is required")

        member = Member(id=member_id, display_name=display_name.strip())
        try:
            await self.store.upsert_member(room, member_id, member)
        except RoomChatError:
            raise
        except Exception as e:
            raise StoreUnavailable(f"Could not register {member_id} in {room}: {e}") from e

        logger.info("→ %s joined room %s", member.display_name, room)
        return member

    async def leave(self, room_code: str, member_id: str) -> None:
        """Remove a member. Leaving a room you are not in is fine."""
        room = normalize_room_code(room_code)
        try:
            await self.store.remove_member(room, member_id)
        except RoomChatError:
            raise
        except Exception as e:
            raise StoreUnavailable(f"Could not remove {member_id} from {room}: {e}") from e
        logger.info("← %s left room %s", member_id, room)

    async def members(self, room_code: str) -> List[Member]:
        room = normalize_room_code(room_code)
        try:
            return await self.store.list_members(room)
        except RoomChatError:
            raise
        except Exception as e:
            raise StoreUnavailable(f"Could not read members of {room}: {e}") from e
