# roomchat/services/session.py

from __future__ import annotations

import enum
import logging
import uuid
from typing import Callable, List, Optional

from roomchat.core.config import settings
from roomchat.core.errors import (
    InvalidInput,
    JoinFailed,
    RoomChatError,
    SessionStateError,
    StoreUnavailable,
    UploadFailed,
)
from roomchat.models.models import (
    FileMessage,
    FileUpload,
    Member,
    Message,
    SystemMessage,
    TextMessage,
)
from roomchat.services import codec
from roomchat.services.room_directory import RoomDirectory, normalize_room_code
from roomchat.services.stores import BlobStore, MessageStore, Subscription

logger = logging.getLogger(__name__)

MessagesCallback = Callable[[List[Message]], None]


class SessionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    JOINING = "joining"
    ACTIVE = "active"
    EXITING = "exiting"


def new_member_id() -> str:
    # 128 random bits; collisions are not checked for.
    return uuid.uuid4().hex


# ============================================================================
# CHAT SESSION
# ============================================================================

class ChatSession:
    """
    One participant's membership of one room.

    Lifecycle:
        DISCONNECTED -> JOINING -> ACTIVE -> EXITING -> DISCONNECTED

    Everything that belongs to the session (member identity, room key,
    live subscription, last seen message sequence) lives on this object and
    is cleared on exit, so any number of sessions can share a process and
    the same stores.

    Delivery:
        The store pushes the complete ordered sequence of the room on every
        change. ``messages`` is replaced with it (not appended to) and the
        same list is handed to ``on_messages``.

    Usage:
        session = ChatSession(message_store, RoomDirectory(membership_store), blob_store)
        await session.join("alice", "room123", on_messages=render)
        await session.send_text("hello")
        await session.exit()
    """

    def __init__(
        self,
        message_store: MessageStore,
        directory: RoomDirectory,
        blob_store: Optional[BlobStore] = None,
        system_sender: Optional[str] = None,
    ) -> None:
        self.message_store = message_store
        self.directory = directory
        self.blob_store = blob_store
        self.system_sender = system_sender or settings.SYSTEM_SENDER

        self.state = SessionState.DISCONNECTED
        self.member: Optional[Member] = None
        self.room_code: Optional[str] = None
        self.messages: List[Message] = []
        self._key: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._on_messages: Optional[MessagesCallback] = None

    @property
    def active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def member_id(self) -> Optional[str]:
        return self.member.id if self.member else None

    # ------------------------------------------------------------------
    # Join
    # ------------------------------------------------------------------

    async def join(
        self,
        display_name: str,
        room_code: str,
        on_messages: Optional[MessagesCallback] = None,
    ) -> Member:
        """
        Join a room.

        Raises:
            InvalidInput: blank display name or room code (nothing touched)
            SessionStateError: the session is not DISCONNECTED
            JoinFailed: registration or subscription failed; the session is
                back to DISCONNECTED with nothing retained
        """
        if self.state is not SessionState.DISCONNECTED:
            raise SessionStateError(f"Cannot join while {self.state.value}")
        if not (display_name or "").strip() or not (room_code or "").strip():
            raise InvalidInput("Please enter both username and room code")

        name = display_name.strip()
        room = normalize_room_code(room_code)
        member_id = new_member_id()

        self.state = SessionState.JOINING
        self._key = codec.derive_key(room)
        self._on_messages = on_messages
        self.room_code = room

        registered = False
        try:
            self.member = await self.directory.join(room, member_id, name)
            registered = True
            self._subscription = await self.message_store.subscribe(room, self._handle_sequence)
        except Exception as e:
            logger.error("Join of %s to room %s failed: %s", name, room, e)
            await self._abort_join(room, member_id, registered)
            raise JoinFailed(f"Could not join room {room}: {e}", cause=e) from e
        except BaseException:
            logger.warning("Join of %s to room %s cancelled", name, room)
            self.message_store.unsubscribe(self._subscription)
            self._reset()
            raise

        self.state = SessionState.ACTIVE

        try:
            await self._append(SystemMessage(sender=self.system_sender, text=f"{name} joined the room"))
        except StoreUnavailable as e:
            logger.warning("Join notice for %s in %s not delivered: %s", name, room, e)

        logger.info("✓ Session %s active in room %s", member_id, room)
        return self.member

    async def _abort_join(self, room: str, member_id: str, registered: bool) -> None:
        if self._subscription is not None:
            self.message_store.unsubscribe(self._subscription)
        if registered:
            try:
                await self.directory.leave(room, member_id)
            except RoomChatError as e:
                logger.warning("Could not roll back membership of %s in %s: %s", member_id, room, e)
        self._reset()

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    async def send_text(self, body: str) -> Optional[str]:
        """
        Obscure and append a text message.

        Returns the store-assigned message id, or None when ``body`` is
        blank (nothing is sent).

        Raises:
            SessionStateError: the session is not ACTIVE
            StoreUnavailable: the append failed
        """
        self._require_active()
        if not (body or "").strip():
            return None

        message = TextMessage(
            sender=self.member.display_name,
            sender_id=self.member.id,
            text=codec.obscure(body, self._key),
            encoded=True,
        )
        return await self._append(message)

    async def send_file(self, upload: FileUpload) -> str:
        """
        Upload a file and append a message pointing at it.

        Raises:
            SessionStateError: the session is not ACTIVE
            UploadFailed: the blob store rejected the file (nothing appended)
            StoreUnavailable: the append failed
        """
        self._require_active()
        if not (upload.file_name or "").strip():
            raise InvalidInput("File name is required")
        if self.blob_store is None:
            raise UploadFailed("No blob store configured for this session")

        try:
            file_ref = await self.blob_store.upload(self.room_code, upload.data, upload.file_name)
        except UploadFailed:
            raise
        except Exception as e:
            raise UploadFailed(f"Upload of {upload.file_name!r} failed: {e}") from e

        message = FileMessage(
            sender=self.member.display_name,
            sender_id=self.member.id,
            file_name=upload.file_name,
            file_size_kb=upload.size_kb,
            file_ref=file_ref,
        )
        return await self._append(message)

    # ------------------------------------------------------------------
    # Receive
    # ------------------------------------------------------------------

    def _handle_sequence(self, messages: List[Message]) -> None:
        self.messages = messages
        if self._on_messages is not None:
            self._on_messages(messages)

    def reveal(self, message: Message) -> Message:
        """Copy of ``message`` with its text readable for this session."""
        if isinstance(message, TextMessage) and message.encoded:
            return message.model_copy(
                update={"text": codec.reveal(message.text, self._key), "encoded": False}
            )
        return message

    def revealed_messages(self) -> List[Message]:
        return [self.reveal(m) for m in self.messages]

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    async def exit(self) -> None:
        """
        Leave the room.

        Store failures on the way out are logged only; the session always
        ends up DISCONNECTED with its state cleared. Calling exit on a
        session that is not ACTIVE does nothing.
        """
        if self.state is not SessionState.ACTIVE:
            logger.debug("exit() ignored while %s", self.state.value)
            return

        self.state = SessionState.EXITING
        room = self.room_code
        member = self.member

        try:
            try:
                await self.directory.leave(room, member.id)
            except RoomChatError as e:
                logger.error("Could not remove %s from room %s: %s", member.id, room, e)

            try:
                await self._append(SystemMessage(sender=self.system_sender, text=f"{member.display_name} left the room"))
            except StoreUnavailable as e:
                logger.error("Leave notice for %s in %s not delivered: %s", member.display_name, room, e)
        finally:
            self.message_store.unsubscribe(self._subscription)
            self._reset()
        logger.info("✗ Session %s left room %s", member.id, room)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_active(self) -> None:
        if self.state is not SessionState.ACTIVE:
            raise SessionStateError(f"Session is {self.state.value}, not active")

    async def _append(self, message: Message) -> str:
        try:
            return await self.message_store.append(self.room_code, message)
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"Could not append to room {self.room_code}: {e}") from e

    def _reset(self) -> None:
        self.state = SessionState.DISCONNECTED
        self.member = None
        self.room_code = None
        self.messages = []
        self._key = None
        self._subscription = None
        self._on_messages = None
