# roomchat/services/codec.py

"""
Room transform codec.

Obscures message text with a key derived from the room code. Anyone who
knows the room code can derive the same key, so this only keeps text away
from casual inspection of the store; it is not encryption.

    key = derive_key("ROOM123")
    wire = obscure("hello", key)
    reveal(wire, key)  # -> "hello"
"""

from __future__ import annotations

import base64
import binascii
import logging

logger = logging.getLogger(__name__)


def derive_key(room_code: str) -> str:
    """Key for a room: base64 of the UTF-8 room code."""
    return base64.b64encode(room_code.encode("utf-8")).decode("ascii")


def obscure(plaintext: str, key: str | None) -> str:
    """
    Encode ``plaintext`` with ``key``.

    Never fails: with no key, or if the text cannot be encoded (lone
    surrogates and the like), the plaintext is returned unchanged.
    """
    if not key:
        return plaintext
    try:
        return base64.b64encode((plaintext + key).encode("utf-8")).decode("ascii")
    except UnicodeEncodeError:
        logger.warning("Could not obscure message, sending it as-is")
        return plaintext


def reveal(ciphertext: str, key: str | None) -> str:
    """
    Inverse of :func:`obscure`.

    Malformed input comes back unchanged instead of raising. Text obscured
    with another room's key decodes but keeps its trailing key, so it does
    not match the original plaintext.
    """
    if not key:
        return ciphertext
    try:
        decoded = base64.b64decode(ciphertext.encode("ascii"), validate=True).decode("utf-8")
    except (UnicodeError, binascii.Error, ValueError):
        return ciphertext
    if decoded.endswith(key):
        return decoded[: -len(key)]
    return decoded
