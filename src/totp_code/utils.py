import unicodedata
from hmac import compare_digest
from typing import Union

from . import base32
from .exceptions import Base32Error

Secret = Union[str, bytes, bytearray, memoryview]


def decode_secret(secret: Secret) -> bytes:
    """
    Normalizes a shared secret to raw key bytes.

    Text is Base32 and is decoded strictly; bytes-like values are already a
    raw key and are returned as they are.

    :param secret: base32 text or raw key bytes
    :returns: key bytes, never empty
    """
    if isinstance(secret, str):
        key = base32.decode(secret)
    else:
        key = bytes(secret)
    if not key:
        raise Base32Error("secret decodes to an empty key")
    return key


def strings_equal(s1: str, s2: str) -> bool:
    """
    Timing-attack resistant string comparison.

    Normal comparison using == will short-circuit on the first mismatching
    character. This avoids that by scanning the whole string, though we
    still reveal to a timing attack whether the strings are the same
    length.
    """
    s1 = unicodedata.normalize("NFKC", s1)
    s2 = unicodedata.normalize("NFKC", s2)
    return compare_digest(s1.encode("utf-8"), s2.encode("utf-8"))
