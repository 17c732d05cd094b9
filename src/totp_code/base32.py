"""
Strict Base32 (RFC 4648) validation and decoding of shared secrets.

The symbol table is lenient in one way: the numerals ``0``, ``1`` and ``8``
are read as the letters ``O``, ``L`` and ``B``, and letters are
case-insensitive. ``=`` is only valid as trailing padding.
"""
from typing import List, Union

from .exceptions import Base32Error, BufferSizeError

Source = Union[str, bytes, bytearray, memoryview]

PAD = ord("=")

_SYMBOLS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"


def _build_map() -> List[int]:
    table = [-1] * 256
    for value, char in enumerate(_SYMBOLS):
        table[ord(char)] = value
        table[ord(char.lower())] = value
    table[ord("0")] = _SYMBOLS.index("O")
    table[ord("1")] = _SYMBOLS.index("L")
    table[ord("8")] = _SYMBOLS.index("B")
    table[PAD] = 0
    return table


BASE32_MAP = _build_map()

# unpadded length % 8 that leave no partial output byte
_VALID_RESIDUES = (0, 2, 4, 5, 7)


def _as_bytes(src: Source) -> bytes:
    if isinstance(src, str):
        try:
            return src.encode("ascii")
        except UnicodeEncodeError:
            raise Base32Error("non-ASCII character in base32 data") from None
    return bytes(src)


def _data_length(data: bytes) -> int:
    srclen = len(data)
    for pos, char in enumerate(data):
        if BASE32_MAP[char] == -1:
            raise Base32Error("invalid base32 character {!r} at position {}".format(chr(char), pos))
        if char != PAD:
            continue
        if pos % 8 < 2:
            raise Base32Error("padding starts too early at position {}".format(pos))
        if pos + (8 - pos % 8) != srclen:
            raise Base32Error("padding does not complete an 8 character block")
        if data[pos:].count(PAD) != srclen - pos:
            raise Base32Error("data after padding at position {}".format(pos))
        return pos
    return srclen


def verify(src: Source) -> int:
    """
    Validates base32 encoded data.

    :param src: base32 text, or its ASCII bytes
    :returns: number of bytes the data decodes to
    :raises Base32Error: on an invalid character, bad padding, or a length
        that cannot hold a whole number of bytes
    """
    datlen = _data_length(_as_bytes(src))
    if datlen % 8 not in _VALID_RESIDUES:
        raise Base32Error("invalid length of base32 data: {}".format(datlen))
    return (datlen * 5) // 8


def decode_into(dst: Union[bytearray, memoryview], src: Source) -> int:
    """
    Decodes base32 data into a caller supplied buffer.

    :param dst: writable buffer, at least :func:`verify` bytes long
    :param src: base32 text, or its ASCII bytes
    :returns: number of bytes written to ``dst``
    :raises BufferSizeError: if ``dst`` is too small; nothing is written
    """
    data = _as_bytes(src)
    required = verify(data)
    if len(dst) < required:
        raise BufferSizeError(required, len(dst))

    written = 0
    for start in range(0, len(data), 8):
        group = data[start : start + 8]
        symbols = 0
        count = 0
        for char in group:
            if char == PAD:
                break
            symbols = (symbols << 5) | BASE32_MAP[char]
            count += 1
        # left align the symbols inside a 40 bit group, MSB first
        symbols <<= 5 * (8 - count)
        size = (count * 5) // 8
        dst[written : written + size] = symbols.to_bytes(5, "big")[:size]
        written += size
        if count < 8:
            break
    return written


def decode(src: Source) -> bytes:
    """
    Decodes base32 data.

    >>> decode("GEZDGNBVGY3TQOJQ")
    b'1234567890'
    """
    buffer = bytearray(verify(src))
    decode_into(buffer, src)
    return bytes(buffer)
