"""Variable-length integer encoding used throughout TDF.

The layout is not LEB128: the first byte carries only 6 value bits,
every following byte carries 7.

    first byte:  [C|x|D D D D D D]   C = more bytes follow, x unused
    next bytes:  [C|D D D D D D D]

Negative numbers travel as their 64-bit two's-complement form, so any
signed 64-bit value fits in at most 10 bytes.
"""

from io import BytesIO

from ..exceptions import TdfEncodeError, TruncatedError


VARINT_MIN = -(1 << 63)
VARINT_MAX = (1 << 63) - 1

_MASK_64 = (1 << 64) - 1
_CONTINUATION = 0x80
_FIRST_BITS = 6
_FIRST_MASK = 0x3F
_NEXT_BITS = 7
_NEXT_MASK = 0x7F


def encode_varint(value: int) -> bytes:
    """Encode an integer in its minimal VarInt form.

    Args:
        value: Signed 64-bit integer

    Returns:
        Encoded bytes

    Raises:
        TdfEncodeError: If value is outside the signed 64-bit range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TdfEncodeError(f"VarInt value must be an int, got {type(value).__name__}")
    if value < VARINT_MIN or value > VARINT_MAX:
        raise TdfEncodeError(f"VarInt value out of 64-bit range: {value}")

    remaining = value & _MASK_64
    first = remaining & _FIRST_MASK
    remaining >>= _FIRST_BITS
    if not remaining:
        return bytes([first])

    out = bytearray([first | _CONTINUATION])
    while remaining >= _CONTINUATION:
        out.append((remaining & _NEXT_MASK) | _CONTINUATION)
        remaining >>= _NEXT_BITS
    out.append(remaining)
    return bytes(out)


def write_varint(value: int, buffer: BytesIO) -> None:
    """Write an encoded VarInt to the buffer."""
    buffer.write(encode_varint(value))


def read_varint(buffer: BytesIO) -> int:
    """Read one VarInt from the buffer.

    Non-minimal encodings are accepted; bits above 64 are discarded.

    Raises:
        TruncatedError: If the buffer ends before the terminating byte
    """
    first = buffer.read(1)
    if not first:
        raise TruncatedError("Unexpected end of data while reading VarInt")

    byte = first[0]
    result = byte & _FIRST_MASK
    shift = _FIRST_BITS
    while byte & _CONTINUATION:
        nxt = buffer.read(1)
        if not nxt:
            raise TruncatedError("Unexpected end of data inside VarInt")
        byte = nxt[0]
        if shift < 64:
            result |= (byte & _NEXT_MASK) << shift
        shift += _NEXT_BITS

    result &= _MASK_64
    if result > VARINT_MAX:
        result -= 1 << 64
    return result


def decode_varint(data: bytes) -> tuple[int, int]:
    """Decode a VarInt from the start of ``data``.

    Returns:
        Tuple of (value, number of bytes consumed)
    """
    buffer = BytesIO(data)
    value = read_varint(buffer)
    return value, buffer.tell()
