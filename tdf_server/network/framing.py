"""Packet framing for the TDF game protocol.

Every packet starts with six big-endian 16-bit fields:

    length | component | command | error | qtype | id

When ``qtype`` has the 0x10 bit set, a seventh field extends the
length by ``ext << 16``.  The content that follows is a sequence of
TDF values.
"""

import asyncio
import struct
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..exceptions import LimitExceededError, TdfEncodeError, TruncatedError
from ..models.tdf import LabeledTdf
from .codec import TdfDecoder, TdfEncoder


HEADER_FORMAT = ">HHHHHH"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
EXT_LENGTH_FORMAT = ">H"
EXT_LENGTH_SIZE = struct.calcsize(EXT_LENGTH_FORMAT)
QTYPE_EXTENDED_LENGTH = 0x10
MAX_CONTENT_LENGTH = 0xFFFFFFFF


@dataclass
class Packet:
    """A single framed packet.

    ``content`` holds the raw TDF payload; decode it with
    ``read_packet_contents``.
    """

    component: int
    command: int
    error: int = 0
    qtype: int = 0
    id: int = 0
    content: bytes = field(default=b"", repr=False)

    @property
    def extended(self) -> bool:
        return bool(self.qtype & QTYPE_EXTENDED_LENGTH) or len(self.content) > 0xFFFF

    @classmethod
    def from_values(
        cls,
        component: int,
        command: int,
        values: Iterable[LabeledTdf],
        error: int = 0,
        qtype: int = 0,
        id: int = 0,
    ) -> "Packet":
        """Build a packet whose content is the encoded values."""
        return cls(component, command, error, qtype, id, TdfEncoder().encode(values))

    def encode(self) -> bytes:
        """Encode the packet header and content.

        Raises:
            TdfEncodeError: If a header field or the content size is out of range
        """
        length = len(self.content)
        if length > MAX_CONTENT_LENGTH:
            raise TdfEncodeError(f"Packet content too large: {length} bytes")

        qtype = self.qtype
        if self.extended:
            qtype |= QTYPE_EXTENDED_LENGTH
        try:
            header = struct.pack(
                HEADER_FORMAT,
                length & 0xFFFF,
                self.component,
                self.command,
                self.error,
                qtype,
                self.id,
            )
        except struct.error as e:
            raise TdfEncodeError(f"Packet header field out of range: {e}") from e

        if qtype & QTYPE_EXTENDED_LENGTH:
            header += struct.pack(EXT_LENGTH_FORMAT, length >> 16)
        return header + self.content


def _content_length(base: int, ext: int, limit: int | None) -> int:
    length = base + (ext << 16)
    if limit is not None and length > limit:
        raise LimitExceededError(f"Packet content of {length} bytes exceeds limit of {limit}")
    return length


async def read_packet(
    reader: asyncio.StreamReader,
    max_content_length: int | None = None,
    timeout: float | None = None,
) -> Packet | None:
    """Read one packet from a stream.

    Args:
        reader: Stream to read from
        max_content_length: Reject packets with larger content
        timeout: Seconds to wait for the complete packet

    Returns:
        The packet, or None if the stream closed cleanly between packets

    Raises:
        TruncatedError: If the stream ends inside a packet
        LimitExceededError: If the content is larger than allowed
        asyncio.TimeoutError: If the packet does not arrive in time
    """
    if timeout:
        return await asyncio.wait_for(_read_packet(reader, max_content_length), timeout)
    return await _read_packet(reader, max_content_length)


async def _read_packet(reader: asyncio.StreamReader, max_content_length: int | None) -> Packet | None:
    try:
        header = await reader.readexactly(HEADER_SIZE)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        raise TruncatedError(
            f"Stream closed after {len(e.partial)} of {HEADER_SIZE} header bytes"
        ) from e

    base, component, command, error, qtype, packet_id = struct.unpack(HEADER_FORMAT, header)
    try:
        ext = 0
        if qtype & QTYPE_EXTENDED_LENGTH:
            (ext,) = struct.unpack(
                EXT_LENGTH_FORMAT, await reader.readexactly(EXT_LENGTH_SIZE)
            )
        length = _content_length(base, ext, max_content_length)
        content = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise TruncatedError(f"Stream closed inside packet: {e}") from e

    return Packet(component, command, error, qtype, packet_id, content)


def parse_packet(data: bytes, max_content_length: int | None = None) -> tuple[Packet, int]:
    """Parse one packet from the start of ``data``.

    Returns:
        Tuple of (packet, number of bytes consumed)

    Raises:
        TruncatedError: If ``data`` holds less than a complete packet
    """
    if len(data) < HEADER_SIZE:
        raise TruncatedError(f"Expected {HEADER_SIZE} header bytes, got {len(data)}")

    base, component, command, error, qtype, packet_id = struct.unpack_from(HEADER_FORMAT, data)
    offset = HEADER_SIZE
    ext = 0
    if qtype & QTYPE_EXTENDED_LENGTH:
        if len(data) < offset + EXT_LENGTH_SIZE:
            raise TruncatedError("Missing extended length field")
        (ext,) = struct.unpack_from(EXT_LENGTH_FORMAT, data, offset)
        offset += EXT_LENGTH_SIZE

    length = _content_length(base, ext, max_content_length)
    if len(data) < offset + length:
        raise TruncatedError(
            f"Expected {length} content bytes, got {len(data) - offset}"
        )
    content = bytes(data[offset : offset + length])
    return Packet(component, command, error, qtype, packet_id, content), offset + length


def read_packet_contents(packet: Packet, decoder: TdfDecoder | None = None) -> list[LabeledTdf]:
    """Decode a packet's content into labeled values."""
    return (decoder or TdfDecoder()).decode(packet.content)


class PacketFramer:
    """Splits a chunked byte stream into packets.

    Bytes are buffered until a complete packet is available, so it can
    be driven from ``asyncio.Protocol.data_received`` or a capture replay.
    """

    def __init__(self, max_content_length: int | None = None):
        self.max_content_length = max_content_length
        self._receive_buffer = bytearray()

    @property
    def buffered(self) -> int:
        return len(self._receive_buffer)

    def feed_data(self, data: bytes) -> list[Packet]:
        """Feed raw data and return every packet completed by it.

        Raises:
            LimitExceededError: If a buffered header announces oversized content
        """
        self._receive_buffer.extend(data)
        packets = []
        while True:
            try:
                packet, consumed = parse_packet(self._receive_buffer, self.max_content_length)
            except TruncatedError:
                break
            packets.append(packet)
            del self._receive_buffer[:consumed]
        return packets

    def reset(self) -> None:
        """Discard buffered data, e.g. after the connection is reset."""
        self._receive_buffer = bytearray()
