"""Network layer for the TDF server: VarInt, tags, values and packet framing."""

from .codec import TdfDecoder, TdfEncoder
from .framing import (
    Packet,
    PacketFramer,
    parse_packet,
    read_packet,
    read_packet_contents,
)
from .labels import label_to_tag, tag_to_label
from .varint import decode_varint, encode_varint, read_varint, write_varint

__all__ = [
    "TdfDecoder",
    "TdfEncoder",
    "Packet",
    "PacketFramer",
    "parse_packet",
    "read_packet",
    "read_packet_contents",
    "label_to_tag",
    "tag_to_label",
    "decode_varint",
    "encode_varint",
    "read_varint",
    "write_varint",
]
