"""TDF value serialization.

This module implements encoding and decoding of the tagged values that
make up packet content.  Each value on the wire is a 3-byte packed
label, a 1-byte type and a type-specific body; groups, lists, maps and
unions recurse into the same encoding.
"""

import struct
from collections.abc import Iterable
from io import BytesIO

from ..exceptions import (
    InvalidEncodingError,
    LimitExceededError,
    TdfEncodeError,
    TruncatedError,
    UnknownTypeError,
)
from ..models.tdf import (
    UNION_UNSET,
    LabeledTdf,
    Tdf,
    TdfBlob,
    TdfFloat,
    TdfGroup,
    TdfList,
    TdfMap,
    TdfPair,
    TdfString,
    TdfTripple,
    TdfType,
    TdfUnion,
    TdfUnknown,
    TdfVarInt,
    TdfVarIntList,
)
from .labels import TAG_SIZE, label_to_tag, tag_to_label
from .varint import read_varint, write_varint


GROUP_END = 0x00
GROUP_START = 0x02
HEADER_SIZE = TAG_SIZE + 1
DEFAULT_MAX_DEPTH = 64


class TdfEncoder:
    """Encodes labeled TDF values to their binary form."""

    def encode(self, values: LabeledTdf | Iterable[LabeledTdf]) -> bytes:
        """Encode one labeled value or a sequence of them.

        Args:
            values: Value(s) to encode, written in order

        Returns:
            Encoded bytes

        Raises:
            TdfEncodeError: If a value cannot be represented on the wire
        """
        if isinstance(values, LabeledTdf):
            values = [values]
        buffer = BytesIO()
        for labeled in values:
            self.write_labeled(labeled, buffer)
        return buffer.getvalue()

    def write_labeled(self, labeled: LabeledTdf, buffer: BytesIO) -> None:
        """Write the tag, type byte and body of a labeled value."""
        if not isinstance(labeled, LabeledTdf):
            raise TdfEncodeError(f"Expected LabeledTdf, got {type(labeled).__name__}")
        tdf_type = labeled.value.tdf_type
        if tdf_type is None:
            raise TdfEncodeError(f"Cannot encode unknown TDF value {labeled.label!r}")
        buffer.write(label_to_tag(labeled.label))
        buffer.write(struct.pack("B", tdf_type))
        self.write_value(labeled.value, buffer)

    def write_value(self, value: Tdf, buffer: BytesIO) -> None:
        """Write a value body without its header."""
        if isinstance(value, TdfVarInt):
            write_varint(value.value, buffer)
        elif isinstance(value, TdfString):
            self._encode_string(value.value, buffer)
        elif isinstance(value, TdfBlob):
            write_varint(len(value.value), buffer)
            buffer.write(value.value)
        elif isinstance(value, TdfFloat):
            buffer.write(struct.pack(">f", value.value))
        elif isinstance(value, TdfGroup):
            self._encode_group(value, buffer)
        elif isinstance(value, TdfList):
            buffer.write(struct.pack("B", value.element_type))
            write_varint(len(value.values), buffer)
            for item in value.values:
                self.write_value(item, buffer)
        elif isinstance(value, TdfMap):
            self._encode_map(value, buffer)
        elif isinstance(value, TdfUnion):
            self._encode_union(value, buffer)
        elif isinstance(value, TdfVarIntList):
            write_varint(len(value.values), buffer)
            for item in value.values:
                write_varint(item, buffer)
        elif isinstance(value, TdfPair):
            write_varint(value.a, buffer)
            write_varint(value.b, buffer)
        elif isinstance(value, TdfTripple):
            write_varint(value.a, buffer)
            write_varint(value.b, buffer)
            write_varint(value.c, buffer)
        else:
            raise TdfEncodeError(f"Unsupported value for TDF encoding: {type(value).__name__}")

    def _encode_string(self, text: str, buffer: BytesIO) -> None:
        """Encode a string; the length includes the NUL terminator."""
        data = text.encode("utf-8") + b"\x00"
        write_varint(len(data), buffer)
        buffer.write(data)

    def _encode_group(self, group: TdfGroup, buffer: BytesIO) -> None:
        if group.has_start_marker:
            buffer.write(struct.pack("B", GROUP_START))
        for child in group.values:
            self.write_labeled(child, buffer)
        buffer.write(struct.pack("B", GROUP_END))

    def _encode_map(self, mapping: TdfMap, buffer: BytesIO) -> None:
        buffer.write(struct.pack("BB", mapping.key_type, mapping.value_type))
        write_varint(len(mapping.keys), buffer)
        for key, value in mapping.items():
            self.write_value(key, buffer)
            self.write_value(value, buffer)

    def _encode_union(self, union: TdfUnion, buffer: BytesIO) -> None:
        buffer.write(struct.pack("B", union.discriminant))
        if union.discriminant != UNION_UNSET:
            self.write_labeled(union.value, buffer)


class TdfDecoder:
    """Decodes binary TDF content to labeled values.

    Decoding is strict: truncated input, bad text and unknown types all
    abort the decode; no partial results are returned.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        """Initialize the decoder.

        Args:
            max_depth: Maximum nesting of groups, lists, maps and unions
        """
        self.max_depth = max_depth

    def decode(self, data: bytes) -> list[LabeledTdf]:
        """Decode a sequence of labeled values filling ``data``.

        Args:
            data: Packet content

        Returns:
            Decoded values in wire order

        Raises:
            TdfError: If the content is malformed
        """
        buffer = BytesIO(data)
        end = len(data)
        values = []
        while buffer.tell() < end:
            values.append(self._read_known(buffer, 0))
        return values

    def read_labeled(self, buffer: BytesIO, depth: int = 0) -> LabeledTdf:
        """Read one labeled value.

        An unrecognised type byte yields a ``TdfUnknown`` value with no
        body consumed; callers that keep reading must treat it as fatal.
        """
        header = self._read_exact(buffer, HEADER_SIZE, "value header")
        label = tag_to_label(header[:TAG_SIZE])
        raw_type = header[TAG_SIZE]
        tdf_type = TdfType.lookup(raw_type)
        if tdf_type is None:
            return LabeledTdf(label, TdfUnknown(raw_type))
        return LabeledTdf(label, self.read_value(buffer, tdf_type, depth))

    def read_value(self, buffer: BytesIO, tdf_type: TdfType, depth: int = 0) -> Tdf:
        """Read a value body of the given type."""
        if tdf_type == TdfType.VARINT:
            return TdfVarInt(read_varint(buffer))
        if tdf_type == TdfType.STRING:
            return TdfString(self._decode_string(buffer))
        if tdf_type == TdfType.BLOB:
            length = read_varint(buffer)
            return TdfBlob(self._read_exact(buffer, length, "blob"))
        if tdf_type == TdfType.FLOAT:
            return TdfFloat(struct.unpack(">f", self._read_exact(buffer, 4, "float"))[0])
        if tdf_type == TdfType.VAR_INT_LIST:
            count = self._read_count(buffer, 1)
            return TdfVarIntList([read_varint(buffer) for _ in range(count)])
        if tdf_type == TdfType.PAIR:
            return TdfPair(read_varint(buffer), read_varint(buffer))
        if tdf_type == TdfType.TRIPPLE:
            return TdfTripple(read_varint(buffer), read_varint(buffer), read_varint(buffer))

        depth += 1
        if depth > self.max_depth:
            raise LimitExceededError(f"TDF nesting deeper than {self.max_depth}")

        if tdf_type == TdfType.GROUP:
            return self._decode_group(buffer, depth)
        if tdf_type == TdfType.LIST:
            return self._decode_list(buffer, depth)
        if tdf_type == TdfType.MAP:
            return self._decode_map(buffer, depth)
        if tdf_type == TdfType.UNION:
            return self._decode_union(buffer, depth)
        raise UnknownTypeError(int(tdf_type))

    def _read_known(self, buffer: BytesIO, depth: int) -> LabeledTdf:
        labeled = self.read_labeled(buffer, depth)
        if isinstance(labeled.value, TdfUnknown):
            raise UnknownTypeError(labeled.value.raw_type, labeled.label)
        return labeled

    def _read_exact(self, buffer: BytesIO, size: int, what: str) -> bytes:
        if size < 0:
            raise InvalidEncodingError(f"Negative length for {what}: {size}")
        data = buffer.read(size)
        if len(data) != size:
            raise TruncatedError(f"Expected {size} bytes for {what}, got {len(data)}")
        return data

    def _read_type(self, buffer: BytesIO) -> TdfType:
        raw = self._read_exact(buffer, 1, "type byte")[0]
        tdf_type = TdfType.lookup(raw)
        if tdf_type is None:
            raise UnknownTypeError(raw)
        return tdf_type

    def _read_count(self, buffer: BytesIO, min_size: int) -> int:
        """Read an element count and check it fits in the remaining data."""
        count = read_varint(buffer)
        if count < 0:
            raise InvalidEncodingError(f"Negative element count: {count}")
        remaining = len(buffer.getbuffer()) - buffer.tell()
        if count * min_size > remaining:
            raise TruncatedError(
                f"Element count {count} exceeds remaining {remaining} bytes"
            )
        return count

    def _decode_string(self, buffer: BytesIO) -> str:
        """Decode a string value."""
        length = read_varint(buffer)
        if length == 0:
            return ""
        data = self._read_exact(buffer, length, "string")
        if data[-1] != 0:
            raise InvalidEncodingError("String is missing its NUL terminator")
        if 0 in data[:-1]:
            raise InvalidEncodingError("String contains NUL before its terminator")
        try:
            return data[:-1].decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidEncodingError(f"Invalid UTF-8 in string: {e}") from e

    def _decode_group(self, buffer: BytesIO, depth: int) -> TdfGroup:
        """Decode children until the group terminator."""
        values = []
        has_start_marker = False
        first = True
        while True:
            marker = self._read_exact(buffer, 1, "group")[0]
            if marker == GROUP_END:
                break
            if marker == GROUP_START and first:
                has_start_marker = True
            else:
                buffer.seek(-1, 1)
                values.append(self._read_known(buffer, depth))
            first = False
        return TdfGroup(values, has_start_marker)

    def _decode_list(self, buffer: BytesIO, depth: int) -> TdfList:
        element_type = self._read_type(buffer)
        count = self._read_count(buffer, 1)
        return TdfList(
            element_type,
            [self.read_value(buffer, element_type, depth) for _ in range(count)],
        )

    def _decode_map(self, buffer: BytesIO, depth: int) -> TdfMap:
        key_type = self._read_type(buffer)
        value_type = self._read_type(buffer)
        count = self._read_count(buffer, 2)
        keys = []
        values = []
        for _ in range(count):
            keys.append(self.read_value(buffer, key_type, depth))
            values.append(self.read_value(buffer, value_type, depth))
        return TdfMap(key_type, value_type, keys, values)

    def _decode_union(self, buffer: BytesIO, depth: int) -> TdfUnion:
        discriminant = self._read_exact(buffer, 1, "union discriminant")[0]
        if discriminant == UNION_UNSET:
            return TdfUnion(discriminant)
        return TdfUnion(discriminant, self._read_known(buffer, depth))
