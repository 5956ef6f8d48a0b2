"""TDF value model.

This module defines the recursive tagged value types carried in packet
content.  Every concrete value maps to exactly one ``TdfType``; a
``LabeledTdf`` pairs a value with the label it is sent under.
"""

import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional

from ..exceptions import StructuralError


UNION_UNSET = 0x7F


class TdfType(IntEnum):
    """TDF wire types."""

    VARINT = 0x0
    STRING = 0x1
    BLOB = 0x2
    GROUP = 0x3
    LIST = 0x4
    MAP = 0x5
    UNION = 0x6
    VAR_INT_LIST = 0x7
    PAIR = 0x8
    TRIPPLE = 0x9
    FLOAT = 0xA

    @classmethod
    def lookup(cls, raw: int) -> Optional["TdfType"]:
        """Return the type for a raw type byte, or None if unknown."""
        try:
            return cls(raw)
        except ValueError:
            return None


def _check_varint(value: Any, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise StructuralError(f"{what} must be an int, got {type(value).__name__}")


@dataclass
class Tdf(ABC):
    """Base class for all TDF values."""

    def __post_init__(self):
        """Validate value after initialization."""
        self.validate()

    @property
    @abstractmethod
    def tdf_type(self) -> Optional[TdfType]:
        """Wire type of this value."""

    def validate(self) -> None:
        """Check the value's invariants.

        Raises:
            StructuralError: If validation fails
        """

    @abstractmethod
    def to_python(self) -> Any:
        """Plain Python rendering of the value."""


@dataclass
class TdfVarInt(Tdf):
    value: int = 0

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.VARINT

    def validate(self) -> None:
        _check_varint(self.value, "VarInt value")

    def to_python(self) -> int:
        return self.value


@dataclass
class TdfString(Tdf):
    value: str = ""

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.STRING

    def validate(self) -> None:
        if not isinstance(self.value, str):
            raise StructuralError(f"String value must be str, got {type(self.value).__name__}")
        # NUL is the wire terminator
        if "\x00" in self.value:
            raise StructuralError(f"String value contains NUL: {self.value!r}")

    def to_python(self) -> str:
        return self.value


@dataclass
class TdfBlob(Tdf):
    value: bytes = b""

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.BLOB

    def validate(self) -> None:
        if not isinstance(self.value, (bytes, bytearray)):
            raise StructuralError(f"Blob value must be bytes, got {type(self.value).__name__}")
        self.value = bytes(self.value)

    def to_python(self) -> bytes:
        return self.value


@dataclass
class TdfFloat(Tdf):
    """Single precision float; values are rounded to single precision on construction."""

    value: float = 0.0

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.FLOAT

    def validate(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise StructuralError(f"Float value must be a number, got {type(self.value).__name__}")
        try:
            self.value = struct.unpack(">f", struct.pack(">f", float(self.value)))[0]
        except OverflowError as e:
            raise StructuralError(f"Float out of single precision range: {self.value}") from e

    def to_python(self) -> float:
        return self.value


@dataclass
class TdfGroup(Tdf):
    """Ordered, heterogeneous collection of labeled values.

    ``has_start_marker`` records the optional leading 0x02 byte so it
    can be written back exactly as it was received.
    """

    values: list["LabeledTdf"] = field(default_factory=list)
    has_start_marker: bool = False

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.GROUP

    def validate(self) -> None:
        for child in self.values:
            if not isinstance(child, LabeledTdf):
                raise StructuralError(f"Group children must be LabeledTdf, got {type(child).__name__}")

    def find(self, label: str) -> Optional["LabeledTdf"]:
        """Return the first child with the given label, or None."""
        for child in self.values:
            if child.label == label:
                return child
        return None

    def get(self, label: str) -> "LabeledTdf":
        """Return the first child with the given label.

        Raises:
            StructuralError: If no child carries the label
        """
        child = self.find(label)
        if child is None:
            raise StructuralError(f"Label {label!r} not found in group")
        return child

    def labels(self) -> list[str]:
        return [child.label for child in self.values]

    def to_python(self) -> dict[str, Any]:
        return {child.label: child.value.to_python() for child in self.values}


def _check_elements(values: list[Tdf], expected: TdfType, what: str) -> None:
    for item in values:
        if not isinstance(item, Tdf):
            raise StructuralError(f"{what} must be Tdf values, got {type(item).__name__}")
        if item.tdf_type != expected:
            raise StructuralError(
                f"{what} declared as {expected.name} but got {_type_name(item)}"
            )


def _coerce_type(raw: Any, what: str) -> TdfType:
    tdf_type = TdfType.lookup(raw)
    if tdf_type is None:
        raise StructuralError(f"{what} is not a known TDF type: {raw!r}")
    return tdf_type


def _type_name(value: Tdf) -> str:
    tdf_type = value.tdf_type
    return tdf_type.name if tdf_type is not None else "UNKNOWN"


@dataclass
class TdfList(Tdf):
    """Homogeneous list; every element has ``element_type``."""

    element_type: TdfType = TdfType.VARINT
    values: list[Tdf] = field(default_factory=list)

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.LIST

    def validate(self) -> None:
        self.element_type = _coerce_type(self.element_type, "List element type")
        _check_elements(self.values, self.element_type, "List elements")

    def to_python(self) -> list[Any]:
        return [item.to_python() for item in self.values]


@dataclass
class TdfMap(Tdf):
    """Map stored as parallel key and value lists, in wire order."""

    key_type: TdfType = TdfType.VARINT
    value_type: TdfType = TdfType.VARINT
    keys: list[Tdf] = field(default_factory=list)
    values: list[Tdf] = field(default_factory=list)

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.MAP

    def validate(self) -> None:
        if len(self.keys) != len(self.values):
            raise StructuralError(
                f"Map has {len(self.keys)} keys but {len(self.values)} values"
            )
        self.key_type = _coerce_type(self.key_type, "Map key type")
        self.value_type = _coerce_type(self.value_type, "Map value type")
        _check_elements(self.keys, self.key_type, "Map keys")
        _check_elements(self.values, self.value_type, "Map values")

    def items(self) -> list[tuple[Tdf, Tdf]]:
        return list(zip(self.keys, self.values))

    def to_python(self) -> list[tuple[Any, Any]]:
        # Keys may be unhashable (groups), so a list of pairs is used
        return [(k.to_python(), v.to_python()) for k, v in self.items()]


@dataclass
class TdfUnion(Tdf):
    """Discriminated optional value; ``UNION_UNSET`` means no value."""

    discriminant: int = UNION_UNSET
    value: Optional["LabeledTdf"] = None

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.UNION

    @property
    def is_set(self) -> bool:
        return self.discriminant != UNION_UNSET

    def validate(self) -> None:
        _check_varint(self.discriminant, "Union discriminant")
        if not 0 <= self.discriminant <= 0xFF:
            raise StructuralError(f"Union discriminant out of range: {self.discriminant}")
        if self.is_set and self.value is None:
            raise StructuralError(f"Union discriminant {self.discriminant:#04x} requires a value")
        if not self.is_set and self.value is not None:
            raise StructuralError("Unset union must not carry a value")
        if self.value is not None and not isinstance(self.value, LabeledTdf):
            raise StructuralError(f"Union value must be LabeledTdf, got {type(self.value).__name__}")

    def to_python(self) -> Any:
        if self.value is None:
            return None
        return {self.value.label: self.value.value.to_python()}


@dataclass
class TdfVarIntList(Tdf):
    values: list[int] = field(default_factory=list)

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.VAR_INT_LIST

    def validate(self) -> None:
        for item in self.values:
            _check_varint(item, "VarIntList element")

    def to_python(self) -> list[int]:
        return list(self.values)


@dataclass
class TdfPair(Tdf):
    a: int = 0
    b: int = 0

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.PAIR

    def validate(self) -> None:
        _check_varint(self.a, "Pair element")
        _check_varint(self.b, "Pair element")

    def to_python(self) -> tuple[int, int]:
        return (self.a, self.b)


@dataclass
class TdfTripple(Tdf):
    a: int = 0
    b: int = 0
    c: int = 0

    @property
    def tdf_type(self) -> TdfType:
        return TdfType.TRIPPLE

    def validate(self) -> None:
        for item in (self.a, self.b, self.c):
            _check_varint(item, "Tripple element")

    def to_python(self) -> tuple[int, int, int]:
        return (self.a, self.b, self.c)


@dataclass
class TdfUnknown(Tdf):
    """Placeholder for a type byte outside ``TdfType``; no payload is kept."""

    raw_type: int = 0xFF

    @property
    def tdf_type(self) -> None:
        return None

    def to_python(self) -> None:
        return None


@dataclass
class LabeledTdf:
    """A TDF value with the label it is sent under."""

    label: str
    value: Tdf

    def __post_init__(self):
        if not isinstance(self.value, Tdf):
            raise StructuralError(f"Labeled value must be Tdf, got {type(self.value).__name__}")

    @property
    def type(self) -> Optional[TdfType]:
        return self.value.tdf_type

    def _expect(self, cls: type) -> Any:
        if not isinstance(self.value, cls):
            raise StructuralError(
                f"{self.label!r} is {_type_name(self.value)}, not {cls.__name__}"
            )
        return self.value

    def get(self, label: str) -> "LabeledTdf":
        """Look up a child of a group value.

        Raises:
            StructuralError: If this is not a group or the label is missing
        """
        return self._expect(TdfGroup).get(label)

    def find(self, label: str) -> Optional["LabeledTdf"]:
        return self._expect(TdfGroup).find(label)

    def as_int(self) -> int:
        return self._expect(TdfVarInt).value

    def as_text(self) -> str:
        return self._expect(TdfString).value

    def as_bytes(self) -> bytes:
        return self._expect(TdfBlob).value

    def as_float(self) -> float:
        return self._expect(TdfFloat).value

    def as_list(self) -> list[Tdf]:
        return self._expect(TdfList).values

    def to_python(self) -> dict[str, Any]:
        return {self.label: self.value.to_python()}
