"""TDF value models."""

from .tdf import (
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

__all__ = [
    "UNION_UNSET",
    "LabeledTdf",
    "Tdf",
    "TdfBlob",
    "TdfFloat",
    "TdfGroup",
    "TdfList",
    "TdfMap",
    "TdfPair",
    "TdfString",
    "TdfTripple",
    "TdfType",
    "TdfUnion",
    "TdfUnknown",
    "TdfVarInt",
    "TdfVarIntList",
]
