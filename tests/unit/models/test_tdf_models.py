"""Unit tests for TDF value models."""

import pytest

from tdf_server.exceptions import StructuralError
from tdf_server.models.tdf import (
    UNION_UNSET,
    LabeledTdf,
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


class TestTdfType:
    """Test the wire type enumeration."""

    def test_numeric_values(self):
        """Type bytes match the protocol."""
        assert TdfType.VARINT == 0x0
        assert TdfType.STRING == 0x1
        assert TdfType.GROUP == 0x3
        assert TdfType.UNION == 0x6
        assert TdfType.VAR_INT_LIST == 0x7
        assert TdfType.FLOAT == 0xA

    def test_lookup_roundtrip(self):
        """Every member round-trips through its byte value."""
        for tdf_type in TdfType:
            assert TdfType.lookup(tdf_type.value) is tdf_type

    def test_lookup_unknown(self):
        """Unknown bytes have no member."""
        assert TdfType.lookup(0x0B) is None
        assert TdfType.lookup(0xFF) is None

    @pytest.mark.parametrize(
        "value, expected",
        [
            (TdfVarInt(1), TdfType.VARINT),
            (TdfString("x"), TdfType.STRING),
            (TdfBlob(b"x"), TdfType.BLOB),
            (TdfGroup(), TdfType.GROUP),
            (TdfList(), TdfType.LIST),
            (TdfMap(), TdfType.MAP),
            (TdfUnion(), TdfType.UNION),
            (TdfVarIntList(), TdfType.VAR_INT_LIST),
            (TdfPair(), TdfType.PAIR),
            (TdfTripple(), TdfType.TRIPPLE),
            (TdfFloat(1.0), TdfType.FLOAT),
        ],
    )
    def test_each_value_has_one_type(self, value, expected):
        """Every concrete value reports its own type."""
        assert value.tdf_type is expected
        assert LabeledTdf("TEST", value).type is expected

    def test_unknown_has_no_type(self):
        """The placeholder keeps the raw byte instead."""
        unknown = TdfUnknown(0x1F)
        assert unknown.tdf_type is None
        assert unknown.raw_type == 0x1F


class TestTdfValidation:
    """Test value invariants."""

    def test_varint_requires_int(self):
        """VarInt values must be ints."""
        with pytest.raises(StructuralError):
            TdfVarInt("5")

        with pytest.raises(StructuralError):
            TdfVarInt(True)

    def test_blob_normalizes_bytearray(self):
        """Bytearrays are stored as bytes."""
        assert TdfBlob(bytearray(b"ab")).value == b"ab"

        with pytest.raises(StructuralError):
            TdfBlob("ab")

    def test_float_accepts_int(self):
        """Ints are widened to floats."""
        assert TdfFloat(2).value == 2.0

    def test_float_rounded_to_single_precision(self):
        """Values hold what four bytes can carry."""
        assert TdfFloat(0.1).value == 0.10000000149011612
        assert TdfFloat(0.1) == TdfFloat(0.10000000149011612)

    def test_float_out_of_range(self):
        """Values beyond single precision are rejected."""
        with pytest.raises(StructuralError, match="single precision"):
            TdfFloat(1e39)

    def test_map_parallel_lengths(self):
        """Keys and values must pair up."""
        with pytest.raises(StructuralError, match="2 keys but 1 values"):
            TdfMap(TdfType.VARINT, TdfType.VARINT, [TdfVarInt(1), TdfVarInt(2)], [TdfVarInt(1)])

    def test_map_key_type(self):
        """Keys must match the declared key type."""
        with pytest.raises(StructuralError, match="Map keys"):
            TdfMap(TdfType.STRING, TdfType.VARINT, [TdfVarInt(1)], [TdfVarInt(1)])

    def test_list_element_type(self):
        """List elements must match the declared type."""
        with pytest.raises(StructuralError, match="declared as VARINT"):
            TdfList(TdfType.VARINT, [TdfString("x")])

    def test_list_element_type_coerced(self):
        """Raw type bytes are accepted and normalized."""
        value = TdfList(0x1, [TdfString("x")])
        assert value.element_type is TdfType.STRING

    def test_list_unknown_element_type(self):
        """Unknown element types are structural errors."""
        with pytest.raises(StructuralError, match="not a known TDF type"):
            TdfList(0x1F, [])

    def test_union_unset_has_no_value(self):
        """Discriminant 0x7F forbids a payload."""
        with pytest.raises(StructuralError):
            TdfUnion(UNION_UNSET, LabeledTdf("TEST", TdfVarInt(1)))

    def test_union_set_requires_value(self):
        """Any other discriminant needs a payload."""
        with pytest.raises(StructuralError, match="requires a value"):
            TdfUnion(0)

    def test_union_discriminant_range(self):
        """Discriminants are one byte."""
        with pytest.raises(StructuralError, match="out of range"):
            TdfUnion(256, LabeledTdf("TEST", TdfVarInt(1)))

    def test_union_is_set(self):
        """is_set reflects the discriminant."""
        assert TdfUnion().is_set is False
        assert TdfUnion(1, LabeledTdf("TEST", TdfVarInt(1))).is_set is True

    def test_group_children_are_labeled(self):
        """Groups only hold labeled values."""
        with pytest.raises(StructuralError):
            TdfGroup([TdfVarInt(1)])

    def test_labeled_requires_tdf(self):
        """LabeledTdf wraps Tdf values only."""
        with pytest.raises(StructuralError):
            LabeledTdf("TEST", 5)


class TestProjection:
    """Test typed access to decoded values."""

    def setup_method(self):
        """Set up test fixtures."""
        self.group = LabeledTdf(
            "DATA",
            TdfGroup(
                [
                    LabeledTdf("TEST", TdfString("hi")),
                    LabeledTdf("NUM1", TdfVarInt(5)),
                    LabeledTdf("BLOB", TdfBlob(b"\x01")),
                    LabeledTdf("FLT", TdfFloat(0.5)),
                    LabeledTdf("LIST", TdfList(TdfType.VARINT, [TdfVarInt(1)])),
                ]
            ),
        )

    def test_get_children(self):
        """Children are found by label."""
        assert self.group.get("TEST").as_text() == "hi"
        assert self.group.get("NUM1").as_int() == 5
        assert self.group.get("BLOB").as_bytes() == b"\x01"
        assert self.group.get("FLT").as_float() == 0.5
        assert self.group.get("LIST").as_list() == [TdfVarInt(1)]

    def test_missing_label(self):
        """Missing labels are reported, never defaulted."""
        with pytest.raises(StructuralError, match="not found"):
            self.group.get("NONE")
        assert self.group.find("NONE") is None

    def test_lookup_on_non_group(self):
        """Only groups have children."""
        with pytest.raises(StructuralError, match="not TdfGroup"):
            self.group.get("TEST").get("X")

    def test_type_mismatch(self):
        """Asking for the wrong type fails."""
        with pytest.raises(StructuralError, match="is VARINT, not TdfString"):
            self.group.get("NUM1").as_text()

        with pytest.raises(StructuralError):
            self.group.get("TEST").as_int()

    def test_labels(self):
        """Group labels are listed in order."""
        assert self.group.value.labels() == ["TEST", "NUM1", "BLOB", "FLT", "LIST"]

    def test_to_python(self):
        """Values render as plain Python for logging."""
        assert self.group.to_python() == {
            "DATA": {
                "TEST": "hi",
                "NUM1": 5,
                "BLOB": b"\x01",
                "FLT": 0.5,
                "LIST": [1],
            }
        }

    def test_to_python_composites(self):
        """Maps render as pairs, unions as their payload."""
        mapping = TdfMap(TdfType.STRING, TdfType.VARINT, [TdfString("a")], [TdfVarInt(1)])
        assert mapping.to_python() == [("a", 1)]
        assert TdfUnion().to_python() is None
        assert TdfUnion(0, LabeledTdf("VAL", TdfPair(1, 2))).to_python() == {"VAL": (1, 2)}
        assert TdfTripple(1, 2, 3).to_python() == (1, 2, 3)
        assert TdfVarIntList([4]).to_python() == [4]
