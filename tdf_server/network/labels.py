"""Packing of 4-character labels into 3-byte TDF tags.

Each character is reduced to a 6-bit code made of its 0x40 and 0x1F
bits; the four codes are laid out big-endian across 24 bits.  The
characters that survive this exactly are 0x20..0x5F (space, digits,
punctuation and upper case letters).  Code 0 is the space character,
which doubles as padding for labels shorter than four characters.

A tag whose first code is 0 starts with a byte below 4, which inside a
group reads as the terminator (0) or start marker (2).  Such labels
(empty, or starting with a space) are rejected when packing.
"""

from ..exceptions import LabelError


LABEL_LENGTH = 4
TAG_SIZE = 3
PAD_CHAR = " "


def _char_to_code(char: str) -> int:
    c = ord(char)
    return ((c & 0x40) >> 1) | (c & 0x1F)


def _code_to_char(code: int) -> str:
    if code & 0x20:
        return chr(0x40 | (code & 0x1F))
    return chr(0x20 | code)


def label_to_tag(label: str) -> bytes:
    """Pack a label into its 3-byte tag.

    Args:
        label: Up to four ASCII characters

    Returns:
        The packed tag

    Raises:
        LabelError: If the label is empty, starts with a pad character,
            is too long or is not ASCII
    """
    if not isinstance(label, str):
        raise LabelError(f"Label must be a string, got {type(label).__name__}")
    if len(label) > LABEL_LENGTH:
        raise LabelError(f"Label longer than {LABEL_LENGTH} characters: {label!r}")
    if not label.isascii():
        raise LabelError(f"Label must be ASCII: {label!r}")

    packed = 0
    for char in label.ljust(LABEL_LENGTH, PAD_CHAR):
        packed = (packed << 6) | _char_to_code(char)
    if packed >> 18 == 0:
        raise LabelError(f"Label must not be empty or start with a pad character: {label!r}")
    return packed.to_bytes(TAG_SIZE, "big")


def tag_to_label(tag: bytes | int) -> str:
    """Unpack a 3-byte tag into its label, without trailing padding."""
    if isinstance(tag, int):
        packed = tag & 0xFFFFFF
    else:
        if len(tag) != TAG_SIZE:
            raise LabelError(f"Tag must be {TAG_SIZE} bytes, got {len(tag)}")
        packed = int.from_bytes(tag, "big")

    chars = [
        _code_to_char((packed >> shift) & 0x3F)
        for shift in (18, 12, 6, 0)
    ]
    return "".join(chars).rstrip(PAD_CHAR)
