"""Error taxonomy for the TDF codec and packet framing.

Every failure raised by the codec derives from ``TdfError`` so the
connection handler can treat any protocol violation uniformly.
"""


class TdfError(Exception):
    """Base exception for TDF encoding/decoding errors."""

    pass


class TruncatedError(TdfError):
    """Stream ended before a header, value or body was fully read."""

    pass


class InvalidEncodingError(TdfError):
    """Payload bytes are not a valid encoding (bad UTF-8, missing terminator)."""

    pass


class StructuralError(TdfError):
    """Value does not have the shape the caller asked for."""

    pass


class UnknownTypeError(TdfError):
    """A TDF type byte outside the known set was found in a stream."""

    def __init__(self, raw_type: int, label: str | None = None):
        self.raw_type = raw_type
        self.label = label
        where = f" for label {label!r}" if label is not None else ""
        super().__init__(f"Unknown TDF type {raw_type:#04x}{where}")


class LimitExceededError(TdfError):
    """Input exceeds a configured nesting depth or size limit."""

    pass


class TdfEncodeError(TdfError):
    """Value cannot be represented on the wire."""

    pass


class LabelError(TdfEncodeError):
    """Label cannot be packed into a 3-byte tag."""

    pass
