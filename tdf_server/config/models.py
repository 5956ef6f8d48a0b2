"""Configuration models for the TDF server."""


from pydantic import BaseModel, ConfigDict, Field, field_validator

from .. import DEFAULT_HOST, DEFAULT_PORT


class ServerConfig(BaseModel):
    """Listening socket and per-connection limits."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_connections: int = 100
    max_packet_size: int = 16 * 1024 * 1024  # 16MB of content per packet
    read_timeout: float = 300.0  # 0 disables the timeout

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Port must fit a TCP port number; 0 binds an ephemeral port."""
        if not 0 <= v <= 65535:
            raise ValueError(f"Port out of range: {v}")
        return v

    @field_validator("max_packet_size")
    @classmethod
    def validate_max_packet_size(cls, v: int) -> int:
        """Framing can carry at most 2**32 - 1 content bytes."""
        if not 0 < v <= 0xFFFFFFFF:
            raise ValueError(f"max_packet_size must be between 1 and 4294967295, got {v}")
        return v


class CodecConfig(BaseModel):
    """TDF decoding settings."""

    max_depth: int = 64
    log_values: bool = True

    @field_validator("max_depth")
    @classmethod
    def validate_max_depth(cls, v: int) -> int:
        """Nesting limit must allow at least one level."""
        if v < 1:
            raise ValueError(f"max_depth must be positive, got {v}")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = Field("json", pattern="^(json|console)$")
    file: str | None = None

    model_config = ConfigDict(validate_assignment=True)


class Settings(BaseModel):
    """Main settings configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    codec: CodecConfig = Field(default_factory=CodecConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(populate_by_name=True)
