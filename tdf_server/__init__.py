"""TDF Server - codec and TCP server for the TDF game protocol."""

__version__ = "0.1.0"
__author__ = "TDF Server Team"
__description__ = "Tagged Data Format codec and packet server for a legacy game protocol"

from typing import Final


# Default listen address of the game server
DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 14219
