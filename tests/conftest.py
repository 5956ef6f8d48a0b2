"""Pytest configuration and fixtures for TDF server tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tdf_server.models.tdf import (
    LabeledTdf,
    TdfGroup,
    TdfString,
    TdfVarInt,
)
from tdf_server.network.codec import TdfDecoder, TdfEncoder
from tdf_server.network.framing import Packet


@pytest.fixture
def encoder():
    """TDF encoder."""
    return TdfEncoder()


@pytest.fixture
def decoder():
    """TDF decoder with default limits."""
    return TdfDecoder()


@pytest.fixture
def sample_values():
    """The two values from the login scenario: a string and a VarInt."""
    return [
        LabeledTdf("TEST", TdfString("hi")),
        LabeledTdf("NUM1", TdfVarInt(5)),
    ]


@pytest.fixture
def sample_group(sample_values):
    """A group holding the sample values."""
    return LabeledTdf("DATA", TdfGroup(list(sample_values)))


@pytest.fixture
def sample_packet(sample_group):
    """A packet carrying the sample group."""
    return Packet.from_values(component=0x0001, command=0x0028, values=[sample_group], id=7)
