import struct
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

KNOWN_HEX = "0000e840cdccc7424a3e8044"


def pack_hex(temperature: float, humidity: float, pressure: float) -> str:
    return struct.pack("<fff", temperature, humidity, pressure).hex()


@pytest.fixture
def known_hex() -> str:
    return KNOWN_HEX
