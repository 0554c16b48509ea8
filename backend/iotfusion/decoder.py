"""Decoding of 12-byte Sigfox payloads into sensor readings.

Payload layout (24 hex characters, little-endian IEEE-754 float32):
  [temperature f32][humidity f32][pressure f32]
"""

from __future__ import annotations

import math
import re
import struct
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

PAYLOAD_BYTES = 12
PAYLOAD_HEX_CHARS = 2 * PAYLOAD_BYTES
PAYLOAD_FORMAT = "<fff"
DECODING_FORMAT = "IEEE 754 float32 little-endian"
REPORT_DECIMALS = 4

_WHITESPACE = re.compile(r"\s+")
_HEX_ONLY = re.compile(r"[0-9A-Fa-f]*")


@dataclass(frozen=True)
class FieldRange:
    name: str
    unit: str
    lo: float
    hi: float

    def contains(self, value: float) -> bool:
        return math.isfinite(value) and self.lo <= value <= self.hi


FIELDS = (
    FieldRange("temperature", "°C", -50.0, 85.0),
    FieldRange("humidity", "%", 0.0, 100.0),
    FieldRange("pressure", "hPa", 300.0, 1200.0),
)


class DecodeErrorKind(str, Enum):
    INVALID_FORMAT = "InvalidFormat"
    INVALID_LENGTH = "InvalidLength"
    OUT_OF_RANGE = "OutOfRange"


@dataclass(frozen=True)
class RangeViolation:
    field: str
    value: float
    unit: str

    def describe(self) -> str:
        sep = "" if self.unit in ("°C", "%") else " "
        return f"Invalid {self.field}: {self.value}{sep}{self.unit}"


@dataclass(frozen=True)
class DecodeFailure:
    kind: DecodeErrorKind
    message: str
    violations: tuple[RangeViolation, ...] = ()


class HexDecodeError(ValueError):
    """Raised by :meth:`DecodeResult.unwrap` when decoding failed."""

    def __init__(self, failure: DecodeFailure):
        super().__init__(failure.message)
        self.failure = failure

    @property
    def kind(self) -> DecodeErrorKind:
        return self.failure.kind


@dataclass(frozen=True)
class DecodedReading:
    temperature: float
    humidity: float
    pressure: float

    def as_dict(self) -> dict[str, float]:
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "pressure": self.pressure,
        }


@dataclass(frozen=True)
class DecodeResult:
    """Either a decoded reading or the reason decoding failed, never both."""

    reading: DecodedReading | None = None
    error: DecodeFailure | None = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> DecodedReading:
        if self.error is not None:
            raise HexDecodeError(self.error)
        if self.reading is None:
            raise HexDecodeError(DecodeFailure(DecodeErrorKind.INVALID_FORMAT, "No reading decoded"))
        return self.reading


def _failure(kind: DecodeErrorKind, message: str, violations=()) -> DecodeResult:
    return DecodeResult(error=DecodeFailure(kind=kind, message=message, violations=tuple(violations)))


def round_half_up(value: float, places: int = REPORT_DECIMALS) -> float:
    """Round the exact binary value of *value*, ties away from zero."""

    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def normalize_hex(hex_string: str) -> str:
    """Strip every whitespace character from *hex_string*."""

    return _WHITESPACE.sub("", hex_string)


def validate_ranges(temperature: float, humidity: float, pressure: float) -> DecodeFailure | None:
    """Check all three values and report every violated range at once.

    Returns ``None`` when the values are acceptable. Non-finite values are
    always violations.
    """

    violations = [
        RangeViolation(spec.name, value, spec.unit)
        for spec, value in zip(FIELDS, (temperature, humidity, pressure))
        if not spec.contains(value)
    ]
    if not violations:
        return None
    details = ", ".join(v.describe() for v in violations)
    return DecodeFailure(
        kind=DecodeErrorKind.OUT_OF_RANGE,
        message=f"Invalid sensor values detected: {details}",
        violations=tuple(violations),
    )


class HexDecoder:
    """Stateless decoder; instances are safe to share between requests."""

    def decode(self, hex_string: str) -> DecodeResult:
        if not isinstance(hex_string, str):
            return _failure(DecodeErrorKind.INVALID_FORMAT, "Invalid hex string provided")

        clean = normalize_hex(hex_string)
        if not _HEX_ONLY.fullmatch(clean):
            return _failure(
                DecodeErrorKind.INVALID_FORMAT,
                f"Invalid hexadecimal format: {clean!r}",
            )
        if len(clean) != PAYLOAD_HEX_CHARS:
            return _failure(
                DecodeErrorKind.INVALID_LENGTH,
                f"Invalid hex data length. Expected {PAYLOAD_HEX_CHARS} characters "
                f"({PAYLOAD_BYTES} bytes), got {len(clean)}",
            )

        temperature, humidity, pressure = struct.unpack(PAYLOAD_FORMAT, bytes.fromhex(clean))

        problem = validate_ranges(temperature, humidity, pressure)
        if problem is not None:
            return DecodeResult(error=problem)

        return DecodeResult(
            reading=DecodedReading(
                temperature=round_half_up(temperature),
                humidity=round_half_up(humidity),
                pressure=round_half_up(pressure),
            )
        )

    def validate_ranges(self, temperature: float, humidity: float, pressure: float) -> DecodeFailure | None:
        return validate_ranges(temperature, humidity, pressure)


def decode(hex_string: str) -> DecodeResult:
    return HexDecoder().decode(hex_string)
