"""Compare decoded payloads against directly reported sensor values."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from .decoder import DecodedReading, HexDecoder, round_half_up

TOLERANCE = 0.01
PAIRING_WINDOW_MS = 5000
SENSOR_FIELDS = ("temperature", "humidity", "pressure")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""

    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def has_ground_truth(record: Mapping[str, Any]) -> bool:
    return all(name in record for name in SENSOR_FIELDS)


@dataclass(frozen=True)
class ValidationPair:
    hex_record: Mapping[str, Any]
    actual_record: Mapping[str, Any]


@dataclass(frozen=True)
class ValidationResult:
    device: Any
    timestamp: Any
    hex_data: Any
    decoded: DecodedReading | None = None
    actual: dict[str, float | None] | None = None
    differences: dict[str, float | None] | None = None
    matches: dict[str, bool] | None = None
    is_accurate: bool = False
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "device": self.device,
            "timestamp": self.timestamp,
            "hexData": self.hex_data,
        }
        if self.error is not None:
            out["error"] = self.error
            out["isAccurate"] = False
            return out
        out.update(
            decoded=self.decoded.as_dict() if self.decoded else None,
            actual=self.actual,
            differences=self.differences,
            matches=self.matches,
            isAccurate=self.is_accurate,
            tolerance=TOLERANCE,
        )
        return out


@dataclass(frozen=True)
class AccuracySummary:
    total: int
    accurate_count: int
    accuracy_rate: float

    @property
    def accuracy_rate_label(self) -> str:
        return f"{self.accuracy_rate:.2f}%"


class AccuracyValidator:
    def __init__(self, decoder: HexDecoder | None = None):
        self.decoder = decoder or HexDecoder()

    def pair(self, records: Sequence[Mapping[str, Any]]) -> list[ValidationPair]:
        """Match each hex record with a ground-truth record of the same device.

        The first candidate in *records* within the time window wins; there is
        no preference for the closest timestamp.
        """

        pairs: list[ValidationPair] = []
        for record in records:
            if not record.get("hexData"):
                continue
            ts = parse_timestamp(record.get("timestamp"))
            if ts is None:
                continue
            for candidate in records:
                if candidate.get("device") != record.get("device") or not has_ground_truth(candidate):
                    continue
                other = parse_timestamp(candidate.get("timestamp"))
                if other is None:
                    continue
                if abs((other - ts).total_seconds() * 1000) < PAIRING_WINDOW_MS:
                    pairs.append(ValidationPair(hex_record=record, actual_record=candidate))
                    break
        return pairs

    def compare(self, pair: ValidationPair) -> ValidationResult:
        hex_record = pair.hex_record
        base = dict(
            device=hex_record.get("device"),
            timestamp=hex_record.get("timestamp"),
            hex_data=hex_record.get("hexData"),
        )

        result = self.decoder.decode(hex_record.get("hexData"))
        if not result.ok:
            return ValidationResult(**base, error=result.error.message)
        decoded = result.reading

        actual = {name: parse_number(pair.actual_record.get(name)) for name in SENSOR_FIELDS}
        differences: dict[str, float | None] = {}
        matches: dict[str, bool] = {}
        for name in SENSOR_FIELDS:
            expected = actual[name]
            if expected is None:
                differences[name] = None
                matches[name] = False
                continue
            # tolerance is applied to the rounded difference so 0.01 itself matches
            diff = round_half_up(getattr(decoded, name) - expected)
            differences[name] = diff
            matches[name] = abs(diff) <= TOLERANCE

        return ValidationResult(
            **base,
            decoded=decoded,
            actual=actual,
            differences=differences,
            matches=matches,
            is_accurate=all(matches.values()),
        )

    def compare_all(self, records: Sequence[Mapping[str, Any]]) -> list[ValidationResult]:
        return [self.compare(p) for p in self.pair(records)]

    @staticmethod
    def summarize(results: Iterable[ValidationResult]) -> AccuracySummary:
        results = list(results)
        total = len(results)
        accurate = sum(1 for r in results if r.is_accurate)
        rate = round(accurate / total * 100, 2) if total else 0.0
        return AccuracySummary(total=total, accurate_count=accurate, accuracy_rate=rate)
