"""Orchestration between the upstream fetch, the cache and the decoder."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from .accuracy import SENSOR_FIELDS, AccuracySummary, AccuracyValidator, ValidationResult, parse_number, parse_timestamp
from .cache import TTLCache
from .decoder import PAYLOAD_BYTES, HexDecoder
from .sigfox_client import SigfoxClient

logger = logging.getLogger(__name__)

UNITS = {"temperature": "°C", "humidity": "%", "pressure": "hPa"}
RECORD_FIELDS = ("device", "timestamp") + SENSOR_FIELDS + ("hexData",)


class RecordValidationError(ValueError):
    """A client supplied record is malformed."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _present(value: Any) -> bool:
    return value is not None and value != ""


def normalize_record(record: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "device": record.get("device") or "unknown",
        "timestamp": record.get("timestamp") or _now_iso(),
        "temperature": record.get("temperature"),
        "humidity": record.get("humidity"),
        "pressure": record.get("pressure"),
        "hexData": record.get("hexData") or None,
        "processedAt": _now_iso(),
    }


def latest_records(records: Sequence[Mapping[str, Any]], limit: int) -> list[dict[str, Any]]:
    """Return the *limit* newest records that carry a usable timestamp."""

    dated = []
    for record in records:
        ts = parse_timestamp(record.get("timestamp")) if isinstance(record, Mapping) else None
        if ts is not None:
            dated.append((ts, record))
    dated.sort(key=lambda item: item[0], reverse=True)
    return [normalize_record(r) for _, r in dated[:limit]]


def assess_data_quality(record: Mapping[str, Any]) -> str:
    score = sum(1 for name in SENSOR_FIELDS + ("hexData",) if _present(record.get(name)))
    if parse_timestamp(record.get("timestamp")) is not None:
        score += 1
    if score >= 4:
        return "excellent"
    if score >= 3:
        return "good"
    if score >= 2:
        return "fair"
    return "poor"


def validate_records(records: Sequence[Any]) -> None:
    for i, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise RecordValidationError(f"Invalid record at index {i}: must be an object")
        if not any(_present(record.get(name)) for name in RECORD_FIELDS):
            raise RecordValidationError(
                f"Invalid record at index {i}: must contain at least one of: {', '.join(RECORD_FIELDS)}"
            )
        if _present(record.get("timestamp")) and parse_timestamp(record.get("timestamp")) is None:
            raise RecordValidationError(f"Invalid timestamp format at record index {i}")
        for name in SENSOR_FIELDS:
            if _present(record.get(name)) and parse_number(record.get(name)) is None:
                raise RecordValidationError(f"Invalid {name} value at record index {i}")


def process_visualization_data(records: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    if not records:
        return {
            "success": False,
            "message": "No data available for visualization",
            "data": [],
            "timestamp": _now_iso(),
        }

    processed = []
    for record in records:
        processed.append(
            {
                "deviceId": record.get("device"),
                "timestamp": record.get("timestamp"),
                "sensors": {
                    name: {"value": parse_number(record.get(name)) or 0.0, "unit": UNITS[name]}
                    for name in SENSOR_FIELDS
                },
                "rawData": record.get("hexData"),
                "quality": assess_data_quality(record),
            }
        )

    return {
        "success": True,
        "message": "Data processed successfully for visualization",
        "data": processed,
        "summary": {
            "totalRecords": len(processed),
            "latestTimestamp": processed[0]["timestamp"],
            "devices": list(dict.fromkeys(p["deviceId"] for p in processed)),
        },
        "timestamp": _now_iso(),
    }


def decode_batch(records: Sequence[Mapping[str, Any]], decoder: HexDecoder) -> tuple[list[dict[str, Any]], dict[str, int]]:
    """Decode every record carrying ``hexData``; failures are reported inline."""

    results: list[dict[str, Any]] = []
    for record in records:
        hex_data = record.get("hexData")
        if not hex_data:
            continue
        base = {
            "device": record.get("device"),
            "timestamp": record.get("timestamp"),
            "originalHex": hex_data,
        }
        outcome = decoder.decode(hex_data)
        if outcome.ok:
            results.append(
                {
                    **base,
                    "decoded": outcome.reading.as_dict(),
                    "hexBytes": PAYLOAD_BYTES,
                    "decodingSuccess": True,
                }
            )
        else:
            logger.error(
                "Failed to decode hex data for device %s (%s): %s",
                record.get("device"),
                hex_data,
                outcome.error.message,
            )
            results.append(
                {
                    **base,
                    "decoded": None,
                    "decodingSuccess": False,
                    "error": outcome.error.message,
                }
            )

    successful = sum(1 for r in results if r["decodingSuccess"])
    counts = {"total": len(results), "successful": successful, "failed": len(results) - successful}
    return results, counts


def validate_accuracy(
    records: Sequence[Mapping[str, Any]], validator: AccuracyValidator
) -> tuple[list[ValidationResult], AccuracySummary]:
    pairs = validator.pair(records)
    logger.info("Found %d validation pairs", len(pairs))
    results = [validator.compare(p) for p in pairs]
    summary = validator.summarize(results)
    logger.info("Validation completed: %d of %d accurate", summary.accurate_count, summary.total)
    return results, summary


class DataService:
    """Cached access to the upstream record set."""

    def __init__(self, client: SigfoxClient, cache: TTLCache, max_records: int = 2):
        self.client = client
        self.cache = cache
        self.max_records = max_records
        self._refresh_lock = asyncio.Lock()

    async def fetch_external(self) -> list[dict[str, Any]]:
        return await self.client.fetch_records()

    async def get_raw_records(self) -> list[dict[str, Any]]:
        cached = self.cache.get()
        if cached is not None:
            logger.debug("Returning cached data (%d records)", len(cached))
            return cached
        # one upstream fetch per miss; waiters reuse its result
        async with self._refresh_lock:
            cached = self.cache.get()
            if cached is not None:
                return cached
            logger.debug("Cache miss or expired, fetching fresh data")
            records = await self.fetch_external()
            self.cache.set(records)
            return records

    async def get_latest_data(self) -> list[dict[str, Any]]:
        records = await self.get_raw_records()
        latest = latest_records(records, self.max_records)
        logger.debug("Processed latest records: %d in, %d out", len(records), len(latest))
        return latest

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Cache cleared")

    def cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()
