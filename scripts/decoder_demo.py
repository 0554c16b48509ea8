import os
import sys
import time
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "backend"))

from iotfusion.accuracy import AccuracyValidator  # noqa: E402
from iotfusion.decoder import HexDecoder  # noqa: E402

API = os.getenv("SIGFOX_ENDPOINT", "https://callback-iot.onrender.com/data")

EXAMPLES = [
    ("0000e840cdccc7424a3e8044", "Example from API data - Device 42A6DA"),
    ("0000e440cdccc74288408044", "Another API example"),
    ("0000ec40cdccc7428f418044", "Third API example"),
]


def show_reading(decoder: HexDecoder, hex_data: str) -> None:
    result = decoder.decode(hex_data)
    if not result.ok:
        print(f"   Decoding failed: {result.error.message}")
        return
    r = result.reading
    print(f"   Temperature: {r.temperature}°C")
    print(f"   Humidity: {r.humidity}%")
    print(f"   Pressure: {r.pressure} hPa")


def demo_live(decoder: HexDecoder) -> None:
    print(f"Fetching data from {API}\n")
    try:
        r = httpx.get(API, timeout=10, headers={"Accept": "application/json"})
        r.raise_for_status()
    except httpx.HTTPError as exc:
        print(f"Error: unable to fetch upstream data ({exc})")
        return
    records = [rec for rec in r.json() if isinstance(rec, dict)]
    hex_records = [rec for rec in records if rec.get("hexData")]
    print(f"Total records: {len(records)}, with hexData: {len(hex_records)}\n")
    if not hex_records:
        return

    validator = AccuracyValidator(decoder)
    by_hex = {id(p.hex_record): p for p in validator.pair(records)}
    for i, rec in enumerate(hex_records[:3], start=1):
        print(f"Record {i}: device {rec.get('device')} at {rec.get('timestamp')}")
        print(f"   HexData: {rec['hexData']}")
        show_reading(decoder, rec["hexData"])
        pair = by_hex.get(id(rec))
        if pair:
            res = validator.compare(pair)
            if res.error is None:
                print(f"   Differences: {res.differences}")
                print(f"   Accuracy: {'MATCH' if res.is_accurate else 'OUTSIDE TOLERANCE'}")
        print("-" * 50)

    start = time.perf_counter()
    ok = sum(1 for rec in hex_records if decoder.decode(rec["hexData"]).ok)
    elapsed = (time.perf_counter() - start) * 1000
    print(f"Successful decodings: {ok} / {len(hex_records)} ({ok / len(hex_records) * 100:.2f}%)")
    print(f"Total processing time: {elapsed:.2f}ms")


def main():
    decoder = HexDecoder()
    demo_live(decoder)
    print("\nMANUAL DECODING EXAMPLES\n")
    for hex_data, description in EXAMPLES:
        print(f"{description}: {hex_data}")
        show_reading(decoder, hex_data)


if __name__ == "__main__":
    main()
