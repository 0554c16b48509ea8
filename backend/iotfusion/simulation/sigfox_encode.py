# sigfox_encode.py
# Pack temperature / humidity / pressure into the 12-byte Sigfox payload (little-endian float32).

from __future__ import annotations
import random
import struct

from iotfusion.decoder import FIELDS, PAYLOAD_FORMAT

IDX = {f.name: i for i, f in enumerate(FIELDS)}


def _clip(name: str, v: float) -> float:
    f = FIELDS[IDX[name]]
    return max(f.lo, min(f.hi, v))


def encode_reading(temperature: float, humidity: float, pressure: float) -> bytes:
    """
    Payload order (12 bytes total):
      [temperature f32][humidity f32][pressure f32]
    Values are packed as given; no clipping, so out-of-range payloads can be built for tests.
    """
    return struct.pack(PAYLOAD_FORMAT, temperature, humidity, pressure)


def to_hex(payload: bytes) -> str:
    return payload.hex()


def simulate_record(device: str, timestamp: str, rng: random.Random | None = None) -> tuple[dict, dict]:
    """Return a (hex record, ground-truth record) pair as the callback would emit them."""
    rng = rng or random.Random()
    values = {
        "temperature": _clip("temperature", 21.0 + rng.uniform(-6.0, 6.0)),
        "humidity": _clip("humidity", 55.0 + rng.uniform(-20.0, 20.0)),
        "pressure": _clip("pressure", 1013.0 + rng.uniform(-15.0, 15.0)),
    }
    payload = encode_reading(values["temperature"], values["humidity"], values["pressure"])
    # ground truth is what the float32 actually holds, reported to 4 decimals
    t, h, p = struct.unpack(PAYLOAD_FORMAT, payload)
    hex_record = {"device": device, "timestamp": timestamp, "hexData": to_hex(payload)}
    actual_record = {
        "device": device,
        "timestamp": timestamp,
        "temperature": f"{t:.4f}",
        "humidity": f"{h:.4f}",
        "pressure": f"{p:.4f}",
    }
    return hex_record, actual_record
