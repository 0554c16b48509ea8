import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from ..accuracy import TOLERANCE, AccuracyValidator
from ..config import API_VERSION
from ..data_service import DataService, decode_batch, validate_accuracy
from ..decoder import DECODING_FORMAT, FIELDS, PAYLOAD_BYTES, HexDecoder
from ..deps import get_data_service, get_decoder, get_validator
from ..schemas import DecodeBatchOut, DecodeSingleOut, SingleHexIn

router = APIRouter(prefix="/api/decoder", tags=["decoder"])
logger = logging.getLogger(__name__)

DATA_STRUCTURE = "temperature(4 bytes) + humidity(4 bytes) + pressure(4 bytes)"


def _elapsed_ms(start: float) -> str:
    return f"{(time.perf_counter() - start) * 1000:.0f}ms"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/hex-data", response_model=DecodeBatchOut, response_model_exclude_unset=True)
async def decode_hex_data(
    service: DataService = Depends(get_data_service),
    decoder: HexDecoder = Depends(get_decoder),
):
    start = time.perf_counter()
    records = await service.get_raw_records()
    results, counts = decode_batch(records, decoder)
    if not results:
        logger.warning("No hex data records found in API response")
    logger.info(
        "Hex data decoding completed: %d records, %d ok, %d failed",
        counts["total"],
        counts["successful"],
        counts["failed"],
    )

    return {
        "success": True,
        "message": f"Successfully decoded {counts['successful']} of {counts['total']} hex data records",
        "data": results,
        "metadata": {
            "totalDecoded": counts["total"],
            "successfulDecodings": counts["successful"],
            "failedDecodings": counts["failed"],
            "processingTime": _elapsed_ms(start),
            "decodingFormat": DECODING_FORMAT,
            "dataStructure": DATA_STRUCTURE,
            "timestamp": _now_iso(),
        },
    }


@router.post("/single", response_model=DecodeSingleOut)
def decode_single_hex(payload: SingleHexIn, decoder: HexDecoder = Depends(get_decoder)):
    start = time.perf_counter()
    result = decoder.decode(payload.hexData)
    if not result.ok:
        logger.error("Error in single hex decoding (%s): %s", payload.hexData, result.error.message)
        raise HTTPException(status_code=400, detail=result.error.message)

    logger.info("Single hex decoding completed for %s", payload.hexData)
    return {
        "success": True,
        "message": "Hex string decoded successfully",
        "input": {
            "hexData": payload.hexData,
            "hexLength": len(payload.hexData),
            "expectedBytes": PAYLOAD_BYTES,
        },
        "decoded": result.reading.as_dict(),
        "metadata": {
            "processingTime": _elapsed_ms(start),
            "decodingFormat": DECODING_FORMAT,
            "timestamp": _now_iso(),
        },
    }


@router.get("/validate")
async def validate_decoding(
    service: DataService = Depends(get_data_service),
    validator: AccuracyValidator = Depends(get_validator),
):
    start = time.perf_counter()
    records = await service.get_raw_records()
    results, summary = validate_accuracy(records, validator)

    return {
        "success": True,
        "message": "Decoding validation completed",
        "validation": [r.as_dict() for r in results],
        "summary": {
            "totalValidations": summary.total,
            "accurateDecodings": summary.accurate_count,
            "accuracyRate": summary.accuracy_rate_label,
            "processingTime": _elapsed_ms(start),
        },
        "metadata": {
            "decodingFormat": DECODING_FORMAT,
            "tolerance": TOLERANCE,
            "timestamp": _now_iso(),
        },
    }


@router.get("/info")
def decoder_info():
    return {
        "success": True,
        "message": "Decoder information retrieved successfully",
        "info": {
            "version": API_VERSION,
            "format": DECODING_FORMAT,
            "dataStructure": {spec.name: "4 bytes (float32)" for spec in FIELDS},
            "validRanges": {spec.name: {"min": spec.lo, "max": spec.hi, "unit": spec.unit} for spec in FIELDS},
            "totalBytes": PAYLOAD_BYTES,
            "supportedOperations": [
                "Fetch and decode all hex data",
                "Decode single hex string",
                "Validate decoding accuracy",
            ],
            "timestamp": _now_iso(),
        },
    }
