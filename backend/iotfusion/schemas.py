from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SingleHexIn(BaseModel):
    hexData: str = Field(min_length=1)


class VisualizeIn(BaseModel):
    data: Optional[Any] = None
    source: str = "client"
    options: dict[str, Any] = Field(default_factory=dict)


class DecodedReadingOut(BaseModel):
    temperature: float
    humidity: float
    pressure: float
    model_config = ConfigDict(from_attributes=True)


class HexRecordOut(BaseModel):
    device: Optional[Any] = None
    timestamp: Optional[Any] = None
    originalHex: Any
    decoded: Optional[DecodedReadingOut] = None
    hexBytes: Optional[int] = None
    decodingSuccess: bool
    error: Optional[str] = None


class DecodeBatchOut(BaseModel):
    success: bool = True
    message: str
    data: list[HexRecordOut]
    metadata: dict[str, Any]


class DecodeSingleOut(BaseModel):
    success: bool = True
    message: str
    input: dict[str, Any]
    decoded: DecodedReadingOut
    metadata: dict[str, Any]
