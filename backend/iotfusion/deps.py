from fastapi import Depends, Request

from .accuracy import AccuracyValidator
from .config import Settings
from .data_service import DataService
from .decoder import HexDecoder


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_data_service(request: Request) -> DataService:
    return request.app.state.data_service


def get_decoder() -> HexDecoder:
    return HexDecoder()


def get_validator(decoder: HexDecoder = Depends(get_decoder)) -> AccuracyValidator:
    return AccuracyValidator(decoder)
