from .json_body import PARSE_ERROR, JsonBody
from .serde_base import SerdeBase
from .sync import DecryptRequest, ErrorResponse, UpdateRequest, UpdateResponse

__all__ = [
    "PARSE_ERROR",
    "DecryptRequest",
    "ErrorResponse",
    "JsonBody",
    "SerdeBase",
    "UpdateRequest",
    "UpdateResponse",
]
