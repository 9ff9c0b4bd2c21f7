from pydantic import BaseModel, Field


class StoredBlob(BaseModel):
    """On-disk and wire form of a record: ``{"encrypted": "<base64>"}``."""

    encrypted: str = Field(..., description="Base64 ciphertext, opaque to the server")


class Record(BaseModel):
    key: str = Field(..., description="Caller chosen identifier (the uuid)")
    ciphertext: str = Field(..., description="Base64 ciphertext as received")
