from .serde_base import SerdeBase


class UpdateRequest(SerdeBase):
    uuid: str = ""
    encrypted: str = ""  # Base64 "Salted__" container produced client side


class DecryptRequest(SerdeBase):
    password: str = ""  # Empty means "return the ciphertext as is"


class UpdateResponse(SerdeBase):
    action: str = "done"


class ErrorResponse(SerdeBase):
    action: str = "error"
    reason: str
