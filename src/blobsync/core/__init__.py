# Core logic that is not tied to the HTTP layer:
# - CryptoJS compatible container decryption (crypto.py)
from .crypto import EMPTY_OBJECT, decrypt, derive_passphrase, encrypt

__all__ = ["EMPTY_OBJECT", "decrypt", "derive_passphrase", "encrypt"]
