"""
Passphrase-based AES container compatible with CryptoJS ``AES.encrypt``.

Container layout (base64 encoded)::

    "Salted__" | salt (8 bytes) | AES-256-CBC(PKCS#7 padded plaintext)

Key and IV come from OpenSSL's ``EVP_BytesToKey`` with MD5 and a single
iteration. The passphrase itself is derived from the record key and the
user's password, so the server never stores anything that decrypts a blob.

Never log plaintext, passwords or derived key material.
"""

import base64
import binascii
import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from blobsync.shared import Logger

logger = Logger(__name__).get_logger()

__all__ = [
    "EMPTY_OBJECT",
    "DecryptError",
    "bytes_to_key",
    "decrypt",
    "decrypt_container",
    "derive_passphrase",
    "encrypt",
    "pkcs7_strip",
]

MAGIC = b"Salted__"
SALT_LEN = 8
KEY_LEN = 32  # AES-256
BLOCK_LEN = 16
PASSPHRASE_LEN = 16

# Returned for every decryption failure
EMPTY_OBJECT = b"{}"


class DecryptError(ValueError):
    """A container could not be decrypted. Never leaves this module's API."""


def derive_passphrase(key: str, password: str) -> str:
    """First 16 hex characters of ``MD5(key + "-" + password)``."""
    digest = hashlib.md5(f"{key}-{password}".encode("utf-8")).hexdigest()
    return digest[:PASSPHRASE_LEN]


def bytes_to_key(
    salt: bytes,
    data: bytes,
    key_len: int = KEY_LEN,
    iv_len: int = BLOCK_LEN,
) -> tuple[bytes, bytes]:
    """OpenSSL ``EVP_BytesToKey`` with MD5 and one iteration."""
    if salt and len(salt) != SALT_LEN:
        raise DecryptError(f"salt length {len(salt)}, expected {SALT_LEN}")

    total_len = key_len + iv_len
    result = b""
    last_hash = b""
    while len(result) < total_len:
        last_hash = hashlib.md5(last_hash + data + salt).digest()
        result += last_hash

    return result[:key_len], result[key_len:total_len]


def pkcs7_strip(data: bytes, block_size: int = BLOCK_LEN) -> bytes:
    length = len(data)
    if length == 0:
        raise DecryptError("pkcs7: data is empty")
    if length % block_size != 0:
        raise DecryptError("pkcs7: data is not block-aligned")

    pad_len = data[-1]
    if pad_len == 0 or pad_len > block_size:
        raise DecryptError("pkcs7: invalid padding length")
    if data[-pad_len:] != bytes([pad_len]) * pad_len:
        raise DecryptError("pkcs7: invalid padding")

    return data[:-pad_len]


def decrypt_container(passphrase: str | bytes, ciphertext: str) -> bytes:
    """Decrypt a base64 ``Salted__`` container, raising :class:`DecryptError`."""
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")

    try:
        raw = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecryptError(f"base64 decode failed: {e}") from e

    if len(raw) < 17 or len(raw) % BLOCK_LEN != 0 or raw[:8] != MAGIC:
        raise DecryptError("invalid ciphertext format")

    salt = raw[8:16]
    body = raw[16:]

    cipher_key, iv = bytes_to_key(salt, passphrase)

    decryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).decryptor()
    decrypted = decryptor.update(body) + decryptor.finalize()

    try:
        return pkcs7_strip(decrypted)
    except DecryptError as e:
        raise DecryptError(
            f"pkcs7 strip failed (password may be incorrect): {e}"
        ) from e


def decrypt(key: str, ciphertext: str, password: str) -> bytes:
    """
    Decrypt the blob stored under ``key`` with the user's ``password``.

    Every failure (bad base64, malformed container, wrong password) returns
    :data:`EMPTY_OBJECT`; callers cannot tell them apart.
    """
    try:
        passphrase = derive_passphrase(key, password)
        return decrypt_container(passphrase, ciphertext)
    except (DecryptError, UnicodeError) as e:
        logger.debug("Decryption failed for key %s: %s", key, e)
        return EMPTY_OBJECT


def encrypt(
    plaintext: bytes | str,
    passphrase: str | bytes,
    salt: bytes | None = None,
) -> str:
    """Build a container the way CryptoJS ``AES.encrypt(text, passphrase)`` does."""
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")
    if salt is None:
        salt = os.urandom(SALT_LEN)
    if len(salt) != SALT_LEN:
        raise ValueError(f"salt must be {SALT_LEN} bytes")

    cipher_key, iv = bytes_to_key(salt, passphrase)

    padder = padding.PKCS7(BLOCK_LEN * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).encryptor()
    body = encryptor.update(padded) + encryptor.finalize()

    return base64.b64encode(MAGIC + salt + body).decode("ascii")
