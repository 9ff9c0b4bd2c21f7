"""
Tests for the CryptoJS compatible container codec.
"""

import base64
import hashlib
import os

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from blobsync.core import crypto
from blobsync.core.crypto import (
    EMPTY_OBJECT,
    DecryptError,
    bytes_to_key,
    decrypt,
    decrypt_container,
    derive_passphrase,
    encrypt,
    pkcs7_strip,
)

SALT = bytes.fromhex("0102030405060708")


def raw_container(passphrase: str, salt: bytes, padded_plaintext: bytes) -> str:
    """Build a container by hand, without going through ``encrypt``."""
    data = passphrase.encode()
    d1 = hashlib.md5(data + salt).digest()
    d2 = hashlib.md5(d1 + data + salt).digest()
    d3 = hashlib.md5(d2 + data + salt).digest()
    key, iv = d1 + d2, d3

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    body = encryptor.update(padded_plaintext) + encryptor.finalize()
    return base64.b64encode(b"Salted__" + salt + body).decode()


class TestPassphrase:
    def test_is_sixteen_lowercase_hex_characters(self):
        passphrase = derive_passphrase("abc123", "hunter2")
        assert len(passphrase) == 16
        assert all(c in "0123456789abcdef" for c in passphrase)

    def test_matches_md5_of_key_dash_password(self):
        expected = hashlib.md5(b"abc123-hunter2").hexdigest()[:16]
        assert derive_passphrase("abc123", "hunter2") == expected

    def test_depends_on_both_inputs(self):
        base = derive_passphrase("abc123", "hunter2")
        assert derive_passphrase("abc124", "hunter2") != base
        assert derive_passphrase("abc123", "hunter3") != base


class TestBytesToKey:
    def test_lengths(self):
        key, iv = bytes_to_key(SALT, b"passphrase")
        assert len(key) == 32
        assert len(iv) == 16

    def test_deterministic(self):
        assert bytes_to_key(SALT, b"passphrase") == bytes_to_key(SALT, b"passphrase")

    def test_salt_changes_key(self):
        key_a, iv_a = bytes_to_key(SALT, b"passphrase")
        key_b, iv_b = bytes_to_key(bytes.fromhex("0807060504030201"), b"passphrase")
        assert key_a != key_b
        assert iv_a != iv_b

    def test_md5_chaining(self):
        d1 = hashlib.md5(b"pw" + SALT).digest()
        d2 = hashlib.md5(d1 + b"pw" + SALT).digest()
        d3 = hashlib.md5(d2 + b"pw" + SALT).digest()
        assert bytes_to_key(SALT, b"pw") == (d1 + d2, d3)

    def test_empty_salt_allowed(self):
        d1 = hashlib.md5(b"pw").digest()
        key, _ = bytes_to_key(b"", b"pw")
        assert key[:16] == d1

    @pytest.mark.parametrize("salt", [b"1234567", b"123456789"])
    def test_wrong_salt_length_is_a_decrypt_error(self, salt):
        with pytest.raises(DecryptError):
            bytes_to_key(salt, b"pw")


class TestPkcs7Strip:
    def test_strips_full_block(self):
        assert pkcs7_strip(b"\x10" * 16) == b""

    def test_strips_partial(self):
        assert pkcs7_strip(b"hello world!\x04\x04\x04\x04") == b"hello world!"

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"abc",
            b"a" * 15 + b"\x00",
            b"a" * 15 + b"\x11",
            b"a" * 13 + b"\x02\x03\x03",
        ],
    )
    def test_rejects(self, data):
        with pytest.raises(DecryptError):
            pkcs7_strip(data)


class TestDecrypt:
    def test_known_scenario(self):
        key, password = "abc123", "hunter2"
        passphrase = hashlib.md5(b"abc123-hunter2").hexdigest()[:16]
        ciphertext = encrypt('{"foo":"bar"}', passphrase)

        assert decrypt(key, ciphertext, password) == b'{"foo":"bar"}'

    def test_hand_built_container(self):
        passphrase = derive_passphrase("abc123", "hunter2")
        plaintext = b'{"foo":"bar"}'
        padded = plaintext + bytes([3]) * 3
        ciphertext = raw_container(passphrase, SALT, padded)

        assert decrypt("abc123", ciphertext, "hunter2") == plaintext

    def test_encrypt_matches_hand_built_container(self):
        passphrase = derive_passphrase("k", "p")
        plaintext = b"x" * 20
        padded = plaintext + bytes([12]) * 12

        assert encrypt(plaintext, passphrase, salt=SALT) == raw_container(
            passphrase, SALT, padded
        )

    @pytest.mark.parametrize("size", [0, 1, 15, 16, 17, 4096])
    def test_plaintext_sizes(self, size):
        plaintext = os.urandom(size)
        passphrase = derive_passphrase("key", "pw")
        assert decrypt("key", encrypt(plaintext, passphrase), "pw") == plaintext

    def test_unicode_key_and_password(self):
        passphrase = derive_passphrase("clé-ü", "pässwörd")
        ciphertext = encrypt("{}", passphrase)
        assert decrypt("clé-ü", ciphertext, "pässwörd") == b"{}"

    def test_wrong_password_does_not_reveal_plaintext(self):
        plaintext = b'{"secret":"value"}'
        ciphertext = encrypt(plaintext, derive_passphrase("abc123", "hunter2"), SALT)
        for wrong in ("hunter3", "", "HUNTER2", "hunter2 "):
            assert decrypt("abc123", ciphertext, wrong) != plaintext

    def test_wrong_key_does_not_reveal_plaintext(self):
        plaintext = b'{"secret":"value"}'
        ciphertext = encrypt(plaintext, derive_passphrase("abc123", "hunter2"), SALT)
        assert decrypt("abc124", ciphertext, "hunter2") != plaintext


class TestDecryptFailureContainment:
    passphrase = derive_passphrase("abc123", "hunter2")

    def check(self, ciphertext):
        assert decrypt("abc123", ciphertext, "hunter2") == EMPTY_OBJECT
        with pytest.raises(DecryptError):
            decrypt_container(self.passphrase, ciphertext)

    def test_sentinel_is_two_bytes(self):
        assert EMPTY_OBJECT == b"{}"

    def test_malformed_base64(self):
        self.check("not base64!!")

    def test_non_ascii_input(self):
        self.check("Salted__é")

    def test_empty_string(self):
        self.check("")

    def test_too_short(self):
        self.check(base64.b64encode(b"Salted__12345678").decode())

    def test_wrong_magic(self):
        valid = base64.b64decode(encrypt("{}", self.passphrase))
        self.check(base64.b64encode(b"Pepper__" + valid[8:]).decode())

    def test_not_block_aligned(self):
        valid = base64.b64decode(encrypt("{}", self.passphrase))
        self.check(base64.b64encode(valid + b"\x00").decode())

    @pytest.mark.parametrize(
        "last_block",
        [
            b"a" * 15 + b"\x00",
            b"a" * 15 + b"\x11",
            b"a" * 14 + b"\x01\x02",
            b"\xff" * 16,
        ],
    )
    def test_invalid_padding(self, last_block):
        self.check(raw_container(self.passphrase, SALT, b"b" * 16 + last_block))

    def test_non_string_ciphertext(self):
        assert decrypt("abc123", None, "hunter2") == EMPTY_OBJECT

    def test_unencodable_password(self):
        ciphertext = encrypt("{}", self.passphrase)
        assert decrypt("abc123", ciphertext, "\ud800") == EMPTY_OBJECT

    def test_failure_reason_is_logged_not_raised(self, monkeypatch):
        reasons = []
        monkeypatch.setattr(
            crypto.logger, "debug", lambda msg, *args: reasons.append(args[-1])
        )

        assert decrypt("abc123", "????", "hunter2") == EMPTY_OBJECT
        assert len(reasons) == 1
        assert isinstance(reasons[0], DecryptError)


class TestEncrypt:
    def test_random_salt(self):
        a = encrypt("{}", "passphrase")
        b = encrypt("{}", "passphrase")
        assert a != b
        assert base64.b64decode(a)[:8] == b"Salted__"

    def test_fixed_salt_is_deterministic(self):
        assert encrypt("{}", "passphrase", SALT) == encrypt("{}", "passphrase", SALT)

    def test_rejects_bad_salt(self):
        with pytest.raises(ValueError):
            encrypt("{}", "passphrase", b"short")
