import base64
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_SIZE = 16
NONCE_SIZE = 12
KDF_ITERATIONS = 390000


class CryptoError(Exception):
    pass


class WrongPassword(CryptoError):
    pass


def derive_key(password: str, salt: bytes, length=32) -> bytes:
    try:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=length,
            salt=salt,
            iterations=KDF_ITERATIONS,
        )
        return kdf.derive(password.encode())
    except Exception as e:
        raise CryptoError(f"KDF key derivation failed: {e}") from e


def encrypt_secret(data: bytes, password: str) -> str:
    """Encrypt ``data`` and return ``base64(salt || nonce || ciphertext+tag)``."""
    try:
        salt = os.urandom(SALT_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        key = derive_key(password, salt)
        ciphertext = AESGCM(key).encrypt(nonce, data, None)
        return base64.b64encode(salt + nonce + ciphertext).decode("ascii")
    except CryptoError:
        raise
    except Exception as e:
        raise CryptoError(f"AES encrypt failed: {e}") from e


def decrypt_secret(blob: str, password: str) -> bytes:
    try:
        raw = base64.b64decode(blob, validate=True)
    except Exception as e:
        raise CryptoError("Base64 decode failed (corrupted keystore).") from e

    # salt + nonce + 16 byte GCM tag
    if len(raw) < SALT_SIZE + NONCE_SIZE + 16:
        raise CryptoError("Encrypted data too short or invalid.")

    salt = raw[:SALT_SIZE]
    nonce = raw[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
    ciphertext = raw[SALT_SIZE + NONCE_SIZE:]

    key = derive_key(password, salt)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        # GCM cannot tell a wrong password from a tampered file
        raise WrongPassword("Wrong password or corrupted keystore.") from e
