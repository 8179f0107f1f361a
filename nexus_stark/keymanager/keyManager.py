import json
import logging
import os
from typing import Optional

from .crypto_utils import (
    encrypt_secret, decrypt_secret,
    CryptoError, WrongPassword
)
from .keys import StarkKeys, derive_keys, generate_keys, sign_message_hash

logger = logging.getLogger(__name__)

KEYSTORE_VERSION = 1


class KeyManager:
    """
    Password protected keystore holding the account signer key and, for
    accounts with a guardian (Argent), the guardian key.

    Only public keys are readable while locked.
    """

    def __init__(self, storage_path="keystore.json"):
        self.storage_path = storage_path
        self._signer: Optional[StarkKeys] = None
        self._guardian: Optional[StarkKeys] = None
        self.public_key = None
        self.guardian_public_key = None
        self.unlocked = False

    # ---------------- keystore lifecycle ----------------

    def create_new_key(self, password: str, with_guardian: bool = False) -> str:
        signer = generate_keys()
        guardian = generate_keys() if with_guardian else None
        self._write_keystore(signer, guardian, password)
        logger.info(f"Created keystore {self.storage_path} for {signer.public_key}")
        return signer.public_key

    def import_private_key(
        self,
        private_key_hex: str,
        password: str,
        guardian_private_key_hex: Optional[str] = None
    ) -> str:
        try:
            signer = derive_keys(private_key_hex)
            guardian = derive_keys(guardian_private_key_hex) if guardian_private_key_hex else None
        except (TypeError, ValueError) as e:
            raise CryptoError(f"Import private key failed: {e}") from e

        self._write_keystore(signer, guardian, password)
        return signer.public_key

    def unlock(self, password: str) -> str:
        if not os.path.exists(self.storage_path):
            raise FileNotFoundError("Keystore not found.")

        data = self._read_keystore(self.storage_path)
        signer = self._decrypt_keys(data["signer"], password)
        guardian = self._decrypt_keys(data["guardian"], password) if data.get("guardian") else None
        self._check_integrity(data, signer, guardian)

        self._signer = signer
        self._guardian = guardian
        self.public_key = signer.public_key
        self.guardian_public_key = guardian.public_key if guardian else None
        self.unlocked = True
        return self.public_key

    def lock(self):
        self._signer = None
        self._guardian = None
        self.unlocked = False

    # ---------------- import / export ----------------

    def export_keystore(self, dest_path: str):
        if not os.path.exists(self.storage_path):
            raise FileNotFoundError("Keystore not found.")

        with open(self.storage_path, "r") as src, open(dest_path, "w") as dest:
            dest.write(src.read())

    def import_keystore(self, src_path: str, password: str) -> str:
        data = self._read_keystore(src_path)

        # decrypting proves the password before the keystore is adopted
        signer = self._decrypt_keys(data["signer"], password)
        guardian = self._decrypt_keys(data["guardian"], password) if data.get("guardian") else None
        self._check_integrity(data, signer, guardian)

        with open(self.storage_path, "w") as f:
            json.dump(data, f, indent=2)

        self.public_key = signer.public_key
        self.guardian_public_key = guardian.public_key if guardian else None
        return self.public_key

    # ---------------- signing ----------------

    def signer_keys(self) -> StarkKeys:
        if not self.unlocked:
            raise PermissionError("Keystore is locked.")
        return self._signer

    def guardian_keys(self) -> Optional[StarkKeys]:
        if not self.unlocked:
            raise PermissionError("Keystore is locked.")
        return self._guardian

    def sign_hash(self, message_hash: int):
        """Sign a message hash with the signer key, returning ``[r, s]``."""
        return sign_message_hash(self.signer_keys(), message_hash)

    def get_public_key(self):
        return self.public_key

    # ---------------- internals ----------------

    def _write_keystore(self, signer: StarkKeys, guardian: Optional[StarkKeys], password: str):
        data = {
            "version": KEYSTORE_VERSION,
            "public_key": signer.public_key,
            "signer": encrypt_secret(bytes.fromhex(signer.private_key[2:].zfill(64)), password),
            "guardian_public_key": guardian.public_key if guardian else None,
            "guardian": (
                encrypt_secret(bytes.fromhex(guardian.private_key[2:].zfill(64)), password)
                if guardian else None
            ),
        }
        with open(self.storage_path, "w") as f:
            json.dump(data, f, indent=2)

        self.public_key = signer.public_key
        self.guardian_public_key = data["guardian_public_key"]

    @staticmethod
    def _read_keystore(path: str) -> dict:
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CryptoError(f"Keystore {path} is not valid JSON.") from e

        if data.get("version") != KEYSTORE_VERSION or "signer" not in data:
            raise CryptoError(f"Unsupported keystore format in {path}.")
        return data

    @staticmethod
    def _check_integrity(data: dict, signer: StarkKeys, guardian: Optional[StarkKeys]):
        if signer.public_key != data.get("public_key"):
            raise CryptoError("Keystore integrity check failed: public key mismatch.")

        guardian_public_key = guardian.public_key if guardian else None
        if guardian_public_key != data.get("guardian_public_key"):
            raise CryptoError("Keystore integrity check failed: guardian public key mismatch.")

    @staticmethod
    def _decrypt_keys(blob: str, password: str) -> StarkKeys:
        try:
            private_key = decrypt_secret(blob, password)
        except WrongPassword:
            raise WrongPassword("Incorrect password.")
        return derive_keys("0x" + private_key.hex())
