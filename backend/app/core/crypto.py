# Credential vault for third-party integration secrets.
# AES-256-GCM with a fresh 16-byte IV per encryption; the key is derived
# once from INTEGRATION_ENCRYPTION_KEY with scrypt. Serialized payloads
# look like "ivhex:taghex:ciphertexthex".

from dataclasses import dataclass
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from app.core.config import settings

KEY_SALT = b"integration_salt"
KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1


class CryptoError(Exception):
    """Raised when a payload is malformed, tampered with, or the key is wrong."""


@dataclass(frozen=True)
class EncryptedPayload:
    iv: str
    auth_tag: str
    ciphertext: str

    def serialize(self) -> str:
        return f"{self.iv}:{self.auth_tag}:{self.ciphertext}"

    @classmethod
    def parse(cls, value: str) -> "EncryptedPayload":
        if not isinstance(value, str):
            raise CryptoError("Encrypted payload must be a string")
        parts = value.split(":")
        if len(parts) != 3 or not all(parts[:2]):
            raise CryptoError("Malformed encrypted payload")
        return cls(iv=parts[0], auth_tag=parts[1], ciphertext=parts[2])


def derive_key(secret: str) -> bytes:
    if not secret:
        raise CryptoError("Vault secret is not configured")
    kdf = Scrypt(salt=KEY_SALT, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret.encode("utf-8"))


class CredentialVault:
    def __init__(self, secret: str):
        self._aead = AESGCM(derive_key(secret))

    def seal(self, plaintext: str) -> EncryptedPayload:
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return EncryptedPayload(iv=iv.hex(), auth_tag=tag.hex(), ciphertext=ciphertext.hex())

    def open(self, payload: EncryptedPayload) -> str:
        try:
            iv = bytes.fromhex(payload.iv)
            tag = bytes.fromhex(payload.auth_tag)
            ciphertext = bytes.fromhex(payload.ciphertext)
        except (TypeError, ValueError) as exc:
            raise CryptoError("Malformed encrypted payload") from exc
        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise CryptoError("Malformed encrypted payload")
        try:
            plaintext = self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as exc:
            raise CryptoError("Encrypted payload failed authentication") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CryptoError("Decrypted payload is not valid text") from exc

    def encrypt(self, plaintext: str) -> str:
        return self.seal(plaintext).serialize()

    def decrypt(self, value: str) -> str:
        return self.open(EncryptedPayload.parse(value))


_vault: CredentialVault | None = None


def get_vault() -> CredentialVault:
    global _vault
    if _vault is None:
        _vault = CredentialVault(settings.INTEGRATION_ENCRYPTION_KEY or "")
    return _vault


def encrypt(plaintext: str) -> str:
    return get_vault().encrypt(plaintext)


def decrypt(value: str) -> str:
    return get_vault().decrypt(value)
