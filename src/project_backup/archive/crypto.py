"""Password-based key derivation and AES-256-GCM sealing for archives.

The archive key is bound to both the user's password and an application
pepper: the password is first keyed through HMAC-SHA256 with the pepper,
then stretched with Argon2id over a per-archive salt.  Knowing the
password alone is not enough to decrypt an archive.

The pepper is a deployment secret.  Rotating or losing it makes every
archive created with the old value permanently undecryptable.
"""

import hashlib
import hmac
import os

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel

from project_backup.errors import DecryptionFailedError

NONCE_SIZE = 12     # AES-GCM nonce length
SALT_SIZE = 32      # Argon2 salt length
KEY_SIZE = 32       # AES-256

DEFAULT_PEPPER = b"infrantery:backup:v1:a9f2c8e1-4d7b-4f3a-b5e6-8c1d9e0f7a2b"


class Argon2Params(BaseModel):
    """Argon2id cost parameters.

    ``memory`` is in KiB.
    """

    memory: int = 64 * 1024
    iterations: int = 3
    parallelism: int = 2
    key_length: int = KEY_SIZE


DEFAULT_ARGON2_PARAMS = Argon2Params()


def generate_salt() -> bytes:
    """Create a cryptographically secure random salt."""
    return os.urandom(SALT_SIZE)


def generate_nonce() -> bytes:
    """Create a random AES-GCM nonce."""
    return os.urandom(NONCE_SIZE)


def derive_backup_key(
    password: str,
    pepper: bytes,
    salt: bytes,
    params: Argon2Params | None = None,
) -> bytes:
    """Derive an archive key from password, pepper and salt.

    Computes ``Argon2id(HMAC-SHA256(pepper, password), salt)``.  The
    result is never cached: every call pays the full Argon2id cost.

    Args:
        password: User-supplied archive password.
        pepper: Application pepper from deployment configuration.
        salt: Per-archive random salt.
        params: Argon2id cost parameters (defaults when ``None``).

    Returns:
        ``params.key_length`` bytes of key material.
    """
    if params is None:
        params = DEFAULT_ARGON2_PARAMS

    peppered = hmac.new(pepper, password.encode("utf-8"), hashlib.sha256).digest()

    return hash_secret_raw(
        secret=peppered,
        salt=salt,
        time_cost=params.iterations,
        memory_cost=params.memory,
        parallelism=params.parallelism,
        hash_len=params.key_length,
        type=Type.ID,
    )


def encrypt(plaintext: bytes, key: bytes) -> tuple[bytes, bytes]:
    """Seal ``plaintext`` with AES-256-GCM under a fresh random nonce.

    Returns:
        ``(nonce, ciphertext)`` where ciphertext carries the 16-byte tag.
    """
    nonce = generate_nonce()
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
    return nonce, ciphertext


def decrypt(ciphertext: bytes, key: bytes, nonce: bytes) -> bytes:
    """Open an AES-256-GCM ciphertext.

    Raises:
        DecryptionFailedError: If authentication fails (wrong key or
            modified ciphertext).
    """
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionFailedError(step="decrypt") from e
