"""Archive framing: header layout, build and parse.

Archive layout (bit-exact)::

    offset  length  field
    0       5       magic "INFBK"
    5       1       format version
    6       12      AES-GCM nonce
    18      32      Argon2id salt
    50      rest    AES-256-GCM ciphertext (tag appended)

The ciphertext seals the zstd-compressed JSON of a ``BackupPayload``.

Usage:
    from project_backup.archive.framing import build_archive, parse_archive

    blob = build_archive(payload, "CorrectHorse1", codec=codec, pepper=pepper)
    payload = parse_archive(blob, "CorrectHorse1", codec=codec, pepper=pepper)
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from pydantic import ValidationError

from project_backup.archive.compression import CompressionError, ZstdCodec
from project_backup.archive.crypto import (
    NONCE_SIZE,
    SALT_SIZE,
    Argon2Params,
    decrypt,
    derive_backup_key,
    encrypt,
    generate_salt,
)
from project_backup.backup.models import BACKUP_VERSION, BackupPayload
from project_backup.errors import FormatInvalidError, VersionUnsupportedError

logger = logging.getLogger(__name__)

MAGIC = b"INFBK"
FORMAT_VERSION = BACKUP_VERSION
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})

# magic(5) + version(1) + nonce(12) + salt(32) = 50 bytes
HEADER_SIZE = len(MAGIC) + 1 + NONCE_SIZE + SALT_SIZE

FILE_EXTENSION = ".infbk"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


@dataclass(frozen=True)
class ArchiveHeader:
    """Fixed-size archive header."""

    version: int
    nonce: bytes
    salt: bytes

    def pack(self) -> bytes:
        """Encode the header as its 50-byte wire form."""
        return MAGIC + bytes([self.version]) + self.nonce + self.salt

    @classmethod
    def unpack(cls, data: bytes) -> "ArchiveHeader":
        """Decode and validate the header at the start of ``data``.

        Raises:
            FormatInvalidError: If ``data`` is shorter than the header or
                does not start with the magic bytes.
            VersionUnsupportedError: If the version byte is unknown.
        """
        if len(data) < HEADER_SIZE:
            raise FormatInvalidError(
                f"archive is {len(data)} bytes, header needs {HEADER_SIZE}",
                step="header",
            )

        if data[: len(MAGIC)] != MAGIC:
            raise FormatInvalidError("archive magic mismatch", step="header")

        version = data[len(MAGIC)]
        if version not in SUPPORTED_VERSIONS:
            raise VersionUnsupportedError(
                f"unsupported backup version {version}", step="header"
            )

        offset = len(MAGIC) + 1
        nonce = data[offset:offset + NONCE_SIZE]
        offset += NONCE_SIZE
        salt = data[offset:offset + SALT_SIZE]
        return cls(version=version, nonce=bytes(nonce), salt=bytes(salt))


def read_header(data: bytes) -> ArchiveHeader:
    """Validate and return the header of an archive without decrypting it."""
    return ArchiveHeader.unpack(data)


def build_archive(
    payload: BackupPayload,
    password: str,
    *,
    codec: ZstdCodec,
    pepper: bytes,
    params: Argon2Params | None = None,
) -> bytes:
    """Serialize, compress, encrypt and frame a payload.

    Args:
        payload: Collected project graph.
        password: Archive password.
        codec: Shared compression codec.
        pepper: Application pepper.
        params: Argon2id cost parameters.

    Returns:
        Complete archive bytes.
    """
    json_data = payload.to_json()
    compressed = codec.compress(json_data)

    salt = generate_salt()
    key = derive_backup_key(password, pepper, salt, params)
    nonce, ciphertext = encrypt(compressed, key)

    header = ArchiveHeader(version=FORMAT_VERSION, nonce=nonce, salt=salt)
    archive = header.pack() + ciphertext

    logger.debug(
        f"Built archive: json={len(json_data)}B compressed={len(compressed)}B "
        f"archive={len(archive)}B"
    )
    return archive


def parse_archive(
    data: bytes,
    password: str,
    *,
    codec: ZstdCodec,
    pepper: bytes,
    params: Argon2Params | None = None,
) -> BackupPayload:
    """Validate, decrypt, decompress and decode an archive.

    Raises:
        FormatInvalidError: Truncated input, bad magic, or a body that does
            not decompress or decode into a ``BackupPayload``.
        VersionUnsupportedError: Unknown format version.
        DecryptionFailedError: Wrong password or tampered ciphertext.
    """
    header = ArchiveHeader.unpack(data)
    ciphertext = bytes(data[HEADER_SIZE:])

    key = derive_backup_key(password, pepper, header.salt, params)
    compressed = decrypt(ciphertext, key, header.nonce)

    try:
        json_data = codec.decompress(compressed)
    except CompressionError as e:
        raise FormatInvalidError(f"decompressing backup: {e}", step="decompress") from e

    try:
        return BackupPayload.from_json(json_data)
    except ValidationError as e:
        raise FormatInvalidError(
            f"decoding backup payload: {e.error_count()} validation errors",
            step="decode",
        ) from e


def sanitize_filename(name: str) -> str:
    """Reduce a project name to a safe filename stem.

    Keeps ASCII letters, digits, ``-`` and ``_``; spaces become ``_``;
    everything else is dropped.  An empty result becomes ``"backup"``.

    Example:
        >>> sanitize_filename("My Project! #1")
        'My_Project_1'
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", name.replace(" ", "_"))
    return cleaned or "backup"


def backup_filename(project_name: str, now: datetime | None = None) -> str:
    """Suggested archive filename: ``<name>_<YYYYMMDD_HHMMSS>.infbk``."""
    if now is None:
        now = datetime.now()
    return f"{sanitize_filename(project_name)}_{now.strftime('%Y%m%d_%H%M%S')}{FILE_EXTENSION}"
