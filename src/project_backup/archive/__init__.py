"""Archive codec: compression, key derivation, AES-GCM and framing.

Usage:
    from project_backup.archive import ZstdCodec, build_archive, parse_archive
"""

from project_backup.archive.compression import CompressionError, ZstdCodec
from project_backup.archive.crypto import DEFAULT_PEPPER, Argon2Params, derive_backup_key
from project_backup.archive.framing import (
    HEADER_SIZE,
    MAGIC,
    ArchiveHeader,
    backup_filename,
    build_archive,
    parse_archive,
    read_header,
    sanitize_filename,
)

__all__ = [
    "ZstdCodec",
    "CompressionError",
    "Argon2Params",
    "DEFAULT_PEPPER",
    "derive_backup_key",
    "MAGIC",
    "HEADER_SIZE",
    "ArchiveHeader",
    "build_archive",
    "parse_archive",
    "read_header",
    "sanitize_filename",
    "backup_filename",
]
