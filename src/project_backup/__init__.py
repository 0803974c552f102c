"""project-backup: Encrypted, portable backup and restore of project graphs.

Serializes a project (diagrams, nodes, vault entries, notes and the
requesting member's keyrings) into a compressed, password-encrypted
``.infbk`` archive, and restores such an archive as a brand-new project
with regenerated identifiers.

Usage:
    from project_backup import BackupService, build_backup_service, get_adapter
    from project_backup import load_config, BackupError, DecryptionFailedError
"""

__version__ = "0.1.0"

# Adapters
from project_backup.adapters.base import DatabaseClient
from project_backup.adapters.postgres import AsyncPostgresAdapter

# Archive
from project_backup.archive.compression import ZstdCodec
from project_backup.archive.crypto import Argon2Params
from project_backup.archive.framing import build_archive, parse_archive

# Backup
from project_backup.backup.models import BackupPayload
from project_backup.backup.service import (
    BackupArchive,
    BackupService,
    BackupSummary,
    load_archive,
    summarize_payload,
)

# Config
from project_backup.config.loader import load_config
from project_backup.config.models import BackupConfig, DatabaseProfile

# Errors
from project_backup.errors import (
    BackupError,
    DecryptionFailedError,
    FormatInvalidError,
    PermissionDeniedError,
    SizeExceededError,
    StorageError,
    VersionUnsupportedError,
)

# Factory
from project_backup.factory import (
    ProfileNotFoundError,
    build_backup_service,
    get_adapter,
    resolve_url,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Archive
    "ZstdCodec",
    "Argon2Params",
    "build_archive",
    "parse_archive",
    # Backup
    "BackupPayload",
    "BackupArchive",
    "BackupService",
    "BackupSummary",
    "load_archive",
    "summarize_payload",
    # Config
    "load_config",
    "BackupConfig",
    "DatabaseProfile",
    # Errors
    "BackupError",
    "PermissionDeniedError",
    "SizeExceededError",
    "FormatInvalidError",
    "VersionUnsupportedError",
    "DecryptionFailedError",
    "StorageError",
    # Factory
    "get_adapter",
    "build_backup_service",
    "ProfileNotFoundError",
    "resolve_url",
]

# Optional: AsyncSupabaseAdapter (only available with supabase extra)
try:
    from project_backup.adapters.supabase import AsyncSupabaseAdapter

    __all__.append("AsyncSupabaseAdapter")
except ImportError:
    # supabase extra not installed -- AsyncSupabaseAdapter unavailable
    pass
