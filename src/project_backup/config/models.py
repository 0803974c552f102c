"""Pydantic models for backup configuration."""

from pydantic import BaseModel, Field

from project_backup.archive.crypto import DEFAULT_PEPPER, Argon2Params
from project_backup.backup.service import MAX_BACKUP_SIZE


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from backup.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # postgres | supabase
    key: str | None = None  # Supabase API key


class CryptoSettings(BaseModel):
    """Key derivation settings.

    ``pepper`` is a deployment secret.  Changing it makes every archive
    created under the previous value undecryptable.
    """

    pepper: str = DEFAULT_PEPPER.decode("utf-8")
    argon2_memory: int = 64 * 1024      # KiB
    argon2_iterations: int = 3
    argon2_parallelism: int = 2

    def argon2_params(self) -> Argon2Params:
        return Argon2Params(
            memory=self.argon2_memory,
            iterations=self.argon2_iterations,
            parallelism=self.argon2_parallelism,
        )

    def pepper_bytes(self) -> bytes:
        return self.pepper.encode("utf-8")


class BackupSettings(BaseModel):
    """Archive size and compression settings."""

    max_size: int = MAX_BACKUP_SIZE
    compression_level: int = 3


class BackupConfig(BaseModel):
    """Complete configuration from backup.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    backup: BackupSettings = Field(default_factory=BackupSettings)
    crypto: CryptoSettings = Field(default_factory=CryptoSettings)
