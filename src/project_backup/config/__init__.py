"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from project_backup.config import load_config, BackupConfig, DatabaseProfile
"""

from project_backup.config.loader import load_config
from project_backup.config.models import (
    BackupConfig,
    BackupSettings,
    CryptoSettings,
    DatabaseProfile,
)

__all__ = [
    "load_config",
    "BackupConfig",
    "BackupSettings",
    "CryptoSettings",
    "DatabaseProfile",
]
