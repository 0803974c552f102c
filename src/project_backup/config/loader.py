"""Configuration loader for backup.toml.

Reads database profiles and backup/crypto settings from a TOML file.
The pepper may be supplied from the environment instead of the file so
it can be injected as a deployment secret.
"""

import os
import tomllib
from pathlib import Path

from project_backup.config.models import (
    BackupConfig,
    BackupSettings,
    CryptoSettings,
    DatabaseProfile,
)

CONFIG_FILENAME = "backup.toml"
PEPPER_ENV_VAR = "PROJECT_BACKUP_PEPPER"


def load_config(config_path: Path | None = None, env_prefix: str = "") -> BackupConfig:
    """Load backup configuration from TOML file.

    Args:
        config_path: Path to backup.toml (default: ``backup.toml`` in the
            current working directory).
        env_prefix: Prefix for environment lookups, e.g. ``"APP_"`` reads
            ``APP_PROJECT_BACKUP_PEPPER``.

    Returns:
        BackupConfig with all profiles and settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Backup config not found: {config_path}\n"
            f"Create {CONFIG_FILENAME} with at least one profiles.<name> table."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    crypto_data = dict(data.get("crypto", {}))
    env_pepper = os.environ.get(f"{env_prefix}{PEPPER_ENV_VAR}")
    if env_pepper:
        crypto_data["pepper"] = env_pepper

    return BackupConfig(
        profiles=profiles,
        backup=BackupSettings(**data.get("backup", {})),
        crypto=CryptoSettings(**crypto_data),
    )
