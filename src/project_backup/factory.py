"""Startup wiring: adapters from profiles and the backup service.

The compression codec is constructed once here and injected into the
service, so every backup and restore shares one instance.

Usage:
    config = load_config()
    adapter = get_adapter(config, profile_name="local")
    service = build_backup_service(config, adapter)
"""

import os
from urllib.parse import quote

from project_backup.adapters.base import DatabaseClient
from project_backup.adapters.postgres import AsyncPostgresAdapter
from project_backup.archive.compression import ZstdCodec
from project_backup.backup.service import BackupService
from project_backup.config.models import BackupConfig, DatabaseProfile
from project_backup.storage.repositories import (
    JSONB_COLUMNS,
    MemberPermissionGate,
    build_repositories,
)

PROFILE_ENV_VAR = "PROJECT_BACKUP_PROFILE"


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_active_profile_name(
    config: BackupConfig,
    profile_name: str | None = None,
    env_prefix: str = "",
) -> str:
    """Pick the profile to use.

    Priority:
    1. Explicit ``profile_name``
    2. ``{env_prefix}PROJECT_BACKUP_PROFILE`` env var
    3. The only profile, when exactly one is configured

    Raises:
        ProfileNotFoundError: If no profile can be determined or the
            chosen one is not configured.
    """
    name = profile_name or os.environ.get(f"{env_prefix}{PROFILE_ENV_VAR}")
    if name is None and len(config.profiles) == 1:
        name = next(iter(config.profiles))

    if name is None:
        raise ProfileNotFoundError(
            "No database profile selected.\n"
            f"Pass --profile or set {env_prefix}{PROFILE_ENV_VAR}.\n"
            f"Available profiles: {', '.join(config.profiles) or '(none)'}"
        )
    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found. "
            f"Available: {', '.join(config.profiles) or '(none)'}"
        )
    return name


def get_adapter(
    config: BackupConfig,
    profile_name: str | None = None,
    env_prefix: str = "",
) -> DatabaseClient:
    """Create the database adapter for the active profile."""
    name = get_active_profile_name(config, profile_name, env_prefix)
    profile = config.profiles[name]

    if profile.provider == "supabase":
        from project_backup.adapters.supabase import AsyncSupabaseAdapter

        return AsyncSupabaseAdapter(url=profile.url, key=profile.key or "")

    return AsyncPostgresAdapter(resolve_url(profile), jsonb_columns=JSONB_COLUMNS)


def build_codec(config: BackupConfig) -> ZstdCodec:
    """Construct the compression codec shared by every operation of a process."""
    return ZstdCodec(level=config.backup.compression_level)


def build_backup_service(
    config: BackupConfig,
    client: DatabaseClient,
    codec: ZstdCodec | None = None,
) -> BackupService:
    """Wire repositories, permission gate and codec into a ``BackupService``.

    Args:
        config: Loaded configuration.
        client: Database adapter shared by all repositories.
        codec: Shared codec; one is constructed when ``None``.
    """
    if codec is None:
        codec = build_codec(config)

    repositories = build_repositories(client)
    return BackupService(
        repositories,
        MemberPermissionGate(repositories.members),
        codec,
        pepper=config.crypto.pepper_bytes(),
        argon2_params=config.crypto.argon2_params(),
        max_backup_size=config.backup.max_size,
    )
