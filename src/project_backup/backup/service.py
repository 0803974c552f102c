"""Backup/restore orchestration.

``BackupService`` composes permission checks, graph collection, archive
framing and graph restore into the two public operations:

- ``create_backup``: permission check -> collect -> JSON -> compress ->
  derive key -> encrypt -> frame.
- ``restore_backup``: size check -> de-frame -> derive key -> decrypt ->
  decompress -> JSON -> restore with new identifiers.

Failures surface as exactly one ``BackupError`` subclass.  Nothing is
retried; callers re-invoke explicitly.

Usage:
    service = BackupService(repos, gate, codec, pepper=pepper)

    archive = await service.create_backup(project_id, user_id, "CorrectHorse1")
    Path(archive.filename).write_bytes(archive.content)

    with open(path, "rb") as f:
        project = await service.restore_backup(user_id, "CorrectHorse1", f)
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO
from uuid import UUID

from project_backup.archive.compression import ZstdCodec
from project_backup.archive.crypto import DEFAULT_ARGON2_PARAMS, Argon2Params
from project_backup.archive.framing import backup_filename, build_archive, parse_archive
from project_backup.backup.collector import collect_project_data
from project_backup.backup.models import BackupPayload
from project_backup.backup.restorer import (
    IdMap,
    PayloadValidation,
    restore_project_graph,
    validate_payload,
)
from project_backup.domain.models import PERMISSION_MANAGE_PROJECT, Project
from project_backup.errors import (
    BackupError,
    PermissionDeniedError,
    SizeExceededError,
    StorageError,
)
from project_backup.storage.ports import PermissionGate, Repositories

logger = logging.getLogger(__name__)

# Maximum accepted archive size on restore (100 MiB)
MAX_BACKUP_SIZE = 100 * 1024 * 1024


@dataclass(frozen=True)
class BackupArchive:
    """A finished archive and its suggested download filename."""

    content: bytes
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class BackupSummary:
    """What an archive contains, without restoring it."""

    version: int
    created_at: datetime
    project_name: str
    counts: dict[str, int]
    validation: PayloadValidation


def read_limited(source: bytes | BinaryIO, limit: int) -> bytes:
    """Read at most ``limit`` bytes from ``source``.

    Accepts raw bytes or a binary file-like object.  Never buffers more
    than ``limit`` bytes.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source[:limit])

    chunks: list[bytes] = []
    remaining = limit
    while remaining > 0:
        chunk = source.read(min(remaining, 1024 * 1024))
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def load_archive(
    source: bytes | BinaryIO,
    password: str,
    *,
    codec: ZstdCodec,
    pepper: bytes,
    params: Argon2Params | None = None,
    max_size: int = MAX_BACKUP_SIZE,
) -> BackupPayload:
    """Size-check, then parse an archive into its payload.

    At most ``max_size + 1`` bytes are read, so oversized input is
    rejected before any key derivation or decryption.

    Raises:
        SizeExceededError: Input larger than ``max_size``.
        StorageError: The source could not be read.
        FormatInvalidError, VersionUnsupportedError, DecryptionFailedError:
            From ``parse_archive``.
    """
    try:
        data = read_limited(source, max_size + 1)
    except OSError as e:
        raise StorageError(f"reading backup file: {e}", step="read") from e

    if len(data) > max_size:
        raise SizeExceededError(
            f"backup file exceeds maximum allowed size of {max_size} bytes",
            step="read",
        )

    try:
        return parse_archive(data, password, codec=codec, pepper=pepper, params=params)
    except BackupError as e:
        logger.warning(f"Rejected backup archive at {e.step}: {type(e).__name__}")
        raise


def summarize_payload(payload: BackupPayload) -> BackupSummary:
    """Describe a decoded payload."""
    return BackupSummary(
        version=payload.version,
        created_at=payload.created_at,
        project_name=payload.project.name,
        counts=payload.counts(),
        validation=validate_payload(payload),
    )


class BackupService:
    """Creates and restores encrypted project archives.

    Args:
        repositories: Storage ports for the project graph.
        permission_gate: Permission check for backup creation.
        codec: Shared compression codec, constructed once at startup.
        pepper: Application pepper mixed into key derivation.
        argon2_params: Argon2id cost parameters.
        max_backup_size: Largest archive accepted by restore.
    """

    def __init__(
        self,
        repositories: Repositories,
        permission_gate: PermissionGate,
        codec: ZstdCodec,
        *,
        pepper: bytes,
        argon2_params: Argon2Params = DEFAULT_ARGON2_PARAMS,
        max_backup_size: int = MAX_BACKUP_SIZE,
    ) -> None:
        self.repositories = repositories
        self.permission_gate = permission_gate
        self.codec = codec
        self._pepper = pepper
        self.argon2_params = argon2_params
        self.max_backup_size = max_backup_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create_backup(
        self,
        project_id: UUID,
        user_id: UUID,
        password: str,
    ) -> BackupArchive:
        """Collect, serialize, compress and encrypt a project.

        Requires the ``manage_project`` permission.

        Raises:
            PermissionDeniedError: If the user may not manage the project.
            StorageError: If any read fails.
        """
        await self._require_permission(project_id, user_id, PERMISSION_MANAGE_PROJECT)

        try:
            member = await self.repositories.members.find_by_project_and_user(
                project_id, user_id
            )
        except Exception as e:
            raise StorageError(f"fetching member for backup: {e}", step="fetch_member") from e
        if member is None:
            raise PermissionDeniedError(
                f"user {user_id} is not a member of project {project_id}",
                step="fetch_member",
            )

        payload = await collect_project_data(
            project_id, member, repositories=self.repositories
        )

        content = await asyncio.to_thread(
            build_archive,
            payload,
            password,
            codec=self.codec,
            pepper=self._pepper,
            params=self.argon2_params,
        )
        filename = backup_filename(payload.project.name)

        logger.info(
            f"Created backup of project {project_id} for user {user_id}: "
            f"{filename} ({len(content)} bytes)"
        )
        return BackupArchive(content=content, filename=filename)

    async def restore_backup(
        self,
        user_id: UUID,
        password: str,
        source: bytes | BinaryIO,
    ) -> Project:
        """Decrypt an archive and insert it as a new project.

        Any authenticated user may restore; they become the sole owner.

        Raises:
            SizeExceededError: Input larger than ``max_backup_size``.
            FormatInvalidError: Truncated, malformed or undecodable input.
            VersionUnsupportedError: Unknown format version.
            DecryptionFailedError: Wrong password or tampered file.
            StorageError: A write failed (earlier writes are kept).
        """
        payload = await self._load_payload(password, source)
        project = await restore_project_graph(
            payload, user_id, repositories=self.repositories, id_map=IdMap()
        )
        return project

    async def inspect_backup(
        self,
        password: str,
        source: bytes | BinaryIO,
    ) -> BackupSummary:
        """Decrypt an archive and describe it without writing anything."""
        payload = await self._load_payload(password, source)
        return summarize_payload(payload)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_permission(
        self, project_id: UUID, user_id: UUID, permission: str
    ) -> None:
        try:
            allowed = await self.permission_gate.has_permission(
                project_id, user_id, permission
            )
        except Exception as e:
            raise StorageError(f"checking permission: {e}", step="permission") from e
        if not allowed:
            raise PermissionDeniedError(
                f"user {user_id} lacks {permission} on project {project_id}",
                step="permission",
            )

    async def _load_payload(self, password: str, source: bytes | BinaryIO) -> BackupPayload:
        return await asyncio.to_thread(
            load_archive,
            source,
            password,
            codec=self.codec,
            pepper=self._pepper,
            params=self.argon2_params,
            max_size=self.max_backup_size,
        )
