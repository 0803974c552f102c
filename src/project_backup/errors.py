"""Error taxonomy for backup and restore.

Every failure raised by ``BackupService`` is exactly one of the
``BackupError`` subclasses below.  The optional ``step`` names the stage
that failed and is meant for logs, not for end users.

Usage:
    from project_backup.errors import BackupError, DecryptionFailedError

    try:
        project = await service.restore_backup(user_id, password, upload)
    except DecryptionFailedError:
        ...  # wrong password or tampered file
    except BackupError as e:
        logger.error(f"restore failed at {e.step}: {e}")
"""


class BackupError(Exception):
    """Base class for backup and restore failures."""

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message)
        self.step = step


class PermissionDeniedError(BackupError):
    """Raised when the requesting user may not back up the project."""

    pass


class SizeExceededError(BackupError):
    """Raised when a restore input is larger than the configured cap."""

    pass


class FormatInvalidError(BackupError):
    """Raised for truncated input, bad magic, or an undecodable payload."""

    pass


class VersionUnsupportedError(BackupError):
    """Raised when the archive format version byte is not supported."""

    pass


class DecryptionFailedError(BackupError):
    """Raised when AES-GCM authentication fails.

    Wrong password and corrupted or tampered files are
    indistinguishable.
    """

    def __init__(
        self,
        message: str = "decryption failed: wrong password or corrupted file",
        *,
        step: str | None = None,
    ) -> None:
        super().__init__(message, step=step)


class StorageError(BackupError):
    """Raised when a storage collaborator read or write fails."""

    pass
