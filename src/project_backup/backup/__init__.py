"""Project graph backup and restore.

Payload models, graph collection and graph restore.  The orchestrating
``BackupService`` lives in ``project_backup.backup.service`` (it depends
on ``project_backup.archive``, which in turn uses the payload models here).

Usage:
    from project_backup.backup import BackupPayload, collect_project_data, restore_project_graph
    from project_backup.backup.service import BackupService
"""

from project_backup.backup.collector import collect_project_data
from project_backup.backup.models import BACKUP_VERSION, BackupPayload
from project_backup.backup.restorer import (
    IdMap,
    PayloadValidation,
    restore_project_graph,
    validate_payload,
)

__all__ = [
    "BACKUP_VERSION",
    "BackupPayload",
    "IdMap",
    "PayloadValidation",
    "collect_project_data",
    "restore_project_graph",
    "validate_payload",
]
