"""Graph collection: read a whole project into a ``BackupPayload``.

Collection is all-or-nothing.  Every read goes through the repository
ports; any failure aborts with ``StorageError`` naming the step, and no
partial payload is ever returned.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from project_backup.backup.models import (
    BACKUP_VERSION,
    BackupPayload,
    DiagramBackup,
    MemberBackup,
    MemberKeyringBackup,
    NodeBackup,
    NoteBackup,
    ProjectBackup,
    VaultBackup,
)
from project_backup.domain.models import (
    Diagram,
    Node,
    NodeVault,
    Note,
    Project,
    ProjectMember,
)
from project_backup.errors import StorageError
from project_backup.storage.ports import Repositories

logger = logging.getLogger(__name__)


def format_timestamp(value: datetime) -> str:
    """RFC 3339 timestamp with second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec="seconds").replace("+00:00", "Z")


def portable_id(value: UUID) -> str:
    """Native identifier -> portable hex string."""
    return value.hex


# ============================================================================
# Domain -> Backup converters
# ============================================================================


def to_project_backup(project: Project) -> ProjectBackup:
    return ProjectBackup(
        id=portable_id(project.id),
        name=project.name,
        description=project.description,
        key_epoch=project.key_epoch,
        created_at=format_timestamp(project.created_at),
        updated_at=format_timestamp(project.updated_at),
    )


def to_member_backup(member: ProjectMember) -> MemberBackup:
    return MemberBackup(
        public_key=member.public_key,
        encrypted_private_key=member.encrypted_private_key,
        keyrings=[
            MemberKeyringBackup(
                epoch=k.epoch,
                secret_passphrase=k.secret_passphrase,
                secret_signing_private_key=k.secret_signing_private_key,
                signing_public_key=k.signing_public_key,
            )
            for k in member.keyrings
        ],
    )


def to_diagram_backups(diagrams: list[Diagram]) -> list[DiagramBackup]:
    return [
        DiagramBackup(
            id=portable_id(d.id),
            parent_diagram_id=(
                portable_id(d.parent_diagram_id) if d.parent_diagram_id else None
            ),
            diagram_name=d.diagram_name,
            description=d.description,
            encrypted_data=d.encrypted_data,
            encrypted_data_signature=d.encrypted_data_signature,
            created_at=format_timestamp(d.created_at),
            updated_at=format_timestamp(d.updated_at),
        )
        for d in diagrams
    ]


def to_node_backups(nodes: list[Node]) -> list[NodeBackup]:
    return [
        NodeBackup(
            id=portable_id(n.id),
            diagram_id=portable_id(n.diagram_id),
            encrypted_readme=n.encrypted_readme,
            encrypted_readme_signature=n.encrypted_readme_signature,
            encrypted_dict=n.encrypted_dict,
            encrypted_dict_signature=n.encrypted_dict_signature,
            created_at=format_timestamp(n.created_at),
            updated_at=format_timestamp(n.updated_at),
        )
        for n in nodes
    ]


def to_vault_backups(vaults: list[NodeVault]) -> list[VaultBackup]:
    # Stored vaults always carry an id
    return [
        VaultBackup(
            id=portable_id(v.id),
            node_id=portable_id(v.node_id),
            label=v.label,
            type=v.type,
            encrypted_value=v.encrypted_value,
            encrypted_value_signature=v.encrypted_value_signature,
            created_at=format_timestamp(v.created_at),
            updated_at=format_timestamp(v.updated_at),
        )
        for v in vaults
    ]


def to_note_backups(notes: list[Note]) -> list[NoteBackup]:
    return [
        NoteBackup(
            id=portable_id(n.id),
            parent_id=portable_id(n.parent_id) if n.parent_id else None,
            type=n.type,
            file_name=n.file_name,
            icon=n.icon,
            encrypted_content=n.encrypted_content,
            encrypted_content_signature=n.encrypted_content_signature,
            created_at=format_timestamp(n.created_at),
            updated_at=format_timestamp(n.updated_at),
        )
        for n in notes
    ]


# ============================================================================
# Collection
# ============================================================================


async def collect_project_data(
    project_id: UUID,
    member: ProjectMember,
    *,
    repositories: Repositories,
) -> BackupPayload:
    """Read the full project graph into a portable payload.

    Fetches the project, every diagram (no pagination), all nodes of those
    diagrams in one bulk lookup, all vaults and all notes.

    Args:
        project_id: Project to back up.
        member: The requesting member; their key material is embedded.
        repositories: Storage ports.

    Returns:
        The collected ``BackupPayload``.

    Raises:
        StorageError: If the project is missing or any read fails.
    """
    try:
        project = await repositories.projects.find_by_id(project_id)
    except Exception as e:
        raise StorageError(f"fetching project: {e}", step="fetch_project") from e
    if project is None:
        raise StorageError(f"project {project_id} not found", step="fetch_project")

    try:
        diagrams = await repositories.diagrams.find_all_by_project_id(project_id)
    except Exception as e:
        raise StorageError(f"fetching diagrams: {e}", step="fetch_diagrams") from e

    nodes: list[Node] = []
    if diagrams:
        diagram_ids = [d.id for d in diagrams]
        try:
            nodes = await repositories.nodes.find_by_diagram_ids(diagram_ids)
        except Exception as e:
            raise StorageError(f"fetching nodes: {e}", step="fetch_nodes") from e

    try:
        vaults = await repositories.vaults.find_by_project_id(project_id)
    except Exception as e:
        raise StorageError(f"fetching vaults: {e}", step="fetch_vaults") from e

    try:
        notes = await repositories.notes.find_by_project_id(project_id)
    except Exception as e:
        raise StorageError(f"fetching notes: {e}", step="fetch_notes") from e

    logger.debug(
        f"Collected project {project_id}: {len(diagrams)} diagrams, "
        f"{len(nodes)} nodes, {len(vaults)} vaults, {len(notes)} notes"
    )

    return BackupPayload(
        version=BACKUP_VERSION,
        created_at=datetime.now(timezone.utc),
        project=to_project_backup(project),
        member=to_member_backup(member),
        diagrams=to_diagram_backups(diagrams),
        nodes=to_node_backups(nodes),
        vaults=to_vault_backups(vaults),
        notes=to_note_backups(notes),
    )
