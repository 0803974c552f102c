"""Graph restore: rebuild a payload as a brand-new project.

Every entity receives a fresh identifier.  References are remapped
through an ``IdMap`` that is created per restore and threaded through
each step as a parameter, so the whole operation is stateless.

Entities are inserted parents-first: project, owner membership,
diagrams, nodes, vaults, notes.  Diagrams, nodes and notes use two
passes (allocate every new id, then insert) so that references inside
one collection resolve regardless of payload order.

The inserts are not wrapped in a transaction.  If a write fails part way
through, records created so far stay in storage and ``StorageError`` is
raised naming the failed step.

Usage:
    from project_backup.backup.restorer import restore_project_graph

    project = await restore_project_graph(payload, user_id, repositories=repos)
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from project_backup.backup.models import BackupPayload
from project_backup.domain.models import (
    ROLE_PRESETS,
    Diagram,
    Node,
    NodeVault,
    Note,
    Project,
    ProjectMember,
    ProjectMemberKeyring,
    utcnow,
)
from project_backup.errors import FormatInvalidError, StorageError
from project_backup.storage.ports import Repositories

logger = logging.getLogger(__name__)

OWNER_ROLE = "owner"
FOLDER_TYPE = "folder"
NOTE_TYPES = frozenset({"note", FOLDER_TYPE})


class IdMap:
    """Mapping from portable (backup) identifiers to new native ids.

    Example:
        id_map = IdMap()
        new_id = id_map.assign("65f0c0ffee...")
        assert id_map.resolve("65f0c0ffee...") == new_id
        assert id_map.resolve("unknown") is None
    """

    def __init__(self) -> None:
        self._ids: dict[str, UUID] = {}

    def assign(self, old_id: str) -> UUID:
        """Allocate and record a fresh identifier for ``old_id``."""
        new_id = uuid.uuid4()
        self._ids[old_id] = new_id
        return new_id

    def record(self, old_id: str, new_id: UUID) -> None:
        """Record an identifier chosen elsewhere (e.g. by storage)."""
        self._ids[old_id] = new_id

    def resolve(self, old_id: str | None) -> UUID | None:
        """New identifier for ``old_id``, or ``None`` when unmapped."""
        if old_id is None:
            return None
        return self._ids.get(old_id)

    def __contains__(self, old_id: object) -> bool:
        return old_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


# ============================================================================
# Validation
# ============================================================================


class PayloadValidation(BaseModel):
    """Result of checking a payload's internal references."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        if self.valid and not self.warnings:
            return "Backup payload valid"

        lines = ["Backup payload valid (with warnings):" if self.valid else "Backup payload invalid:"]
        if self.errors:
            lines.append(f"\n  Errors ({len(self.errors)}):")
            for error in self.errors:
                lines.append(f"    - {error}")
        if self.warnings:
            lines.append(f"\n  Warnings ({len(self.warnings)}):")
            for warning in self.warnings:
                lines.append(f"    - {warning}")
        return "\n".join(lines)


def validate_payload(payload: BackupPayload) -> PayloadValidation:
    """Check the references inside a payload before restoring it.

    Errors (restore refuses the payload):
      - an identifier used by more than one entity
      - a node whose diagram is not in the payload
      - a vault whose node is not in the payload
      - a note whose type is neither "note" nor "folder"

    Warnings (entity is restored at the root):
      - a diagram or note parent that is not in the payload
      - a note parent that is not a folder
    """
    errors: list[str] = []
    warnings: list[str] = []

    seen: set[str] = {payload.project.id}
    collections: list[tuple[str, list[Any]]] = [
        ("diagram", payload.diagrams),
        ("node", payload.nodes),
        ("vault", payload.vaults),
        ("note", payload.notes),
    ]
    for kind, entities in collections:
        for entity in entities:
            if entity.id in seen:
                errors.append(f"Duplicate identifier {entity.id} ({kind})")
            seen.add(entity.id)

    diagram_ids = {d.id for d in payload.diagrams}
    node_ids = {n.id for n in payload.nodes}
    note_types = {n.id: n.type for n in payload.notes}

    for d in payload.diagrams:
        if d.parent_diagram_id is not None and d.parent_diagram_id not in diagram_ids:
            warnings.append(
                f"Diagram '{d.diagram_name}': parent {d.parent_diagram_id} not in backup"
            )

    for n in payload.nodes:
        if n.diagram_id not in diagram_ids:
            errors.append(f"Node {n.id}: diagram {n.diagram_id} not in backup")

    for v in payload.vaults:
        if v.node_id not in node_ids:
            errors.append(f"Vault '{v.label}': node {v.node_id} not in backup")

    for n in payload.notes:
        if n.type not in NOTE_TYPES:
            errors.append(f"Note '{n.file_name}': unknown type {n.type!r}")
        if n.parent_id is None:
            continue
        parent_type = note_types.get(n.parent_id)
        if parent_type is None:
            warnings.append(f"Note '{n.file_name}': parent {n.parent_id} not in backup")
        elif parent_type != FOLDER_TYPE:
            warnings.append(
                f"Note '{n.file_name}': parent {n.parent_id} is a {parent_type}, not a folder"
            )

    return PayloadValidation(valid=not errors, errors=errors, warnings=warnings)


# ============================================================================
# Restore
# ============================================================================


async def _create(
    step: str,
    label: str,
    create: Callable[[Any], Awaitable[Any]],
    entity: Any,
) -> Any:
    """Run one repository ``create`` and wrap failures as ``StorageError``."""
    try:
        return await create(entity)
    except Exception as e:
        raise StorageError(f"creating {label}: {e}", step=step) from e


async def restore_project_graph(
    payload: BackupPayload,
    user_id: UUID,
    *,
    repositories: Repositories,
    id_map: IdMap | None = None,
) -> Project:
    """Insert a payload as a new project owned by ``user_id``.

    Args:
        payload: Decoded backup payload.
        user_id: Restoring user; becomes the sole owner.
        repositories: Storage ports.
        id_map: Map to fill with old -> new identifiers.  A fresh one is
            used when ``None``; pass one in to inspect the mapping.

    Returns:
        The newly created ``Project``.

    Raises:
        FormatInvalidError: If the payload has dangling required references.
        StorageError: If any insert fails.  Earlier inserts are kept.
    """
    if id_map is None:
        id_map = IdMap()

    validation = validate_payload(payload)
    if not validation.valid:
        raise FormatInvalidError(
            f"invalid backup payload: {'; '.join(validation.errors)}",
            step="validate",
        )
    for warning in validation.warnings:
        logger.warning(f"{warning}; restoring at root")

    # 1. Project
    new_project_id = id_map.assign(payload.project.id)
    now = utcnow()
    project = await _create(
        "create_project",
        "project",
        repositories.projects.create,
        Project(
            id=new_project_id,
            name=payload.project.name,
            description=payload.project.description,
            key_epoch=payload.project.key_epoch,
            created_at=now,
            updated_at=now,
        ),
    )

    # 2. Owner membership with the backed-up key material
    await _create(
        "create_member",
        "owner member",
        repositories.members.create,
        ProjectMember(
            project_id=new_project_id,
            user_id=user_id,
            role=OWNER_ROLE,
            permissions=list(ROLE_PRESETS[OWNER_ROLE]),
            public_key=payload.member.public_key,
            encrypted_private_key=payload.member.encrypted_private_key,
            keyrings=[
                ProjectMemberKeyring(
                    epoch=k.epoch,
                    secret_passphrase=k.secret_passphrase,
                    secret_signing_private_key=k.secret_signing_private_key,
                    signing_public_key=k.signing_public_key,
                )
                for k in payload.member.keyrings
            ],
            created_at=now,
            updated_at=now,
        ),
    )

    # 3. Diagrams: allocate every id first so parents resolve in any order
    for d in payload.diagrams:
        id_map.assign(d.id)

    diagram_ids = {d.id for d in payload.diagrams}
    for d in payload.diagrams:
        parent_id = (
            id_map.resolve(d.parent_diagram_id)
            if d.parent_diagram_id in diagram_ids
            else None
        )
        await _create(
            "create_diagram",
            f"diagram {d.diagram_name!r}",
            repositories.diagrams.create,
            Diagram(
                id=id_map.resolve(d.id),
                project_id=new_project_id,
                parent_diagram_id=parent_id,
                diagram_name=d.diagram_name,
                description=d.description,
                encrypted_data=d.encrypted_data,
                encrypted_data_signature=d.encrypted_data_signature,
                created_at=now,
                updated_at=now,
            ),
        )

    # 4. Nodes
    for n in payload.nodes:
        id_map.assign(n.id)

    for n in payload.nodes:
        await _create(
            "create_node",
            "node",
            repositories.nodes.create,
            Node(
                id=id_map.resolve(n.id),
                diagram_id=id_map.resolve(n.diagram_id),
                encrypted_readme=n.encrypted_readme,
                encrypted_readme_signature=n.encrypted_readme_signature,
                encrypted_dict=n.encrypted_dict,
                encrypted_dict_signature=n.encrypted_dict_signature,
                created_at=now,
                updated_at=now,
            ),
        )

    # 5. Vaults: storage assigns the id
    for v in payload.vaults:
        created = await _create(
            "create_vault",
            f"vault {v.label!r}",
            repositories.vaults.create,
            NodeVault(
                project_id=new_project_id,
                node_id=id_map.resolve(v.node_id),
                label=v.label,
                type=v.type,
                encrypted_value=v.encrypted_value,
                encrypted_value_signature=v.encrypted_value_signature,
                created_at=now,
                updated_at=now,
            ),
        )
        if created.id is not None:
            id_map.record(v.id, created.id)

    # 6. Notes: only folders may be parents
    for n in payload.notes:
        id_map.assign(n.id)

    folder_ids = {n.id for n in payload.notes if n.type == FOLDER_TYPE}
    for n in payload.notes:
        parent_id = id_map.resolve(n.parent_id) if n.parent_id in folder_ids else None
        await _create(
            "create_note",
            f"note {n.file_name!r}",
            repositories.notes.create,
            Note(
                id=id_map.resolve(n.id),
                project_id=new_project_id,
                parent_id=parent_id,
                type=n.type,
                file_name=n.file_name,
                icon=n.icon,
                encrypted_content=n.encrypted_content,
                encrypted_content_signature=n.encrypted_content_signature,
                created_at=now,
                updated_at=now,
            ),
        )

    logger.info(
        f"Restored project {new_project_id} for user {user_id}: "
        f"{len(payload.diagrams)} diagrams, {len(payload.nodes)} nodes, "
        f"{len(payload.vaults)} vaults, {len(payload.notes)} notes"
    )
    return project
