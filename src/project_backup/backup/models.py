"""Portable backup payload models.

The payload is the JSON document sealed inside an archive.  All entity
references use portable hex identifiers rather than the storage layer's
native ``UUID`` values, and entity timestamps are RFC 3339 strings.

Usage:
    from project_backup.backup.models import BackupPayload

    payload = BackupPayload.from_json(raw)
    raw = payload.to_json()
"""

from datetime import datetime

from pydantic import BaseModel, Field

BACKUP_VERSION = 1


class ProjectBackup(BaseModel):
    """Portable representation of a project."""

    id: str
    name: str
    description: str = ""
    key_epoch: str = "0"
    created_at: str = ""
    updated_at: str = ""


class MemberKeyringBackup(BaseModel):
    """Portable copy of one keyring."""

    epoch: str
    secret_passphrase: str
    secret_signing_private_key: str
    signing_public_key: str


class MemberBackup(BaseModel):
    """The backing-up member's key material.

    Embedded so the restoring user can decrypt content right away.
    """

    public_key: str = ""
    encrypted_private_key: str = ""
    keyrings: list[MemberKeyringBackup] = Field(default_factory=list)


class DiagramBackup(BaseModel):
    """Portable representation of a diagram."""

    id: str
    parent_diagram_id: str | None = None
    diagram_name: str
    description: str = ""
    encrypted_data: str | None = None
    encrypted_data_signature: str = ""
    created_at: str = ""
    updated_at: str = ""


class NodeBackup(BaseModel):
    """Portable representation of a node."""

    id: str
    diagram_id: str
    encrypted_readme: str = ""
    encrypted_readme_signature: str = ""
    encrypted_dict: str = ""
    encrypted_dict_signature: str = ""
    created_at: str = ""
    updated_at: str = ""


class VaultBackup(BaseModel):
    """Portable representation of a node vault."""

    id: str
    node_id: str
    label: str
    type: str
    encrypted_value: str | None = None
    encrypted_value_signature: str | None = None
    created_at: str = ""
    updated_at: str = ""


class NoteBackup(BaseModel):
    """Portable representation of a note or folder."""

    id: str
    parent_id: str | None = None
    type: str
    file_name: str
    icon: str = ""
    encrypted_content: str | None = None
    encrypted_content_signature: str | None = None
    created_at: str = ""
    updated_at: str = ""


class BackupPayload(BaseModel):
    """Top-level document serialized before compression and encryption."""

    version: int = BACKUP_VERSION
    created_at: datetime
    project: ProjectBackup
    member: MemberBackup
    diagrams: list[DiagramBackup] = Field(default_factory=list)
    nodes: list[NodeBackup] = Field(default_factory=list)
    vaults: list[VaultBackup] = Field(default_factory=list)
    notes: list[NoteBackup] = Field(default_factory=list)

    def to_json(self) -> bytes:
        """Serialize to compact JSON bytes, omitting unset optionals."""
        return self.model_dump_json(exclude_none=True).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes | str) -> "BackupPayload":
        """Parse and validate a JSON document.

        Raises:
            pydantic.ValidationError: If the document does not match.
        """
        return cls.model_validate_json(data)

    def counts(self) -> dict[str, int]:
        """Entity counts keyed by collection name."""
        return {
            "diagrams": len(self.diagrams),
            "nodes": len(self.nodes),
            "vaults": len(self.vaults),
            "notes": len(self.notes),
            "keyrings": len(self.member.keyrings),
        }
