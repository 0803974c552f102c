"""Storage-native project graph models.

These mirror the records held by the storage layer.  Identifiers are
native ``UUID`` values; the backup payload uses their hex form instead.
"""

from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


# ============================================================================
# Permissions
# ============================================================================

PERMISSION_VIEW_DIAGRAM = "view_diagram"
PERMISSION_EDIT_DIAGRAM = "edit_diagram"
PERMISSION_VIEW_NOTE = "view_note"
PERMISSION_EDIT_NOTE = "edit_note"
PERMISSION_VIEW_VAULT = "view_vault"
PERMISSION_EDIT_VAULT = "edit_vault"
PERMISSION_MANAGE_PROJECT = "manage_project"

ROLE_PRESETS: dict[str, list[str]] = {
    "owner": [
        PERMISSION_VIEW_DIAGRAM, PERMISSION_EDIT_DIAGRAM,
        PERMISSION_VIEW_NOTE, PERMISSION_EDIT_NOTE,
        PERMISSION_VIEW_VAULT, PERMISSION_EDIT_VAULT,
        PERMISSION_MANAGE_PROJECT,
    ],
    "editor": [
        PERMISSION_VIEW_DIAGRAM, PERMISSION_EDIT_DIAGRAM,
        PERMISSION_VIEW_NOTE, PERMISSION_EDIT_NOTE,
        PERMISSION_VIEW_VAULT,
    ],
    "viewer": [
        PERMISSION_VIEW_DIAGRAM,
        PERMISSION_VIEW_NOTE,
    ],
}

NoteType = Literal["note", "folder"]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# ============================================================================
# Entities
# ============================================================================


class Project(BaseModel):
    """A project, the root of the graph."""

    id: UUID
    name: str
    description: str = ""
    key_epoch: str = "0"        # key-rotation generation marker
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ProjectMemberKeyring(BaseModel):
    """A member's encrypted key material for one key epoch."""

    epoch: str
    secret_passphrase: str
    secret_signing_private_key: str
    signing_public_key: str


class ProjectMember(BaseModel):
    """Membership of a user in a project, with their key material."""

    project_id: UUID
    user_id: UUID
    role: str = ""
    permissions: list[str] = Field(default_factory=list)
    public_key: str = ""
    encrypted_private_key: str = ""
    keyrings: list[ProjectMemberKeyring] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Diagram(BaseModel):
    """A diagram; diagrams nest through ``parent_diagram_id``."""

    id: UUID
    project_id: UUID
    parent_diagram_id: UUID | None = None
    diagram_name: str
    description: str = ""
    encrypted_data: str | None = None
    encrypted_data_signature: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Node(BaseModel):
    """A node placed on a diagram."""

    id: UUID
    diagram_id: UUID
    encrypted_readme: str = ""
    encrypted_readme_signature: str = ""
    encrypted_dict: str = ""
    encrypted_dict_signature: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class NodeVault(BaseModel):
    """A secret attached to a node.

    ``project_id`` duplicates the node's project so permission checks do
    not need to walk node -> diagram -> project.  ``id`` is assigned by
    storage on insert.
    """

    id: UUID | None = None
    project_id: UUID
    node_id: UUID
    label: str
    type: str
    encrypted_value: str | None = None
    encrypted_value_signature: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Note(BaseModel):
    """A note or folder in the project's note tree."""

    id: UUID
    project_id: UUID
    parent_id: UUID | None = None
    type: NoteType = "note"
    file_name: str
    icon: str = ""
    encrypted_content: str | None = None
    encrypted_content_signature: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
