"""Storage-native project graph models and permission presets."""

from project_backup.domain.models import (
    PERMISSION_MANAGE_PROJECT,
    ROLE_PRESETS,
    Diagram,
    Node,
    NodeVault,
    Note,
    Project,
    ProjectMember,
    ProjectMemberKeyring,
)

__all__ = [
    "PERMISSION_MANAGE_PROJECT",
    "ROLE_PRESETS",
    "Project",
    "ProjectMember",
    "ProjectMemberKeyring",
    "Diagram",
    "Node",
    "NodeVault",
    "Note",
]
