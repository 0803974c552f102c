"""Storage collaborators: repository ports and ``DatabaseClient`` implementations."""

from project_backup.storage.ports import (
    DiagramRepository,
    NodeRepository,
    NodeVaultRepository,
    NoteRepository,
    PermissionGate,
    ProjectMemberRepository,
    ProjectRepository,
    Repositories,
)
from project_backup.storage.repositories import (
    JSONB_COLUMNS,
    MemberPermissionGate,
    build_repositories,
)

__all__ = [
    "ProjectRepository",
    "ProjectMemberRepository",
    "DiagramRepository",
    "NodeRepository",
    "NodeVaultRepository",
    "NoteRepository",
    "PermissionGate",
    "Repositories",
    "JSONB_COLUMNS",
    "MemberPermissionGate",
    "build_repositories",
]
