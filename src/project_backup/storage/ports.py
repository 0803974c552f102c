"""Storage collaborator interfaces consumed by backup and restore.

The backup engine only reads and creates records; it is agnostic to the
storage technology behind these Protocols.  All methods are async.

``find_*`` methods return ``None`` (single record) or an empty list when
nothing matches and raise on storage failure.  ``create`` returns the
stored record, including any identifier assigned by storage.

Usage:
    from project_backup.storage.ports import Repositories

    repos = Repositories(
        projects=..., members=..., diagrams=...,
        nodes=..., vaults=..., notes=...,
    )
"""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from project_backup.domain.models import (
    Diagram,
    Node,
    NodeVault,
    Note,
    Project,
    ProjectMember,
)


class ProjectRepository(Protocol):
    async def find_by_id(self, project_id: UUID) -> Project | None: ...

    async def create(self, project: Project) -> Project: ...


class ProjectMemberRepository(Protocol):
    async def find_by_project_and_user(
        self, project_id: UUID, user_id: UUID
    ) -> ProjectMember | None: ...

    async def create(self, member: ProjectMember) -> ProjectMember: ...


class DiagramRepository(Protocol):
    async def find_all_by_project_id(self, project_id: UUID) -> list[Diagram]:
        """Every diagram of the project, unpaginated."""
        ...

    async def create(self, diagram: Diagram) -> Diagram: ...


class NodeRepository(Protocol):
    async def find_by_diagram_ids(self, diagram_ids: list[UUID]) -> list[Node]:
        """Bulk lookup of the nodes on any of ``diagram_ids``."""
        ...

    async def create(self, node: Node) -> Node: ...


class NodeVaultRepository(Protocol):
    async def find_by_project_id(self, project_id: UUID) -> list[NodeVault]: ...

    async def create(self, vault: NodeVault) -> NodeVault:
        """Insert a vault; storage assigns ``id`` when it is ``None``."""
        ...


class NoteRepository(Protocol):
    async def find_by_project_id(self, project_id: UUID) -> list[Note]: ...

    async def create(self, note: Note) -> Note: ...


class PermissionGate(Protocol):
    """Permission check owned by the project/role subsystem."""

    async def has_permission(
        self, project_id: UUID, user_id: UUID, permission: str
    ) -> bool:
        """Whether ``user_id`` holds ``permission`` on ``project_id``."""
        ...


@dataclass(frozen=True)
class Repositories:
    """Bundle of the repository ports used by one backup service."""

    projects: ProjectRepository
    members: ProjectMemberRepository
    diagrams: DiagramRepository
    nodes: NodeRepository
    vaults: NodeVaultRepository
    notes: NoteRepository
