"""Repository ports implemented over a ``DatabaseClient``.

Each repository maps one table to one domain model.  Rows go in as
``model_dump()`` dicts and come back through ``model_validate()``.

Tables::

    projects          id, name, description, key_epoch, created_at, updated_at
    project_members   project_id, user_id, role, permissions (jsonb),
                      public_key, encrypted_private_key, keyrings (jsonb), ...
    diagrams          id, project_id, parent_diagram_id, diagram_name, ...
    nodes             id, diagram_id, encrypted_readme, encrypted_dict, ...
    node_vaults       id (default gen_random_uuid()), project_id, node_id, ...
    notes             id, project_id, parent_id, type, file_name, icon, ...

Usage:
    from project_backup.storage.repositories import build_repositories, MemberPermissionGate

    repos = build_repositories(adapter)
    gate = MemberPermissionGate(repos.members)
"""

import json
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel

from project_backup.adapters.base import DatabaseClient
from project_backup.domain.models import (
    Diagram,
    Node,
    NodeVault,
    Note,
    Project,
    ProjectMember,
)
from project_backup.storage.ports import Repositories

# Columns stored as JSONB
JSONB_COLUMNS = ["permissions", "keyrings"]

ModelT = TypeVar("ModelT", bound=BaseModel)


class TableRepository(Generic[ModelT]):
    """Shared select/insert plumbing for one table."""

    table: str
    model: type[ModelT]

    def __init__(self, client: DatabaseClient) -> None:
        self.client = client

    def _to_row(self, entity: ModelT) -> dict[str, Any]:
        # None ids are left to the database default
        row = entity.model_dump()
        if "id" in row and row["id"] is None:
            del row["id"]
        return row

    def _from_row(self, row: dict[str, Any]) -> ModelT:
        for column in JSONB_COLUMNS:
            if isinstance(row.get(column), str):
                row = {**row, column: json.loads(row[column])}
        return self.model.model_validate(row)

    async def _select(
        self, filters: dict[str, Any], order_by: str | None = "created_at"
    ) -> list[ModelT]:
        rows = await self.client.select(self.table, "*", filters=filters, order_by=order_by)
        return [self._from_row(r) for r in rows]

    async def create(self, entity: ModelT) -> ModelT:
        row = await self.client.insert(self.table, self._to_row(entity))
        return self._from_row(row)


class ProjectTable(TableRepository[Project]):
    table = "projects"
    model = Project

    async def find_by_id(self, project_id: UUID) -> Project | None:
        rows = await self._select({"id": project_id}, order_by=None)
        return rows[0] if rows else None


class ProjectMemberTable(TableRepository[ProjectMember]):
    table = "project_members"
    model = ProjectMember

    async def find_by_project_and_user(
        self, project_id: UUID, user_id: UUID
    ) -> ProjectMember | None:
        rows = await self._select(
            {"project_id": project_id, "user_id": user_id}, order_by=None
        )
        return rows[0] if rows else None


class DiagramTable(TableRepository[Diagram]):
    table = "diagrams"
    model = Diagram

    async def find_all_by_project_id(self, project_id: UUID) -> list[Diagram]:
        return await self._select({"project_id": project_id})


class NodeTable(TableRepository[Node]):
    table = "nodes"
    model = Node

    async def find_by_diagram_ids(self, diagram_ids: list[UUID]) -> list[Node]:
        if not diagram_ids:
            return []
        return await self._select({"diagram_id": list(diagram_ids)})


class NodeVaultTable(TableRepository[NodeVault]):
    table = "node_vaults"
    model = NodeVault

    async def find_by_project_id(self, project_id: UUID) -> list[NodeVault]:
        return await self._select({"project_id": project_id})


class NoteTable(TableRepository[Note]):
    table = "notes"
    model = Note

    async def find_by_project_id(self, project_id: UUID) -> list[Note]:
        return await self._select({"project_id": project_id})


class MemberPermissionGate:
    """Permission check against the member's stored permission list."""

    def __init__(self, members: ProjectMemberTable) -> None:
        self.members = members

    async def has_permission(
        self, project_id: UUID, user_id: UUID, permission: str
    ) -> bool:
        member = await self.members.find_by_project_and_user(project_id, user_id)
        if member is None:
            return False
        return permission in member.permissions


def build_repositories(client: DatabaseClient) -> Repositories:
    """Create every repository over one shared client."""
    return Repositories(
        projects=ProjectTable(client),
        members=ProjectMemberTable(client),
        diagrams=DiagramTable(client),
        nodes=NodeTable(client),
        vaults=NodeVaultTable(client),
        notes=NoteTable(client),
    )
