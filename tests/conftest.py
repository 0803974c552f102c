"""Shared fixtures: in-memory repositories and a small project graph."""

import uuid
from datetime import datetime, timezone
from uuid import UUID

import pytest

from project_backup.archive.compression import ZstdCodec
from project_backup.archive.crypto import Argon2Params
from project_backup.backup.service import BackupService
from project_backup.domain.models import (
    ROLE_PRESETS,
    Diagram,
    Node,
    NodeVault,
    Note,
    Project,
    ProjectMember,
    ProjectMemberKeyring,
)
from project_backup.storage.ports import Repositories

# Cheap Argon2id settings so tests do not spend 64 MiB per derivation
FAST_ARGON2 = Argon2Params(memory=8, iterations=1, parallelism=1)

TEST_PEPPER = b"test-pepper"
PASSWORD = "CorrectHorse1"


# ============================================================================
# In-memory storage
# ============================================================================


class MemoryStore:
    """Records every entity created, per table, in insertion order."""

    def __init__(self) -> None:
        self.projects: list[Project] = []
        self.members: list[ProjectMember] = []
        self.diagrams: list[Diagram] = []
        self.nodes: list[Node] = []
        self.vaults: list[NodeVault] = []
        self.notes: list[Note] = []
        # table name -> number of successful creates before failing
        self.fail_after: dict[str, int] = {}
        self.fail_reads: set[str] = set()

    def _check_write(self, table: str) -> None:
        limit = self.fail_after.get(table)
        if limit is not None and len(getattr(self, table)) >= limit:
            raise RuntimeError(f"{table} insert failed")

    def _check_read(self, table: str) -> None:
        if table in self.fail_reads:
            raise RuntimeError(f"{table} read failed")


class MemoryProjects:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    async def find_by_id(self, project_id: UUID) -> Project | None:
        self.store._check_read("projects")
        return next((p for p in self.store.projects if p.id == project_id), None)

    async def create(self, project: Project) -> Project:
        self.store._check_write("projects")
        self.store.projects.append(project)
        return project


class MemoryMembers:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    async def find_by_project_and_user(
        self, project_id: UUID, user_id: UUID
    ) -> ProjectMember | None:
        self.store._check_read("members")
        return next(
            (
                m for m in self.store.members
                if m.project_id == project_id and m.user_id == user_id
            ),
            None,
        )

    async def create(self, member: ProjectMember) -> ProjectMember:
        self.store._check_write("members")
        self.store.members.append(member)
        return member


class MemoryDiagrams:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    async def find_all_by_project_id(self, project_id: UUID) -> list[Diagram]:
        self.store._check_read("diagrams")
        return [d for d in self.store.diagrams if d.project_id == project_id]

    async def create(self, diagram: Diagram) -> Diagram:
        self.store._check_write("diagrams")
        self.store.diagrams.append(diagram)
        return diagram


class MemoryNodes:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.lookups: list[list[UUID]] = []

    async def find_by_diagram_ids(self, diagram_ids: list[UUID]) -> list[Node]:
        self.store._check_read("nodes")
        self.lookups.append(list(diagram_ids))
        wanted = set(diagram_ids)
        return [n for n in self.store.nodes if n.diagram_id in wanted]

    async def create(self, node: Node) -> Node:
        self.store._check_write("nodes")
        self.store.nodes.append(node)
        return node


class MemoryVaults:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    async def find_by_project_id(self, project_id: UUID) -> list[NodeVault]:
        self.store._check_read("vaults")
        return [v for v in self.store.vaults if v.project_id == project_id]

    async def create(self, vault: NodeVault) -> NodeVault:
        self.store._check_write("vaults")
        stored = vault.model_copy(update={"id": vault.id or uuid.uuid4()})
        self.store.vaults.append(stored)
        return stored


class MemoryNotes:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    async def find_by_project_id(self, project_id: UUID) -> list[Note]:
        self.store._check_read("notes")
        return [n for n in self.store.notes if n.project_id == project_id]

    async def create(self, note: Note) -> Note:
        self.store._check_write("notes")
        self.store.notes.append(note)
        return note


class MemoryPermissionGate:
    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.error: Exception | None = None

    async def has_permission(
        self, project_id: UUID, user_id: UUID, permission: str
    ) -> bool:
        if self.error is not None:
            raise self.error
        for m in self.store.members:
            if m.project_id == project_id and m.user_id == user_id:
                return permission in m.permissions
        return False


def memory_repositories(store: MemoryStore) -> Repositories:
    return Repositories(
        projects=MemoryProjects(store),
        members=MemoryMembers(store),
        diagrams=MemoryDiagrams(store),
        nodes=MemoryNodes(store),
        vaults=MemoryVaults(store),
        notes=MemoryNotes(store),
    )


# ============================================================================
# Sample graph
# ============================================================================


class SampleGraph:
    """IDs of the seeded project.

    Diagrams D1 (root) and D2 (child of D1); node N1 on D2; vault V1 on
    N1; folder F (root) and note C inside F.
    """

    def __init__(self) -> None:
        self.owner_id = uuid.uuid4()
        self.viewer_id = uuid.uuid4()
        self.project_id = uuid.uuid4()
        self.d1 = uuid.uuid4()
        self.d2 = uuid.uuid4()
        self.n1 = uuid.uuid4()
        self.v1 = uuid.uuid4()
        self.folder = uuid.uuid4()
        self.note = uuid.uuid4()

    def old_ids(self) -> set[UUID]:
        return {
            self.project_id, self.d1, self.d2, self.n1,
            self.v1, self.folder, self.note,
        }


def seed_sample_graph(store: MemoryStore) -> SampleGraph:
    g = SampleGraph()
    created = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    store.projects.append(
        Project(
            id=g.project_id,
            name="My Project! #1",
            description="infra map",
            key_epoch="2",
            created_at=created,
            updated_at=created,
        )
    )
    store.members.append(
        ProjectMember(
            project_id=g.project_id,
            user_id=g.owner_id,
            role="owner",
            permissions=list(ROLE_PRESETS["owner"]),
            public_key="pub-key",
            encrypted_private_key="enc-priv-key",
            keyrings=[
                ProjectMemberKeyring(
                    epoch="2",
                    secret_passphrase="pass-2",
                    secret_signing_private_key="sign-priv-2",
                    signing_public_key="sign-pub-2",
                )
            ],
        )
    )
    store.members.append(
        ProjectMember(
            project_id=g.project_id,
            user_id=g.viewer_id,
            role="viewer",
            permissions=list(ROLE_PRESETS["viewer"]),
        )
    )
    store.diagrams.append(
        Diagram(
            id=g.d1, project_id=g.project_id, diagram_name="D1",
            encrypted_data="data-1", encrypted_data_signature="sig-1",
            created_at=created, updated_at=created,
        )
    )
    store.diagrams.append(
        Diagram(
            id=g.d2, project_id=g.project_id, parent_diagram_id=g.d1,
            diagram_name="D2", created_at=created, updated_at=created,
        )
    )
    store.nodes.append(
        Node(
            id=g.n1, diagram_id=g.d2, encrypted_readme="readme",
            encrypted_dict="dict", created_at=created, updated_at=created,
        )
    )
    store.vaults.append(
        NodeVault(
            id=g.v1, project_id=g.project_id, node_id=g.n1, label="db-password",
            type="secret", encrypted_value="enc-value",
            created_at=created, updated_at=created,
        )
    )
    store.notes.append(
        Note(
            id=g.folder, project_id=g.project_id, type="folder", file_name="F",
            created_at=created, updated_at=created,
        )
    )
    store.notes.append(
        Note(
            id=g.note, project_id=g.project_id, parent_id=g.folder, type="note",
            file_name="C", encrypted_content="content",
            created_at=created, updated_at=created,
        )
    )
    return g


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repositories(store: MemoryStore) -> Repositories:
    return memory_repositories(store)


@pytest.fixture
def gate(store: MemoryStore) -> MemoryPermissionGate:
    return MemoryPermissionGate(store)


@pytest.fixture
def graph(store: MemoryStore) -> SampleGraph:
    return seed_sample_graph(store)


@pytest.fixture
def codec() -> ZstdCodec:
    return ZstdCodec()


@pytest.fixture
def service(repositories, gate, codec) -> BackupService:
    return BackupService(
        repositories,
        gate,
        codec,
        pepper=TEST_PEPPER,
        argon2_params=FAST_ARGON2,
    )
