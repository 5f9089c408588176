"""Unit tests for tenant-scoped record services over in-memory repositories."""

from datetime import UTC, datetime

import pytest

from backend.app.api.errors import AuthorizationError, NotFoundError
from backend.app.db.context import RequestContext
from backend.app.db.inmemory import InMemoryMessageRepository, InMemoryRecordRepository
from backend.app.models.organization import Role
from backend.app.models.records import (
    ConversationCreate,
    ConversationOut,
    KnowledgeBaseCreate,
    KnowledgeBaseOut,
    MessageCreate,
)
from backend.app.tenancy.cache import InMemoryTenantCache
from backend.app.tenancy.hooks import TenancyLogger, TenancyMetrics
from backend.app.tenancy.service import MessageService, ScopedRecordService

NOW = datetime(2026, 1, 1, tzinfo=UTC)
ALICE_ACME = RequestContext(user_id="alice", organization_id="acme", role=Role.member)
ALICE_OTHER = RequestContext(user_id="alice", organization_id="other", role=Role.member)
BOB_ACME = RequestContext(user_id="bob", organization_id="acme", role=Role.member)


class RecordingMetrics(TenancyMetrics):
    def __init__(self) -> None:
        self.filtered: list[tuple[str, int]] = []
        self.lookups: list[tuple[str, bool]] = []
        self.denials: list[str] = []

    def inc_filtered(self, resource: str, count: int) -> None:
        self.filtered.append((resource, count))

    def record_cache_lookup(self, resource: str, hit: bool) -> None:
        self.lookups.append((resource, hit))

    def inc_denial(self, reason: str) -> None:
        self.denials.append(reason)


class RecordingLogger(TenancyLogger):
    def __init__(self) -> None:
        self.cross_tenant: list[tuple[object, ...]] = []
        self.discarded: list[tuple[object, ...]] = []

    def cross_tenant_attempt(self, user_id, organization_id, resource, record_id, owner):  # type: ignore[no-untyped-def]
        self.cross_tenant.append((user_id, organization_id, resource, record_id, owner))

    def client_claim_discarded(self, user_id, organization_id, resource, claimed):  # type: ignore[no-untyped-def]
        self.discarded.append((user_id, organization_id, resource, claimed))


def _doc(record_id: int, organization_id: str | None, user_id: str = "alice") -> KnowledgeBaseOut:
    return KnowledgeBaseOut(
        id=record_id,
        user_id=user_id,
        organization_id=organization_id,
        file_name=f"doc-{record_id}.md",
        file_type="md",
        file_size=10,
        content=None,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def repo() -> InMemoryRecordRepository[KnowledgeBaseOut]:
    return InMemoryRecordRepository(KnowledgeBaseOut)


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def tenancy_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def service(
    repo: InMemoryRecordRepository[KnowledgeBaseOut],
    metrics: RecordingMetrics,
    tenancy_logger: RecordingLogger,
) -> ScopedRecordService[KnowledgeBaseOut]:
    return ScopedRecordService(
        "knowledge-base",
        repo,
        KnowledgeBaseOut,
        InMemoryTenantCache(),
        cache_ttl_seconds=60,
        logger=tenancy_logger,
        metrics=metrics,
    )


class TestList:
    @pytest.mark.asyncio
    async def test_mixed_store_returns_own_and_unscoped(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
        metrics: RecordingMetrics,
    ) -> None:
        """5 acme + 3 other + 2 unscoped documents -> exactly the 7 visible to acme."""
        repo.seed(
            [_doc(i, "acme") for i in range(1, 6)]
            + [_doc(i, "other") for i in range(6, 9)]
            + [_doc(i, None) for i in range(9, 11)]
        )

        docs = await service.list_visible(ALICE_ACME)

        assert len(docs) == 7
        assert {doc.organization_id for doc in docs} == {"acme", None}
        assert metrics.filtered == [("knowledge-base", 3)]

    @pytest.mark.asyncio
    async def test_second_list_is_served_from_cache(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
        metrics: RecordingMetrics,
    ) -> None:
        repo.seed([_doc(1, "acme")])

        first = await service.list_visible(ALICE_ACME)
        second = await service.list_visible(ALICE_ACME)

        assert first == second
        assert repo.calls.count("list_for_user") == 1
        assert metrics.lookups == [("knowledge-base", False), ("knowledge-base", True)]

    @pytest.mark.asyncio
    async def test_cache_is_namespaced_per_organization(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
    ) -> None:
        repo.seed([_doc(1, "acme"), _doc(2, "other")])

        acme_docs = await service.list_visible(ALICE_ACME)
        other_docs = await service.list_visible(ALICE_OTHER)

        assert [doc.id for doc in acme_docs] == [1]
        assert [doc.id for doc in other_docs] == [2]
        assert repo.calls.count("list_for_user") == 2

    @pytest.mark.asyncio
    async def test_strict_mode_hides_unscoped(
        self, repo: InMemoryRecordRepository[KnowledgeBaseOut]
    ) -> None:
        repo.seed([_doc(1, "acme"), _doc(2, None)])
        strict = ScopedRecordService(
            "knowledge-base",
            repo,
            KnowledgeBaseOut,
            InMemoryTenantCache(),
            cache_ttl_seconds=60,
            allow_unscoped=False,
        )

        docs = await strict.list_visible(ALICE_ACME)

        assert [doc.id for doc in docs] == [1]


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_stamps_resolved_organization(
        self,
        service: ScopedRecordService[KnowledgeBaseOut],
        tenancy_logger: RecordingLogger,
    ) -> None:
        body = KnowledgeBaseCreate(
            file_name="plan.pdf", file_type="pdf", file_size=5, organization_id="other"
        )

        doc = await service.create(ALICE_ACME, body)

        assert doc.organization_id == "acme"
        assert doc.user_id == "alice"
        assert tenancy_logger.discarded == [("alice", "acme", "knowledge-base", "other")]

    @pytest.mark.asyncio
    async def test_create_invalidates_cached_list(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
    ) -> None:
        assert await service.list_visible(ALICE_ACME) == []

        await service.create(
            ALICE_ACME, KnowledgeBaseCreate(file_name="a.md", file_type="md", file_size=1)
        )

        assert [doc.file_name for doc in await service.list_visible(ALICE_ACME)] == ["a.md"]


class TestPointAccess:
    @pytest.mark.asyncio
    async def test_get_own_record(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
    ) -> None:
        repo.seed([_doc(1, "acme")])

        assert (await service.get(ALICE_ACME, 1)).id == 1

    @pytest.mark.asyncio
    async def test_missing_record_is_not_found(
        self, service: ScopedRecordService[KnowledgeBaseOut]
    ) -> None:
        with pytest.raises(NotFoundError):
            await service.get(ALICE_ACME, 404)

    @pytest.mark.asyncio
    async def test_other_users_record_is_not_found(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
    ) -> None:
        repo.seed([_doc(1, "acme", user_id="alice")])

        with pytest.raises(NotFoundError):
            await service.get(BOB_ACME, 1)

    @pytest.mark.asyncio
    async def test_cross_organization_record_is_forbidden_and_logged(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
        metrics: RecordingMetrics,
        tenancy_logger: RecordingLogger,
    ) -> None:
        repo.seed([_doc(1, "other")])

        with pytest.raises(AuthorizationError):
            await service.get(ALICE_ACME, 1)

        assert metrics.denials == ["cross_organization"]
        assert tenancy_logger.cross_tenant == [("alice", "acme", "knowledge-base", 1, "other")]

    @pytest.mark.asyncio
    async def test_update_cannot_move_record(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
    ) -> None:
        repo.seed([_doc(1, "acme")])

        updated = await service.update(
            ALICE_ACME, 1, {"file_name": "renamed.md", "organization_id": "other", "user_id": "bob"}
        )

        assert updated.file_name == "renamed.md"
        assert updated.organization_id == "acme"
        assert updated.user_id == "alice"

    @pytest.mark.asyncio
    async def test_delete_cross_organization_record_is_forbidden(
        self,
        repo: InMemoryRecordRepository[KnowledgeBaseOut],
        service: ScopedRecordService[KnowledgeBaseOut],
    ) -> None:
        repo.seed([_doc(1, "other")])

        with pytest.raises(AuthorizationError):
            await service.delete(ALICE_ACME, 1)

        assert "delete" not in repo.calls


class TestMessages:
    @pytest.mark.asyncio
    async def test_create_message_stamps_organization_and_bumps_conversation(self) -> None:
        conversations_repo = InMemoryRecordRepository(
            ConversationOut, defaults={"last_message": None, "last_message_at": None, "is_active": True}
        )
        conversations = ScopedRecordService(
            "conversations",
            conversations_repo,
            ConversationOut,
            InMemoryTenantCache(),
            cache_ttl_seconds=60,
        )
        messages = MessageService(conversations, InMemoryMessageRepository())
        conversation = await conversations.create(
            ALICE_ACME, ConversationCreate(customer_name="Jane")
        )

        message = await messages.create(
            ALICE_ACME,
            conversation.id,
            MessageCreate(content="hello", is_from_customer=True, organization_id="other"),
        )

        assert message.organization_id == "acme"
        assert [m.id for m in await messages.list_visible(ALICE_ACME, conversation.id)] == [
            message.id
        ]
        refreshed = await conversations.get(ALICE_ACME, conversation.id)
        assert refreshed.last_message == "hello"

    @pytest.mark.asyncio
    async def test_messages_of_foreign_conversation_are_forbidden(self) -> None:
        conversations_repo = InMemoryRecordRepository(ConversationOut)
        conversations_repo.seed(
            [
                ConversationOut(
                    id=1,
                    user_id="alice",
                    organization_id="other",
                    platform_id=None,
                    customer_name="Jane",
                    customer_avatar=None,
                    last_message=None,
                    last_message_at=None,
                    is_active=True,
                    created_at=NOW,
                    updated_at=NOW,
                )
            ]
        )
        conversations = ScopedRecordService(
            "conversations",
            conversations_repo,
            ConversationOut,
            InMemoryTenantCache(),
            cache_ttl_seconds=60,
        )
        messages = MessageService(conversations, InMemoryMessageRepository())

        with pytest.raises(AuthorizationError):
            await messages.list_visible(ALICE_ACME, 1)
