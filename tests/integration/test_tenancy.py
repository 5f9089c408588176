"""End-to-end tenancy enforcement through the HTTP routes (SQLite)."""

from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient
from prometheus_client import REGISTRY
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.app.api.dependencies import get_knowledge_base_service
from backend.app.db.inmemory import InMemoryRecordRepository
from backend.app.db.models import KnowledgeBaseItem
from backend.app.main import app
from backend.app.models.records import KnowledgeBaseOut
from backend.app.tenancy.cache import InMemoryTenantCache
from backend.app.tenancy.service import ScopedRecordService
from tests.factories import ACME, ALICE, BOB, GLOBEX, auth_headers


async def _seed_documents(engine: AsyncEngine) -> dict[str, list[int]]:
    """Alice: 5 acme + 3 globex + 2 unscoped documents. Bob: 1 acme document."""
    base = datetime(2026, 1, 1, tzinfo=UTC)
    layout = [(ALICE, ACME)] * 5 + [(ALICE, GLOBEX)] * 3 + [(ALICE, None)] * 2 + [(BOB, ACME)]
    rows = [
        KnowledgeBaseItem(
            user_id=user_id,
            organization_id=organization_id,
            file_name=f"doc-{i}.md",
            file_type="md",
            file_size=100,
            created_at=base + timedelta(minutes=i),
            updated_at=base + timedelta(minutes=i),
        )
        for i, (user_id, organization_id) in enumerate(layout)
    ]
    async with AsyncSession(engine, expire_on_commit=False) as session:
        session.add_all(rows)
        await session.commit()

    ids: dict[str, list[int]] = {}
    for row, (user_id, organization_id) in zip(rows, layout, strict=True):
        ids.setdefault(f"{user_id}:{organization_id}", []).append(row.id)
    return ids


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_bearer_is_401(self, client: AsyncClient) -> None:
        response = await client.get("/platforms")

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_ERROR"

    @pytest.mark.asyncio
    async def test_malformed_hint_is_400(self, client: AsyncClient) -> None:
        response = await client.get("/platforms", headers=auth_headers(ALICE, "bad id!"))

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestContextResolution:
    @pytest.mark.asyncio
    async def test_foreign_hint_is_rejected_before_any_store_query(
        self, client: AsyncClient
    ) -> None:
        """Bob naming acme is refused and the knowledge base is never touched."""
        repo: InMemoryRecordRepository[KnowledgeBaseOut] = InMemoryRecordRepository(
            KnowledgeBaseOut
        )
        app.dependency_overrides[get_knowledge_base_service] = lambda: ScopedRecordService(
            "knowledge-base", repo, KnowledgeBaseOut, InMemoryTenantCache(), cache_ttl_seconds=60
        )

        listing = await client.get("/knowledge-base", headers=auth_headers(BOB, ACME))
        creation = await client.post(
            "/knowledge-base",
            json={"file_name": "x.md", "file_type": "md", "file_size": 1},
            headers=auth_headers(BOB, ACME),
        )

        assert listing.status_code == 403
        assert listing.json() == {"message": "Access denied", "code": "AUTHORIZATION_ERROR"}
        assert creation.status_code == 403
        assert repo.calls == []

    @pytest.mark.asyncio
    async def test_unknown_organization_hint_is_403(self, client: AsyncClient) -> None:
        response = await client.get("/platforms", headers=auth_headers(ALICE, "org-nowhere"))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_no_hint_uses_default_membership(self, client: AsyncClient) -> None:
        response = await client.post(
            "/platforms",
            json={"name": "slack", "display_name": "Slack"},
            headers=auth_headers(ALICE),
        )

        assert response.status_code == 201
        assert response.json()["organization_id"] == ACME

    @pytest.mark.asyncio
    async def test_query_parameter_hint(self, client: AsyncClient) -> None:
        response = await client.post(
            "/platforms",
            params={"organizationId": GLOBEX},
            json={"name": "email", "display_name": "Email"},
            headers=auth_headers(ALICE),
        )

        assert response.status_code == 201
        assert response.json()["organization_id"] == GLOBEX

    @pytest.mark.asyncio
    async def test_header_wins_over_query_parameter(self, client: AsyncClient) -> None:
        response = await client.post(
            "/platforms",
            params={"organizationId": GLOBEX},
            json={"name": "email", "display_name": "Email"},
            headers=auth_headers(ALICE, ACME),
        )

        assert response.status_code == 201
        assert response.json()["organization_id"] == ACME


class TestRecordIsolation:
    @pytest.mark.asyncio
    async def test_list_returns_own_and_unscoped_only(
        self, client: AsyncClient, seeded_engine: AsyncEngine
    ) -> None:
        await _seed_documents(seeded_engine)

        response = await client.get("/knowledge-base", headers=auth_headers(ALICE, ACME))

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "private"
        docs = response.json()
        assert len(docs) == 7
        assert {doc["organization_id"] for doc in docs} == {ACME, None}
        assert {doc["user_id"] for doc in docs} == {ALICE}

    @pytest.mark.asyncio
    async def test_same_user_sees_other_organization_separately(
        self, client: AsyncClient, seeded_engine: AsyncEngine
    ) -> None:
        await _seed_documents(seeded_engine)

        acme = await client.get("/knowledge-base", headers=auth_headers(ALICE, ACME))
        globex = await client.get("/knowledge-base", headers=auth_headers(ALICE, GLOBEX))

        assert len(acme.json()) == 7
        assert len(globex.json()) == 5
        assert {doc["organization_id"] for doc in globex.json()} == {GLOBEX, None}

    @pytest.mark.asyncio
    async def test_create_stamps_resolved_organization(
        self, client: AsyncClient, seeded_engine: AsyncEngine
    ) -> None:
        response = await client.post(
            "/knowledge-base",
            json={
                "file_name": "pricing.pdf",
                "file_type": "pdf",
                "file_size": 2048,
                "content": "Plans start at $10",
                "organization_id": GLOBEX,
            },
            headers=auth_headers(ALICE, ACME),
        )

        assert response.status_code == 201
        assert response.json()["organization_id"] == ACME

        async with AsyncSession(seeded_engine) as session:
            row = (
                await session.execute(
                    select(KnowledgeBaseItem).where(KnowledgeBaseItem.id == response.json()["id"])
                )
            ).scalar_one()
        assert row.organization_id == ACME
        assert row.user_id == ALICE

    @pytest.mark.asyncio
    async def test_create_then_list_sees_new_record(self, client: AsyncClient) -> None:
        headers = auth_headers(ALICE, ACME)
        assert (await client.get("/knowledge-base", headers=headers)).json() == []

        await client.post(
            "/knowledge-base",
            json={"file_name": "faq.md", "file_type": "md", "file_size": 12},
            headers=headers,
        )

        listed = (await client.get("/knowledge-base", headers=headers)).json()
        assert [doc["file_name"] for doc in listed] == ["faq.md"]

    @pytest.mark.asyncio
    async def test_point_read_cross_organization_is_403(
        self, client: AsyncClient, seeded_engine: AsyncEngine
    ) -> None:
        ids = await _seed_documents(seeded_engine)
        globex_doc = ids[f"{ALICE}:{GLOBEX}"][0]
        before = REGISTRY.get_sample_value(
            "tenancy_denials_total", {"reason": "cross_organization"}
        ) or 0.0

        response = await client.get(
            f"/knowledge-base/{globex_doc}", headers=auth_headers(ALICE, ACME)
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"
        after = REGISTRY.get_sample_value(
            "tenancy_denials_total", {"reason": "cross_organization"}
        )
        assert after == before + 1

    @pytest.mark.asyncio
    async def test_point_read_other_users_record_is_404(
        self, client: AsyncClient, seeded_engine: AsyncEngine
    ) -> None:
        ids = await _seed_documents(seeded_engine)
        bobs_doc = ids[f"{BOB}:{ACME}"][0]

        response = await client.get(f"/knowledge-base/{bobs_doc}", headers=auth_headers(ALICE, ACME))

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_point_read_unscoped_record_is_allowed(
        self, client: AsyncClient, seeded_engine: AsyncEngine
    ) -> None:
        ids = await _seed_documents(seeded_engine)
        legacy = ids[f"{ALICE}:None"][0]

        response = await client.get(f"/knowledge-base/{legacy}", headers=auth_headers(ALICE, GLOBEX))

        assert response.status_code == 200
        assert response.json()["organization_id"] is None

    @pytest.mark.asyncio
    async def test_delete_cross_organization_is_403_and_keeps_row(
        self, client: AsyncClient, seeded_engine: AsyncEngine
    ) -> None:
        ids = await _seed_documents(seeded_engine)
        globex_doc = ids[f"{ALICE}:{GLOBEX}"][0]

        response = await client.delete(
            f"/knowledge-base/{globex_doc}", headers=auth_headers(ALICE, ACME)
        )
        assert response.status_code == 403

        response = await client.delete(
            f"/knowledge-base/{globex_doc}", headers=auth_headers(ALICE, GLOBEX)
        )
        assert response.status_code == 204


class TestPlatformsAndConversations:
    @pytest.mark.asyncio
    async def test_disconnect_platform(self, client: AsyncClient) -> None:
        headers = auth_headers(ALICE, ACME)
        created = await client.post(
            "/platforms",
            json={"name": "slack", "display_name": "Slack", "is_connected": True},
            headers=headers,
        )
        platform_id = created.json()["id"]

        response = await client.post(f"/platforms/{platform_id}/disconnect", headers=headers)

        assert response.status_code == 200
        assert response.json()["is_connected"] is False
        assert "access_token" not in response.json()

    @pytest.mark.asyncio
    async def test_conversation_on_foreign_platform_is_403(self, client: AsyncClient) -> None:
        platform = await client.post(
            "/platforms",
            json={"name": "slack", "display_name": "Slack"},
            headers=auth_headers(ALICE, GLOBEX),
        )

        response = await client.post(
            "/conversations",
            json={"customer_name": "Jane", "platform_id": platform.json()["id"]},
            headers=auth_headers(ALICE, ACME),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_messages_follow_conversation_scope(self, client: AsyncClient) -> None:
        acme = auth_headers(ALICE, ACME)
        conversation = await client.post(
            "/conversations", json={"customer_name": "Jane"}, headers=acme
        )
        conversation_id = conversation.json()["id"]

        message = await client.post(
            f"/conversations/{conversation_id}/messages",
            json={"content": "Hi there", "is_from_customer": True, "organization_id": GLOBEX},
            headers=acme,
        )
        assert message.status_code == 201
        assert message.json()["organization_id"] == ACME

        listed = await client.get(f"/conversations/{conversation_id}/messages", headers=acme)
        assert [m["content"] for m in listed.json()] == ["Hi there"]

        refreshed = await client.get(f"/conversations/{conversation_id}", headers=acme)
        assert refreshed.json()["last_message"] == "Hi there"

        foreign = await client.get(
            f"/conversations/{conversation_id}/messages", headers=auth_headers(ALICE, GLOBEX)
        )
        assert foreign.status_code == 403
