"""
Tests de integracion para AccountRepository sobre SQLite en memoria.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from crm_sync.infrastructure.repositories.account_repository import AccountRepository
from crm_sync.shared.constants.sync_constants import EntityType
from crm_sync.shared.exceptions.domain import EntityNotFoundException

CHECKPOINT = datetime(2024, 1, 1, 10, 30, 15, 123000, tzinfo=timezone.utc)


@pytest.fixture
def repo(db_session) -> AccountRepository:
    return AccountRepository(db_session)


class TestAccountRepository:
    """Tests para AccountRepository."""

    @pytest.mark.asyncio
    async def test_upsert_and_get(self, repo) -> None:
        await repo.upsert_account("a1", name="Acme", refresh_token="r-1")

        account = await repo.get_by_id("a1")

        assert account.name == "Acme"
        assert account.refresh_token == "r-1"
        assert account.last_pulled_dates == {}
        assert account.is_active is True

    @pytest.mark.asyncio
    async def test_get_missing_account_raises(self, repo) -> None:
        with pytest.raises(EntityNotFoundException):
            await repo.get_by_id("nope")

    @pytest.mark.asyncio
    async def test_list_active_skips_inactive_and_filters_ids(self, repo) -> None:
        await repo.upsert_account("a1")
        await repo.upsert_account("a2")
        await repo.upsert_account("a3", is_active=False)

        all_active = await repo.list_active()
        only_a2 = await repo.list_active(["a2", "a3"])

        assert [a.id for a in all_active] == ["a1", "a2"]
        assert [a.id for a in only_a2] == ["a2"]

    @pytest.mark.asyncio
    async def test_save_persists_tokens_and_checkpoints(self, repo, db_session_factory) -> None:
        await repo.upsert_account("a1", access_token="old", refresh_token="r-1")
        account = await repo.get_by_id("a1")
        account.access_token = "new"
        account.advance_checkpoint(EntityType.PERSON, CHECKPOINT)

        await repo.save(account)

        async with db_session_factory() as other:
            reloaded = await AccountRepository(other).get_by_id("a1")
        assert reloaded.access_token == "new"
        assert reloaded.checkpoint_for(EntityType.PERSON) == CHECKPOINT
        assert reloaded.checkpoint_for(EntityType.MEETING) is None

    @pytest.mark.asyncio
    async def test_reset_checkpoints(self, repo) -> None:
        await repo.upsert_account("a1")
        account = await repo.get_by_id("a1")
        account.advance_checkpoint(EntityType.ORGANIZATION, CHECKPOINT)
        await repo.save(account)

        reset = await repo.reset_checkpoints()

        assert reset == 1
        assert (await repo.get_by_id("a1")).last_pulled_dates == {}

    @pytest.mark.asyncio
    async def test_upsert_keeps_existing_checkpoints(self, repo) -> None:
        await repo.upsert_account("a1", refresh_token="r-1")
        account = await repo.get_by_id("a1")
        account.advance_checkpoint(EntityType.MEETING, CHECKPOINT)
        await repo.save(account)

        await repo.upsert_account("a1", refresh_token="r-2")

        account = await repo.get_by_id("a1")
        assert account.refresh_token == "r-2"
        assert account.checkpoint_for(EntityType.MEETING) == CHECKPOINT

    @pytest.mark.asyncio
    async def test_failed_save_does_not_block_later_saves(self, repo, db_session_factory) -> None:
        await repo.upsert_account("a1", refresh_token="r-1")
        await repo.upsert_account("a2", refresh_token="r-2")
        broken = await repo.get_by_id("a1")
        broken.access_token = None
        healthy = await repo.get_by_id("a2")
        healthy.advance_checkpoint(EntityType.PERSON, CHECKPOINT)

        with pytest.raises(IntegrityError):
            await repo.save(broken)
        await repo.save(healthy)

        async with db_session_factory() as other:
            reloaded = await AccountRepository(other).get_by_id("a2")
        assert reloaded.checkpoint_for(EntityType.PERSON) == CHECKPOINT
