"""
Tests unitarios para la clasificacion Created/Updated y el payload de Action.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from crm_sync.application.services.syncers.base import classify
from crm_sync.domain.entities.account import Account
from crm_sync.domain.entities.action import Action, filter_null_values
from crm_sync.domain.entities.record import Record
from crm_sync.shared.constants.sync_constants import EntityType

CHECKPOINT = datetime(2024, 1, 1, tzinfo=timezone.utc)
CREATED = datetime(2023, 12, 1, 8, 0, tzinfo=timezone.utc)
UPDATED = datetime(2024, 1, 20, 10, 30, tzinfo=timezone.utc)


class TestClassify:
    """Tests para classify."""

    def test_created_after_checkpoint_is_created(self) -> None:
        record = Record(id="1", created_at=UPDATED, updated_at=UPDATED)

        created, action_date = classify(record, CHECKPOINT)

        assert created is True
        assert action_date == UPDATED

    def test_created_before_checkpoint_is_updated_with_modification_date(self) -> None:
        record = Record(id="1", created_at=CREATED, updated_at=UPDATED)

        created, action_date = classify(record, CHECKPOINT)

        assert created is False
        assert action_date == UPDATED

    def test_created_exactly_at_checkpoint_is_updated(self) -> None:
        """La comparacion es estricta."""
        record = Record(id="1", created_at=CHECKPOINT, updated_at=UPDATED)

        created, _ = classify(record, CHECKPOINT)

        assert created is False

    def test_without_checkpoint_everything_is_created(self) -> None:
        record = Record(id="1", created_at=CREATED, updated_at=UPDATED)

        created, action_date = classify(record, None)

        assert created is True
        assert action_date == CREATED


class TestAction:
    """Tests para Action."""

    def test_payload_for_created_organization(self) -> None:
        action = Action(
            entity_type=EntityType.ORGANIZATION,
            created=True,
            action_date=datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc),
            properties={"organization_id": "42", "organization_domain": None},
        )

        assert action.to_payload() == {
            "actionName": "Organization Created",
            "actionDate": "2024-01-15T09:00:00.000Z",
            "includeInAnalytics": 0,
            "organizationProperties": {"organization_id": "42"},
        }

    def test_payload_includes_identity_when_present(self) -> None:
        action = Action(
            entity_type=EntityType.PERSON,
            created=False,
            action_date=UPDATED,
            identity="a@b.com",
        )

        payload = action.to_payload()

        assert payload["actionName"] == "Person Updated"
        assert payload["identity"] == "a@b.com"
        assert payload["userProperties"] == {}

    def test_properties_are_immutable(self) -> None:
        action = Action(entity_type=EntityType.MEETING, created=True, action_date=UPDATED, properties={"a": 1})

        with pytest.raises(TypeError):
            action.properties["b"] = 2

    def test_naive_date_is_treated_as_utc(self) -> None:
        action = Action(
            entity_type=EntityType.MEETING, created=True, action_date=datetime(2024, 1, 1, 12, 0)
        )

        assert action.action_date.tzinfo == timezone.utc

    def test_filter_null_values_removes_keys(self) -> None:
        assert filter_null_values({"a": None, "b": 0, "c": ""}) == {"b": 0, "c": ""}


class TestAccountCheckpoints:
    """Tests para Account.checkpoint_for / advance_checkpoint."""

    def test_entity_checkpoint_falls_back_to_account_level(self) -> None:
        account = Account(id="a", last_pulled_date=CHECKPOINT)

        assert account.checkpoint_for(EntityType.MEETING) == CHECKPOINT

    def test_advance_never_moves_backwards(self) -> None:
        account = Account(id="a", last_pulled_dates={"people": UPDATED})

        result = account.advance_checkpoint(EntityType.PERSON, CHECKPOINT)

        assert result == UPDATED
        assert account.last_pulled_dates["people"] == UPDATED

    def test_advance_is_idempotent(self) -> None:
        account = Account(id="a")

        account.advance_checkpoint(EntityType.PERSON, UPDATED)
        account.advance_checkpoint(EntityType.PERSON, UPDATED)

        assert account.last_pulled_dates == {"people": UPDATED}

    def test_account_requires_id(self) -> None:
        with pytest.raises(ValueError):
            Account(id="")
