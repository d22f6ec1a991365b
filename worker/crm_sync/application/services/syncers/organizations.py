"""
Syncer de organizaciones (companies en el CRM). Sin enriquecimiento.
"""
from __future__ import annotations

from datetime import datetime
from functools import partial
from typing import Dict, List, Optional

from crm_sync.application.services.syncers.base import classify
from crm_sync.domain.entities.account import Account
from crm_sync.domain.entities.action import Action
from crm_sync.domain.entities.record import Record, SearchPage
from crm_sync.infrastructure.external.crm.client import CrmClient
from crm_sync.infrastructure.external.crm.retry import RetryExecutor
from crm_sync.infrastructure.external.crm.schemas import OrganizationPropertiesSchema
from crm_sync.shared.constants.sync_constants import EntityType


class OrganizationSyncer:
    entity_type = EntityType.ORGANIZATION
    date_property = "hs_lastmodifieddate"
    properties = (
        "name",
        "domain",
        "country",
        "industry",
        "description",
        "annualrevenue",
        "numberofemployees",
        "hs_lead_status",
    )

    def __init__(self, client: CrmClient, executor: RetryExecutor, account: Account) -> None:
        self._client = client
        self._executor = executor
        self._account = account

    async def fetch_page(self, request: Dict) -> SearchPage:
        return await self._executor.execute(
            partial(self._client.search, self.entity_type.object_type, request),
            self._account,
            label=self.entity_type.value,
        )

    async def transform(self, records: List[Record], checkpoint: Optional[datetime]) -> List[Action]:
        actions: List[Action] = []
        for record in records:
            props = OrganizationPropertiesSchema.model_validate(record.properties)
            created, action_date = classify(record, checkpoint)
            actions.append(
                Action(
                    entity_type=self.entity_type,
                    created=created,
                    action_date=action_date,
                    properties={
                        "organization_id": record.id,
                        "organization_domain": props.domain,
                        "organization_industry": props.industry,
                    },
                )
            )
        return actions
