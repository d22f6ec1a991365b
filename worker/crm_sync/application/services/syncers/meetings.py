"""
Syncer de reuniones.

Fan-out: una reunion produce una accion por asistente con email. Los lookups
de asistentes y de sus emails son secuenciales por reunion (sin batch ni
paralelismo). Alcanza para el volumen esperado de asistentes por pagina, pero
es el techo de throughput si ese volumen crece.
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
from crm_sync.infrastructure.external.crm.schemas import MeetingPropertiesSchema
from crm_sync.shared.constants.sync_constants import EntityType


class MeetingSyncer:
    entity_type = EntityType.MEETING
    date_property = "hs_lastmodifieddate"
    properties = (
        "hs_meeting_title",
        "hs_meeting_body",
        "hs_meeting_start_time",
        "hs_meeting_end_time",
        "hs_timestamp",
        "hs_meeting_outcome",
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
            attendee_ids = await self._attendees(record.id)
            if not attendee_ids:
                continue

            props = MeetingPropertiesSchema.model_validate(record.properties)
            created, action_date = classify(record, checkpoint)
            meeting_properties = {
                "meeting_id": record.id,
                "meeting_title": props.hs_meeting_title,
                "meeting_start_time": props.hs_meeting_start_time,
                "meeting_end_time": props.hs_meeting_end_time,
                "meeting_outcome": props.hs_meeting_outcome,
            }

            for contact_id in attendee_ids:
                email = await self._attendee_email(contact_id)
                if not email:
                    continue
                actions.append(
                    Action(
                        entity_type=self.entity_type,
                        created=created,
                        action_date=action_date,
                        identity=email,
                        properties=meeting_properties,
                    )
                )
        return actions

    async def _attendees(self, meeting_id: str) -> List[str]:
        return await self._executor.execute(
            partial(
                self._client.list_associations,
                self.entity_type.object_type,
                meeting_id,
                EntityType.PERSON.object_type,
            ),
            self._account,
            label=f"asistentes de meeting {meeting_id}",
        )

    async def _attendee_email(self, contact_id: str) -> Optional[str]:
        return await self._executor.execute(
            partial(self._client.get_contact_email, contact_id),
            self._account,
            label=f"email de contacto {contact_id}",
        )
