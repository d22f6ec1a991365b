"""
Syncer de personas (contacts en el CRM).

Por pagina hace UN batch read de asociaciones persona -> organizacion. Las
personas sin email se descartan: no hay identidad con la cual cruzarlas en el
sink.
"""
from __future__ import annotations

import re
from datetime import datetime
from functools import partial
from typing import Dict, List, Optional

from loguru import logger

from crm_sync.application.services.syncers.base import classify
from crm_sync.domain.entities.account import Account
from crm_sync.domain.entities.action import Action
from crm_sync.domain.entities.record import Record, SearchPage
from crm_sync.infrastructure.external.crm.client import CrmClient
from crm_sync.infrastructure.external.crm.retry import RetryExecutor
from crm_sync.infrastructure.external.crm.schemas import PersonPropertiesSchema
from crm_sync.shared.constants.sync_constants import EntityType

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def parse_score(raw: Optional[str]) -> int:
    """Entero inicial del score ("12.5" -> 12); ausente o no numerico -> 0."""
    if raw is None:
        return 0
    match = _LEADING_INT.match(str(raw))
    return int(match.group(1)) if match else 0


def full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    """Nombre + apellido sin espacios sobrantes; None si ambos faltan."""
    name = f"{first or ''} {last or ''}".strip()
    return name or None


class PersonSyncer:
    entity_type = EntityType.PERSON
    date_property = "lastmodifieddate"
    properties = (
        "firstname",
        "lastname",
        "jobtitle",
        "email",
        "hubspotscore",
        "hs_lead_status",
        "hs_analytics_source",
        "hs_latest_source",
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
        people = []
        for record in records:
            props = PersonPropertiesSchema.model_validate(record.properties)
            if not props.email:
                continue
            people.append((record, props))

        skipped = len(records) - len(people)
        if skipped:
            logger.debug(f"[crm-sync] Person: {skipped} registros sin email descartados")

        companies = await self._company_associations([record.id for record, _ in people])

        actions: List[Action] = []
        for record, props in people:
            created, action_date = classify(record, checkpoint)
            actions.append(
                Action(
                    entity_type=self.entity_type,
                    created=created,
                    action_date=action_date,
                    identity=props.email,
                    properties={
                        "company_id": companies.get(record.id),
                        "person_name": full_name(props.firstname, props.lastname),
                        "person_title": props.jobtitle,
                        "person_source": props.hs_analytics_source,
                        "person_status": props.hs_lead_status,
                        "person_score": parse_score(props.hubspotscore),
                    },
                )
            )
        return actions

    async def _company_associations(self, person_ids: List[str]) -> Dict[str, str]:
        if not person_ids:
            return {}
        return await self._executor.execute(
            partial(
                self._client.batch_read_associations,
                EntityType.PERSON.object_type,
                EntityType.ORGANIZATION.object_type,
                person_ids,
            ),
            self._account,
            label="asociaciones people->organizations",
        )
