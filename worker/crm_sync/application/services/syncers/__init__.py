"""
Syncers por tipo de entidad y loop compartido.
"""
from typing import List

from crm_sync.application.services.syncers.base import (
    EntitySyncer,
    EntitySyncResult,
    classify,
)
from crm_sync.application.services.syncers.driver import CheckpointStore, run_entity_sync
from crm_sync.application.services.syncers.meetings import MeetingSyncer
from crm_sync.application.services.syncers.organizations import OrganizationSyncer
from crm_sync.application.services.syncers.people import PersonSyncer
from crm_sync.domain.entities.account import Account
from crm_sync.infrastructure.external.crm.client import CrmClient
from crm_sync.infrastructure.external.crm.retry import RetryExecutor
from crm_sync.shared.constants.sync_constants import SYNC_ORDER, EntityType

_SYNCERS = {
    EntityType.ORGANIZATION: OrganizationSyncer,
    EntityType.PERSON: PersonSyncer,
    EntityType.MEETING: MeetingSyncer,
}


def build_syncers(client: CrmClient, executor: RetryExecutor, account: Account) -> List[EntitySyncer]:
    """Syncers de una cuenta en el orden en que deben correr."""
    return [_SYNCERS[entity](client, executor, account) for entity in SYNC_ORDER]


__all__ = [
    "CheckpointStore",
    "EntitySyncer",
    "EntitySyncResult",
    "MeetingSyncer",
    "OrganizationSyncer",
    "PersonSyncer",
    "build_syncers",
    "classify",
    "run_entity_sync",
]
