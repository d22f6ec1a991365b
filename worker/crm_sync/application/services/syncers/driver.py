"""
Loop compartido de sincronizacion de una entidad.

Estados: INIT -> FETCH_PAGE -> BUILD_ACTIONS -> ADVANCE_CURSOR ->
{FETCH_PAGE | PERSIST_CHECKPOINT -> DONE}. Un fallo irrecuperable en
FETCH_PAGE aborta: el checkpoint NO se persiste y las acciones ya encoladas de
paginas anteriores quedan en la cola (se prefiere entregar de mas a perder).

El checkpoint se mueve al instante de INICIO de la corrida, no al de fin: asi
ningun registro modificado durante la corrida queda fuera de la siguiente
ventana, a costa de re-escanear un pequeño solapamiento.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol

from loguru import logger

from crm_sync.application.services.action_queue import ActionQueue
from crm_sync.application.services.syncers.base import EntitySyncer, EntitySyncResult
from crm_sync.core.config import settings
from crm_sync.domain.entities.account import Account
from crm_sync.infrastructure.external.crm.pagination import PaginationCursor
from crm_sync.shared.utils.datetime_utils import utc_now


class CheckpointStore(Protocol):
    """Persistencia de la cuenta (tokens y checkpoints)."""

    async def save(self, account: Account) -> None:
        ...


async def run_entity_sync(
    syncer: EntitySyncer,
    account: Account,
    *,
    queue: ActionQueue,
    store: CheckpointStore,
    clock: Callable[[], datetime] = utc_now,
    page_size: int = settings.SYNC_PAGE_SIZE,
    offset_ceiling: int = settings.SYNC_OFFSET_CEILING,
) -> EntitySyncResult:
    """
    Recorre todas las paginas de la ventana `[checkpoint, inicio de corrida]`.

    Raises:
        SyncAbortedError / AuthError: se propagan sin tocar el checkpoint
    """
    entity = syncer.entity_type
    checkpoint = account.checkpoint_for(entity)
    run_start = clock()
    cursor = PaginationCursor(
        checkpoint, run_start, page_size=page_size, offset_ceiling=offset_ceiling
    )
    result = EntitySyncResult(entity_type=entity)

    logger.info(
        f"[crm-sync] {entity.label}: cuenta {account.id}, ventana desde "
        f"{checkpoint.isoformat() if checkpoint else 'el inicio'} hasta {run_start.isoformat()}"
    )

    while cursor.has_more():
        request = cursor.next_request(syncer.date_property, syncer.properties)
        page = await syncer.fetch_page(request)
        result.pages += 1
        result.records += len(page.results)

        actions = await syncer.transform(page.results, checkpoint)
        for action in actions:
            queue.push(action)
        result.actions += len(actions)

        logger.debug(
            f"[crm-sync] {entity.label}: pagina {result.pages} con {len(page.results)} "
            f"registros -> {len(actions)} acciones"
        )

        cursor.advance(page.next_after, page.last_record)

    result.rebases = cursor.rebases
    result.checkpoint = account.advance_checkpoint(entity, run_start)
    await store.save(account)

    logger.info(
        f"[crm-sync] {entity.label}: cuenta {account.id} completada. "
        f"paginas={result.pages}, registros={result.records}, acciones={result.actions}"
    )
    return result
