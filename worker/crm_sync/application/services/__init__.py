"""
Servicios de aplicacion.

Contiene la logica de sincronizacion reutilizable que no pertenece
a un caso de uso especifico.
"""
from crm_sync.application.services.action_queue import ActionQueue
from crm_sync.application.services.syncers import (
    EntitySyncer,
    EntitySyncResult,
    build_syncers,
    run_entity_sync,
)

__all__ = [
    # Buffer hacia el sink
    "ActionQueue",
    # Syncers por entidad
    "EntitySyncer",
    "EntitySyncResult",
    "build_syncers",
    "run_entity_sync",
]
