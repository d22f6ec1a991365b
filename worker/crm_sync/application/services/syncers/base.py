"""
Contrato comun de los syncers de entidad.

Cada tipo de entidad implementa la capacidad `EntitySyncer` (propiedades a
pedir, campo de fecha del filtro, fetch de pagina y transformacion a acciones).
La clasificacion Created/Updated y el loop de paginacion son compartidos y se
componen en `run_entity_sync` (ver driver.py), sin herencia entre syncers.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from crm_sync.domain.entities.action import Action
from crm_sync.domain.entities.record import Record, SearchPage
from crm_sync.shared.constants.sync_constants import EntitySyncStatus, EntityType


class EntitySyncer(Protocol):
    """Capacidad por tipo de entidad."""

    entity_type: EntityType
    date_property: str
    properties: Sequence[str]

    async def fetch_page(self, request: Dict) -> SearchPage:
        """Ejecuta una busqueda (una pagina) con reintentos."""
        ...

    async def transform(self, records: List[Record], checkpoint: Optional[datetime]) -> List[Action]:
        """Convierte una pagina de registros en cero o mas acciones (con enriquecimiento)."""
        ...


def classify(record: Record, checkpoint: Optional[datetime]) -> Tuple[bool, datetime]:
    """
    Clasifica un registro como creado o actualizado respecto del checkpoint.

    Created si no hay checkpoint o si la creacion es estrictamente posterior.
    La fecha de la accion es la de creacion para Created y la de ultima
    modificacion para Updated.

    Returns:
        (created, action_date)
    """
    created = checkpoint is None or record.created_at > checkpoint
    return created, (record.created_at if created else record.updated_at)


@dataclass
class EntitySyncResult:
    """Resultado de la corrida de un syncer para una cuenta."""

    entity_type: EntityType
    status: EntitySyncStatus = EntitySyncStatus.SUCCESS
    pages: int = 0
    records: int = 0
    actions: int = 0
    rebases: int = 0
    checkpoint: Optional[datetime] = None
    error: Optional[str] = None
