"""
DTOs para la sincronizacion CRM -> sink.

Patron de job asincrono: POST inicia la corrida y devuelve `job_id`; el estado
se consulta por polling.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CrmSyncRequestDTO(BaseModel):
    """Request para iniciar una corrida de sincronizacion."""

    account_ids: Optional[List[str]] = Field(
        None,
        description="Cuentas a sincronizar. Si se omite, se sincronizan todas las activas."
    )
    full_sync: bool = Field(
        False,
        description="Si True, borra los checkpoints antes de correr (re-sincroniza todo)."
    )


class EntitySyncResultDTO(BaseModel):
    entity_type: str
    status: str
    pages: int = 0
    records: int = 0
    actions: int = 0
    rebases: int = 0
    checkpoint: Optional[datetime] = None
    error: Optional[str] = None


class AccountSyncResultDTO(BaseModel):
    account_id: str
    success: bool
    actions_delivered: int = 0
    error: Optional[str] = None
    entities: List[EntitySyncResultDTO] = Field(default_factory=list)


class CrmSyncJobResponseDTO(BaseModel):
    """Respuesta inmediata al iniciar un job."""

    job_id: str
    status: str
    progress: int
    message: str
    created_at: datetime


class CrmSyncJobStatusDTO(BaseModel):
    """Estado actual del job (polling)."""

    job_id: str
    status: str
    progress: int
    message: str
    full_sync: bool = False
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    results: List[AccountSyncResultDTO] = Field(default_factory=list)
