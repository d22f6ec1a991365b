"""
Endpoints para disparar y consultar la sincronizacion CRM -> sink.

El POST no espera la corrida: devuelve un job_id para polling (una corrida
con muchas cuentas puede tardar minutos).
"""
from fastapi import APIRouter, Depends, status
from loguru import logger

from crm_sync.api.v1.dependencies.use_case_deps import get_crm_sync_use_cases
from crm_sync.application.dto.sync_dto import (
    CrmSyncJobResponseDTO,
    CrmSyncJobStatusDTO,
    CrmSyncRequestDTO,
)
from crm_sync.application.use_cases.crm_sync_use_cases import CrmSyncUseCases


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/crm",
    response_model=CrmSyncJobResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Iniciar sincronizacion CRM"
)
async def start_crm_sync(
    request: CrmSyncRequestDTO,
    use_cases: CrmSyncUseCases = Depends(get_crm_sync_use_cases),
) -> CrmSyncJobResponseDTO:
    """
    Inicia una corrida en background.

    - `account_ids`: limita la corrida a esas cuentas (default: todas las activas)
    - `full_sync`: borra los checkpoints antes de correr

    Responde 409 si ya hay una corrida en curso.
    """
    sync_type = "completa (full sync)" if request.full_sync else "incremental"
    logger.info(f"Iniciando sincronizacion {sync_type} CRM desde API")
    return await use_cases.start_sync(request.account_ids, full_sync=request.full_sync)


@router.get(
    "/crm/{job_id}",
    response_model=CrmSyncJobStatusDTO,
    summary="Estado de una sincronizacion CRM"
)
async def get_crm_sync_status(
    job_id: str,
    use_cases: CrmSyncUseCases = Depends(get_crm_sync_use_cases),
) -> CrmSyncJobStatusDTO:
    """Estado del job (polling). 404 si el job no existe."""
    return await use_cases.get_job_status(job_id)
