"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    AccountSyncResultDTO,
    CrmSyncJobResponseDTO,
    CrmSyncJobStatusDTO,
    CrmSyncRequestDTO,
    EntitySyncResultDTO,
)

__all__ = [
    "AccountSyncResultDTO",
    "CrmSyncJobResponseDTO",
    "CrmSyncJobStatusDTO",
    "CrmSyncRequestDTO",
    "EntitySyncResultDTO",
]
