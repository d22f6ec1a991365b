"""
Excepciones relacionadas con la logica de dominio.
"""
from typing import Any

from crm_sync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepcion base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class EntityNotFoundException(DomainException):
    """Excepcion cuando no se encuentra una entidad."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} con ID {entity_id} no encontrado",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404


class JobNotFoundException(DomainException):
    """Excepcion cuando no existe el job de sincronizacion consultado."""

    def __init__(self, job_id: str):
        super().__init__(
            message=f"Job de sincronizacion '{job_id}' no encontrado",
            error_code="JOB_NOT_FOUND",
            details={"job_id": job_id}
        )
        self.status_code = 404
