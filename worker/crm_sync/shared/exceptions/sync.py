"""
Excepciones de la sincronización CRM -> sink.

Taxonomia:
- RateLimitedError: el CRM pide esperar (429). Siempre recuperable esperando.
- UnauthorizedError: token invalido o expirado (401). Recuperable refrescando.
- TransientError: cualquier otro fallo de red/servidor. Recuperable con backoff acotado.
- MalformedResponseError: respuesta 2xx que no cumple el schema esperado. No se reintenta.
- AuthError: fallo del propio refresh del token. Fatal, se propaga.
- SyncAbortedError: presupuesto de intentos agotado. Fatal solo para la entidad en curso.
"""
from typing import Any, Dict, Optional

from crm_sync.shared.exceptions.base import AppException


class CrmApiError(AppException):
    """Excepcion base para errores de integracion con el CRM."""

    def __init__(
        self,
        message: str,
        error_code: str = "CRM_API_ERROR",
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        super().__init__(
            message=message,
            status_code=502,
            error_code=error_code,
            details={**(details or {}), "upstream_status": status},
        )


class RateLimitedError(CrmApiError):
    """El CRM respondio 429. `retry_after` en segundos si vino en la respuesta."""

    def __init__(self, message: str = "Rate limit del CRM", retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(
            message=message,
            error_code="CRM_RATE_LIMITED",
            status=429,
            details={"retry_after": retry_after},
        )


class UnauthorizedError(CrmApiError):
    """El CRM rechazo el access token (401)."""

    def __init__(self, message: str = "Access token rechazado por el CRM"):
        super().__init__(message=message, error_code="CRM_UNAUTHORIZED", status=401)


class TransientError(CrmApiError):
    """Error de red, 5xx u otra respuesta inesperada del CRM."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message=message, error_code="CRM_TRANSIENT_ERROR", status=status)


class MalformedResponseError(CrmApiError):
    """Respuesta 2xx del CRM que no cumple el schema esperado."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message=message, error_code="CRM_MALFORMED_RESPONSE", status=status)


class AuthError(AppException):
    """Fallo al refrescar el access token con el refresh token de la cuenta."""

    def __init__(self, message: str, account_id: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="CRM_AUTH_ERROR",
            details={"account_id": account_id},
        )


class SyncAbortedError(AppException):
    """Se agoto el presupuesto de reintentos (o la paginacion no puede avanzar)."""

    def __init__(self, message: str, account_id: Optional[str] = None, operation: Optional[str] = None):
        self.account_id = account_id
        self.operation = operation
        super().__init__(
            message=message,
            status_code=502,
            error_code="SYNC_ABORTED",
            details={"account_id": account_id, "operation": operation},
        )


class SinkDeliveryError(AppException):
    """El sink no acepto uno o mas lotes de acciones."""

    def __init__(self, message: str, failed_batches: int = 1, failed_actions: int = 0):
        self.failed_batches = failed_batches
        self.failed_actions = failed_actions
        super().__init__(
            message=message,
            status_code=502,
            error_code="SINK_DELIVERY_ERROR",
            details={"failed_batches": failed_batches, "failed_actions": failed_actions},
        )


class SyncAlreadyRunningError(AppException):
    """Ya hay una corrida de sincronizacion en curso en este proceso."""

    def __init__(self, job_id: str):
        super().__init__(
            message=f"Ya existe una sincronizacion en curso (job {job_id})",
            status_code=409,
            error_code="SYNC_ALREADY_RUNNING",
            details={"job_id": job_id},
        )
