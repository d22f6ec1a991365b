"""
Excepción base para todas las excepciones personalizadas del worker.
"""
from typing import Optional, Dict, Any


class AppException(Exception):
    """
    Excepción base del worker de sincronización.
    Todas las excepciones personalizadas deben heredar de esta clase.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Inicializa la excepción.

        Args:
            message: Mensaje de error descriptivo
            status_code: Código de estado HTTP cuando se expone por la API
            error_code: Código de error personalizado
            details: Contexto adicional (cuenta, entidad, operación...)
        """
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Representación serializable para respuestas JSON y logs."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }
