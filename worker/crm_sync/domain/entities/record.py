"""
Registro crudo del CRM, ya parseado en el borde del cliente HTTP.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class Record:
    """Registro minimo para sync. Inmutable una vez obtenido."""

    id: str
    created_at: datetime
    updated_at: datetime
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchPage:
    """Una pagina de resultados de busqueda y el token de la siguiente."""

    results: list
    next_after: str | None = None

    @property
    def last_record(self) -> Record | None:
        return self.results[-1] if self.results else None
