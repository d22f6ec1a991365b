"""
Entidad de dominio: Account (cuenta CRM conectada).
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from crm_sync.shared.constants.sync_constants import EntityType
from crm_sync.shared.utils.datetime_utils import ensure_utc


@dataclass
class Account:
    """
    Cuenta del CRM cuyo contenido se sincroniza.

    El store es el dueño de la cuenta; el motor solo muta los tokens y el mapa
    de checkpoints en memoria y luego pide persistirlos.
    """

    id: str
    access_token: str = ""
    refresh_token: str = ""
    last_pulled_dates: Dict[str, datetime] = field(default_factory=dict)
    # Checkpoint a nivel de cuenta, usado cuando la entidad aun no tiene uno propio
    last_pulled_date: Optional[datetime] = None
    name: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        if not self.id:
            raise ValueError("La cuenta debe tener un id")

    def checkpoint_for(self, entity_type: EntityType) -> Optional[datetime]:
        """Ultimo instante sincronizado para la entidad (o el de la cuenta)."""
        value = self.last_pulled_dates.get(entity_type.value) or self.last_pulled_date
        return ensure_utc(value) if value else None

    def advance_checkpoint(self, entity_type: EntityType, instant: datetime) -> datetime:
        """
        Avanza el checkpoint de la entidad sin retroceder nunca.

        Aplicarlo dos veces con el mismo instante deja el mismo valor.

        Returns:
            datetime: checkpoint vigente tras la operacion
        """
        instant = ensure_utc(instant)
        current = self.last_pulled_dates.get(entity_type.value)
        if current is None or instant > ensure_utc(current):
            self.last_pulled_dates[entity_type.value] = instant
            return instant
        return ensure_utc(current)
