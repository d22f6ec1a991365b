"""
Entidad de dominio: Action (evento normalizado hacia el sink de analitica).
"""
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from crm_sync.shared.constants.sync_constants import EntityType
from crm_sync.shared.utils.datetime_utils import ensure_utc, to_iso_z


def filter_null_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Elimina las claves con valor None (las claves quedan ausentes, no nulas)."""
    return {k: v for k, v in values.items() if v is not None}


@dataclass(frozen=True)
class Action:
    """
    Accion "<Entidad> Created" o "<Entidad> Updated".

    Una vez construida es inmutable y se encola exactamente una vez.
    """

    entity_type: EntityType
    created: bool
    action_date: datetime
    properties: Mapping[str, Any] = field(default_factory=dict)
    identity: Optional[str] = None
    include_in_analytics: int = 0

    def __post_init__(self):
        object.__setattr__(self, "action_date", ensure_utc(self.action_date))
        object.__setattr__(
            self, "properties", MappingProxyType(filter_null_values(self.properties))
        )

    @property
    def action_name(self) -> str:
        suffix = "Created" if self.created else "Updated"
        return f"{self.entity_type.label} {suffix}"

    def to_payload(self) -> Dict[str, Any]:
        """Serializa la accion con el formato que espera el sink."""
        payload: Dict[str, Any] = {
            "actionName": self.action_name,
            "actionDate": to_iso_z(self.action_date),
            "includeInAnalytics": self.include_in_analytics,
        }
        if self.identity:
            payload["identity"] = self.identity
        payload[self.entity_type.properties_key] = dict(self.properties)
        return payload
