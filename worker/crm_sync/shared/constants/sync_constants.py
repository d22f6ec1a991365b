"""
Constantes de la sincronizacion CRM.
Define tipos de entidad, estados de job y limites del API remoto.
"""
from enum import Enum


class EntityType(str, Enum):
    """
    Tipos de entidad sincronizados.

    El valor es la clave usada en `last_pulled_dates` de la cuenta.
    """
    ORGANIZATION = "organizations"
    PERSON = "people"
    MEETING = "meetings"

    @property
    def label(self) -> str:
        """Nombre usado en los nombres de accion ("Organization Created", ...)."""
        return _LABELS[self]

    @property
    def object_type(self) -> str:
        """Nombre del objeto en el API del CRM."""
        return _OBJECT_TYPES[self]

    @property
    def properties_key(self) -> str:
        """Clave del bag de propiedades en el payload de la accion hacia el sink."""
        return _PROPERTIES_KEYS[self]


_LABELS = {
    EntityType.ORGANIZATION: "Organization",
    EntityType.PERSON: "Person",
    EntityType.MEETING: "Meeting",
}

_OBJECT_TYPES = {
    EntityType.ORGANIZATION: "companies",
    EntityType.PERSON: "contacts",
    EntityType.MEETING: "meetings",
}

_PROPERTIES_KEYS = {
    EntityType.ORGANIZATION: "organizationProperties",
    EntityType.PERSON: "userProperties",
    EntityType.MEETING: "meetingProperties",
}

# Orden en que el orquestador corre los syncers de una cuenta
SYNC_ORDER = (EntityType.PERSON, EntityType.ORGANIZATION, EntityType.MEETING)


class SyncJobStatus(str, Enum):
    """Estados posibles de un job de sincronizacion."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EntitySyncStatus(str, Enum):
    """Resultado de la corrida de un syncer de entidad."""
    SUCCESS = "success"
    FAILED = "failed"


# El API de busqueda rechaza offsets >= 10.000 sin importar cuantos registros
# cumplan el filtro.
SEARCH_OFFSET_LIMIT = 10_000
DEFAULT_OFFSET_CEILING = 9_900
DEFAULT_PAGE_SIZE = 100
