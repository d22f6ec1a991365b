"""
Dependencias para inyeccion de casos de uso.
"""
from functools import lru_cache

from crm_sync.application.use_cases.crm_sync_use_cases import CrmSyncUseCases


@lru_cache(maxsize=1)
def get_crm_sync_use_cases() -> CrmSyncUseCases:
    """
    Dependencia para obtener el orquestador de sincronizacion.

    Es un singleton de proceso: guarda los jobs en memoria y serializa las
    corridas (una sola a la vez).

    Returns:
        CrmSyncUseCases: Instancia compartida del orquestador
    """
    return CrmSyncUseCases()
