"""
Casos de uso de la aplicacion.
"""
from .crm_sync_use_cases import AccountSyncReport, CrmSyncUseCases, SyncComponents

__all__ = ["AccountSyncReport", "CrmSyncUseCases", "SyncComponents"]
