"""
Entidades del dominio.
"""
from crm_sync.domain.entities.account import Account
from crm_sync.domain.entities.action import Action, filter_null_values
from crm_sync.domain.entities.record import Record, SearchPage

__all__ = [
    "Account",
    "Action",
    "filter_null_values",
    "Record",
    "SearchPage",
]
