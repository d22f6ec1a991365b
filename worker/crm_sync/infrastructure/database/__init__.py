"""
Configuracion de base de datos.

Importa los modelos para que se registren con Base
antes de crear las tablas.
"""
from crm_sync.infrastructure.database.models import CrmAccountModel

__all__ = ["CrmAccountModel"]
