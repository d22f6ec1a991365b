"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import Column, String, DateTime, Text, JSON, Boolean
from sqlalchemy.sql import func

from crm_sync.infrastructure.database.session import Base


class CrmAccountModel(Base):
    """
    Cuenta CRM conectada: tokens OAuth y checkpoints de sincronizacion.

    `last_pulled_dates` guarda un mapa {entidad: instante ISO-8601 UTC}
    ("organizations", "people", "meetings").
    """

    __tablename__ = "crm_accounts"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    access_token = Column(Text, nullable=False, default="")
    refresh_token = Column(Text, nullable=False, default="")
    last_pulled_date = Column(DateTime(timezone=True), nullable=True)
    last_pulled_dates = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<CrmAccount(id={self.id}, name={self.name}, active={self.is_active})>"
