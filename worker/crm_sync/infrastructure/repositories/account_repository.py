"""
Repositorio de cuentas CRM (tokens OAuth y checkpoints por entidad).
"""
from typing import Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_sync.domain.entities.account import Account
from crm_sync.infrastructure.database.models import CrmAccountModel
from crm_sync.shared.exceptions.domain import EntityNotFoundException
from crm_sync.shared.utils.datetime_utils import ensure_utc, parse_instant, to_iso_z


class AccountRepository:
    """
    Gestiona la tabla crm_accounts.

    `save` hace commit: el checkpoint de cada entidad debe quedar durable apenas
    el syncer termina, aunque la siguiente entidad de la cuenta falle.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active(self, account_ids: Optional[Iterable[str]] = None) -> List[Account]:
        """
        Lista las cuentas activas, opcionalmente filtradas por id.
        """
        query = select(CrmAccountModel).where(CrmAccountModel.is_active.is_(True))
        if account_ids:
            query = query.where(CrmAccountModel.id.in_(list(account_ids)))
        query = query.order_by(CrmAccountModel.id)

        result = await self.db.execute(query)
        return [self._to_entity(row) for row in result.scalars().all()]

    async def get_by_id(self, account_id: str) -> Account:
        """
        Obtiene una cuenta por id.

        Raises:
            EntityNotFoundException: si la cuenta no existe
        """
        model = await self.db.get(CrmAccountModel, account_id)
        if model is None:
            raise EntityNotFoundException("Cuenta CRM", account_id)
        return self._to_entity(model)

    async def save(self, account: Account) -> None:
        """
        Persiste tokens y checkpoints de la cuenta.

        Raises:
            EntityNotFoundException: si la cuenta no existe
        """
        model = await self.db.get(CrmAccountModel, account.id)
        if model is None:
            raise EntityNotFoundException("Cuenta CRM", account.id)

        model.access_token = account.access_token
        model.refresh_token = account.refresh_token
        model.last_pulled_date = account.last_pulled_date
        # Dict nuevo para que SQLAlchemy detecte el cambio en la columna JSON
        model.last_pulled_dates = self._serialize_checkpoints(account.last_pulled_dates)

        await self._commit()
        logger.debug(f"[crm-accounts] Cuenta {account.id} guardada: {model.last_pulled_dates}")

    async def reset_checkpoints(self, account_ids: Optional[Iterable[str]] = None) -> int:
        """
        Borra los checkpoints de las cuentas activas (fuerza full sync).

        Returns:
            int: cantidad de cuentas reseteadas
        """
        query = select(CrmAccountModel).where(CrmAccountModel.is_active.is_(True))
        if account_ids:
            query = query.where(CrmAccountModel.id.in_(list(account_ids)))
        result = await self.db.execute(query)
        models = result.scalars().all()

        for model in models:
            model.last_pulled_date = None
            model.last_pulled_dates = {}

        await self._commit()
        logger.info(f"[crm-accounts] Checkpoints reseteados en {len(models)} cuenta(s)")
        return len(models)

    async def upsert_account(
        self,
        account_id: str,
        *,
        name: Optional[str] = None,
        access_token: str = "",
        refresh_token: str = "",
        is_active: bool = True,
    ) -> Account:
        """
        Crea o actualiza una cuenta (usado por el seed). No toca los checkpoints.
        """
        model = await self.db.get(CrmAccountModel, account_id)
        if model is None:
            model = CrmAccountModel(id=account_id, last_pulled_dates={})
            self.db.add(model)

        model.name = name
        model.access_token = access_token
        model.refresh_token = refresh_token
        model.is_active = is_active

        await self._commit()
        logger.info(f"[crm-accounts] Cuenta {account_id} registrada (activa={is_active})")
        return self._to_entity(model)

    async def _commit(self) -> None:
        # La sesion se comparte entre cuentas y entidades de una corrida:
        # una escritura fallida no debe dejarla inutilizable para las siguientes
        try:
            await self.db.flush()
            await self.db.commit()
        except Exception as e:
            logger.error(f"[crm-accounts] Error persistiendo cambios, rollback: {e}")
            await self.db.rollback()
            raise

    @staticmethod
    def _serialize_checkpoints(checkpoints: Dict[str, object]) -> Dict[str, str]:
        serialized = {}
        for key, value in checkpoints.items():
            instant = parse_instant(value)
            if instant is not None:
                serialized[key] = to_iso_z(instant)
        return serialized

    @staticmethod
    def _to_entity(model: CrmAccountModel) -> Account:
        checkpoints = {}
        for key, value in (model.last_pulled_dates or {}).items():
            instant = parse_instant(value)
            if instant is not None:
                checkpoints[key] = instant

        return Account(
            id=model.id,
            name=model.name,
            access_token=model.access_token or "",
            refresh_token=model.refresh_token or "",
            last_pulled_dates=checkpoints,
            last_pulled_date=ensure_utc(model.last_pulled_date) if model.last_pulled_date else None,
            is_active=bool(model.is_active),
        )
