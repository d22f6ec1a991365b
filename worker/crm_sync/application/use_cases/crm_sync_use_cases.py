"""
Casos de uso de la sincronizacion CRM -> sink.

Flujo por corrida:
- Se cargan las cuentas activas (opcionalmente filtradas / reseteadas).
- Por cada cuenta, EN SECUENCIA: refresh de la sesion, syncers
  people -> organizations -> meetings sobre una misma cola, drain de la cola.
- El fallo de un syncer se registra y no impide los siguientes; el de un
  refresh inicial saltea la cuenta.

Patron asincrono para la API:
- El endpoint inicia el job en background y retorna inmediatamente un job_id.
- El cliente hace polling al endpoint de status hasta que el job termine.
- Una sola corrida a la vez por proceso (la sesion OAuth es compartida).
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence

import httpx
from loguru import logger

from crm_sync.application.dto.sync_dto import (
    AccountSyncResultDTO,
    CrmSyncJobResponseDTO,
    CrmSyncJobStatusDTO,
    EntitySyncResultDTO,
)
from crm_sync.application.services.action_queue import ActionQueue
from crm_sync.application.services.syncers import (
    EntitySyncResult,
    build_syncers,
    run_entity_sync,
)
from crm_sync.core.config import settings
from crm_sync.domain.entities.account import Account
from crm_sync.infrastructure.database.session import AsyncSessionLocal
from crm_sync.infrastructure.external.crm.client import CrmAuthClient, CrmClient
from crm_sync.infrastructure.external.crm.retry import RetryExecutor
from crm_sync.infrastructure.external.crm.session import CrmSession
from crm_sync.infrastructure.external.sink.sink_client import SinkClient
from crm_sync.infrastructure.repositories.account_repository import AccountRepository
from crm_sync.shared.constants.sync_constants import EntitySyncStatus, SyncJobStatus
from crm_sync.shared.exceptions.base import AppException
from crm_sync.shared.exceptions.domain import JobNotFoundException
from crm_sync.shared.exceptions.sync import AuthError, SinkDeliveryError, SyncAlreadyRunningError
from crm_sync.shared.utils.datetime_utils import utc_now


@dataclass
class SyncComponents:
    """Colaboradores de una corrida. La sesion es unica para todas las cuentas."""

    session: CrmSession
    client: CrmClient
    executor: RetryExecutor
    sink: SinkClient


@asynccontextmanager
async def open_sync_components() -> AsyncIterator[SyncComponents]:
    """Arma los clientes desde settings sobre un unico httpx.AsyncClient."""
    async with httpx.AsyncClient(timeout=settings.CRM_HTTP_TIMEOUT) as http:
        auth = CrmAuthClient(http_client=http)
        session = CrmSession(auth)
        yield SyncComponents(
            session=session,
            client=CrmClient(session, http_client=http),
            executor=RetryExecutor(session),
            sink=SinkClient(timeout_s=settings.SINK_HTTP_TIMEOUT, http_client=http),
        )


@dataclass
class AccountSyncReport:
    """Resultado de sincronizar una cuenta."""

    account_id: str
    entities: List[EntitySyncResult] = field(default_factory=list)
    actions_delivered: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and all(
            e.status == EntitySyncStatus.SUCCESS for e in self.entities
        )

    def to_dto(self) -> AccountSyncResultDTO:
        return AccountSyncResultDTO(
            account_id=self.account_id,
            success=self.success,
            actions_delivered=self.actions_delivered,
            error=self.error,
            entities=[
                EntitySyncResultDTO(
                    entity_type=e.entity_type.value,
                    status=e.status.value,
                    pages=e.pages,
                    records=e.records,
                    actions=e.actions,
                    rebases=e.rebases,
                    checkpoint=e.checkpoint,
                    error=e.error,
                )
                for e in self.entities
            ],
        )


@dataclass
class _JobState:
    """Estado interno de un job de sincronizacion."""

    job_id: str
    status: str  # running, completed, failed
    progress: int
    message: str
    full_sync: bool
    created_at: datetime
    updated_at: datetime
    account_ids: Optional[List[str]] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    results: List[AccountSyncResultDTO] = field(default_factory=list)


ComponentsFactory = Callable[[], Any]
ProgressCallback = Callable[[int, int], Any]


class CrmSyncUseCases:
    """
    Orquestador de corridas de sincronizacion.

    Los jobs se guardan en memoria (dict): alcanza para polling simple y no
    introduce infraestructura extra.
    """

    def __init__(
        self,
        session_factory: Callable[[], Any] = AsyncSessionLocal,
        *,
        components_factory: ComponentsFactory = open_sync_components,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._components_factory = components_factory
        self._clock = clock
        self._jobs: Dict[str, _JobState] = {}
        self._jobs_lock = asyncio.Lock()
        self._run_lock = asyncio.Lock()
        self._active_job_id: Optional[str] = None
        self._tasks: set = set()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    async def pull_data(
        self,
        account_ids: Optional[Sequence[str]] = None,
        full_sync: bool = False,
    ) -> List[AccountSyncReport]:
        """
        Ejecuta una corrida completa y espera su fin (uso desde CLI / cron).

        Raises:
            SyncAlreadyRunningError: si ya hay una corrida en este proceso
        """
        if self._run_lock.locked():
            raise SyncAlreadyRunningError(self._active_job_id or "manual")
        async with self._run_lock:
            return await self._pull(account_ids, full_sync)

    async def start_sync(
        self,
        account_ids: Optional[Sequence[str]] = None,
        full_sync: bool = False,
    ) -> CrmSyncJobResponseDTO:
        """
        Inicia una corrida en background.

        Returns:
            CrmSyncJobResponseDTO: respuesta inmediata con job_id para polling

        Raises:
            SyncAlreadyRunningError: si ya hay una corrida en este proceso
        """
        if self._run_lock.locked():
            raise SyncAlreadyRunningError(self._active_job_id or "manual")
        # Sin contencion el acquire no cede el loop: nadie puede colarse entre
        # el chequeo y la toma del lock.
        await self._run_lock.acquire()

        job_id = str(uuid.uuid4())
        self._active_job_id = job_id
        now = self._clock()
        job = _JobState(
            job_id=job_id,
            status=SyncJobStatus.RUNNING.value,
            progress=0,
            message="Iniciando sincronizacion CRM...",
            full_sync=full_sync,
            created_at=now,
            updated_at=now,
            account_ids=list(account_ids) if account_ids else None,
        )

        async with self._jobs_lock:
            self._jobs[job_id] = job

        task = asyncio.create_task(
            self._run_job(job_id=job_id, account_ids=account_ids, full_sync=full_sync)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return CrmSyncJobResponseDTO(
            job_id=job_id,
            status=job.status,
            progress=job.progress,
            message=job.message,
            created_at=job.created_at,
        )

    async def get_job_status(self, job_id: str) -> CrmSyncJobStatusDTO:
        """
        Obtiene el estado actual de un job (para polling).

        Raises:
            JobNotFoundException: si el job no existe
        """
        async with self._jobs_lock:
            job = self._jobs.get(job_id)

        if job is None:
            raise JobNotFoundException(job_id)

        return CrmSyncJobStatusDTO(
            job_id=job.job_id,
            status=job.status,
            progress=job.progress,
            message=job.message,
            full_sync=job.full_sync,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            error=job.error,
            results=list(job.results),
        )

    async def sync_account(
        self,
        account: Account,
        components: SyncComponents,
        store: AccountRepository,
    ) -> AccountSyncReport:
        """
        Sincroniza una cuenta: refresh, los tres syncers en orden y drain.

        Los fallos de cada syncer quedan en el reporte; solo un fallo del
        refresh inicial saltea la cuenta entera.
        """
        report = AccountSyncReport(account_id=account.id)

        try:
            await components.session.refresh(account)
        except AuthError as e:
            logger.error(f"[crm-sync] Cuenta {account.id}: no se pudo refrescar el token: {e.message}")
            report.error = e.message
            return report
        await store.save(account)

        queue = ActionQueue(components.sink.deliver, label=account.id)

        for syncer in build_syncers(components.client, components.executor, account):
            try:
                result = await run_entity_sync(
                    syncer, account, queue=queue, store=store, clock=self._clock
                )
            except AppException as e:
                logger.error(
                    f"[crm-sync] Cuenta {account.id}: {syncer.entity_type.label} abortado "
                    f"({e.error_code}): {e.message}"
                )
                result = EntitySyncResult(
                    entity_type=syncer.entity_type,
                    status=EntitySyncStatus.FAILED,
                    error=e.message,
                )
            except Exception as e:
                logger.exception(
                    f"[crm-sync] Cuenta {account.id}: error inesperado en {syncer.entity_type.label}: {e}"
                )
                result = EntitySyncResult(
                    entity_type=syncer.entity_type,
                    status=EntitySyncStatus.FAILED,
                    error=str(e),
                )
            report.entities.append(result)

        try:
            report.actions_delivered = await queue.drain()
        except SinkDeliveryError as e:
            logger.error(f"[crm-sync] Cuenta {account.id}: entrega al sink incompleta: {e.message}")
            report.actions_delivered = queue.delivered
            report.error = e.message

        logger.info(
            f"[crm-sync] Cuenta {account.id} terminada: "
            f"{'OK' if report.success else 'con errores'}, "
            f"{report.actions_delivered}/{queue.pushed} acciones entregadas"
        )
        return report

    async def _pull(
        self,
        account_ids: Optional[Sequence[str]],
        full_sync: bool,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[AccountSyncReport]:
        """Cuerpo de la corrida. Asume que el caller tiene `_run_lock`."""
        reports: List[AccountSyncReport] = []

        async with self._session_factory() as db:
            repo = AccountRepository(db)
            if full_sync:
                await repo.reset_checkpoints(account_ids)
            accounts = await repo.list_active(account_ids)

            if not accounts:
                logger.warning("[crm-sync] No hay cuentas activas para sincronizar")
                return reports

            logger.info(
                f"[crm-sync] Iniciando corrida {'completa' if full_sync else 'incremental'} "
                f"de {len(accounts)} cuenta(s)"
            )

            async with self._components_factory() as components:
                for index, account in enumerate(accounts, start=1):
                    reports.append(await self.sync_account(account, components, repo))
                    if on_progress:
                        await on_progress(index, len(accounts))

        failed = sum(1 for r in reports if not r.success)
        logger.info(f"[crm-sync] Corrida terminada: {len(reports) - failed} OK, {failed} con errores")
        return reports

    async def _update_job(self, job_id: str, **changes: Any) -> None:
        async with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            for k, v in changes.items():
                setattr(job, k, v)
            job.updated_at = self._clock()

    async def _run_job(
        self,
        *,
        job_id: str,
        account_ids: Optional[Sequence[str]],
        full_sync: bool,
    ) -> None:
        """Ejecuta el job en background. Libera `_run_lock` al terminar."""
        try:
            async def job_progress(done: int, total: int) -> None:
                await self._update_job(
                    job_id,
                    progress=int(done * 100 / total),
                    message=f"Cuentas sincronizadas: {done}/{total}",
                )

            reports = await self._pull(account_ids, full_sync, on_progress=job_progress)
            failed = [r.account_id for r in reports if not r.success]

            await self._update_job(
                job_id,
                status=SyncJobStatus.COMPLETED.value,
                progress=100,
                message=(
                    f"Sincronizacion terminada: {len(reports)} cuenta(s), "
                    f"{len(failed)} con errores"
                ),
                error=f"Cuentas con errores: {', '.join(failed)}" if failed else None,
                results=[r.to_dto() for r in reports],
                completed_at=self._clock(),
            )

        except Exception as e:
            logger.exception(f"[crm-sync-job:{job_id}] Error en job: {e}")
            await self._update_job(
                job_id,
                status=SyncJobStatus.FAILED.value,
                progress=100,
                message="Error inesperado en job",
                error=str(e),
                completed_at=self._clock(),
            )

        finally:
            self._active_job_id = None
            self._run_lock.release()
