"""
Ejecutor de llamadas al CRM con reintentos acotados.

Estrategia (por llamada):
- Sesion ya expirada antes del primer intento: refresh proactivo.
- 429: espera Retry-After (default 5s) y reintenta SIN consumir intento.
  Las esperas por rate limit tienen su propio tope para que un 429 persistente
  no deje el sync colgado.
- 401: refresh de la sesion y reintento, consumiendo un intento.
- Respuesta con formato inesperado: aborta sin reintentar (el error es
  deterministico).
- Otro error del CRM: espera base * 2^intento, consume un intento.
- Presupuesto agotado: SyncAbortedError.

AuthError (fallo del refresh) se propaga tal cual.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from crm_sync.core.config import settings
from crm_sync.domain.entities.account import Account
from crm_sync.infrastructure.external.crm.session import CrmSession
from crm_sync.shared.exceptions.sync import (
    CrmApiError,
    MalformedResponseError,
    RateLimitedError,
    SyncAbortedError,
    UnauthorizedError,
)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """Envuelve una llamada remota con la politica de reintentos del sync."""

    def __init__(
        self,
        session: CrmSession,
        *,
        max_attempts: int = settings.SYNC_MAX_ATTEMPTS,
        backoff_base_s: float = settings.SYNC_BACKOFF_BASE_SECONDS,
        rate_limit_default_wait_s: float = settings.SYNC_RATE_LIMIT_DEFAULT_WAIT,
        max_rate_limit_waits: int = settings.SYNC_MAX_RATE_LIMIT_WAITS,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._session = session
        self._max_attempts = max_attempts
        self._backoff_base_s = backoff_base_s
        self._rate_limit_default_wait_s = rate_limit_default_wait_s
        self._max_rate_limit_waits = max_rate_limit_waits
        self._sleep = sleep or asyncio.sleep

    @property
    def session(self) -> CrmSession:
        return self._session

    def backoff_for(self, attempt: int) -> float:
        """Espera tras un fallo transitorio en el intento `attempt` (base 0)."""
        return self._backoff_base_s * (2 ** attempt)

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        account: Account,
        *,
        label: str = "registros",
    ) -> T:
        """
        Ejecuta `call` contra la sesion actual.

        Args:
            call: fabrica de la corrutina a ejecutar (se invoca en cada intento)
            account: cuenta cuyo refresh token se usa si hay que refrescar
            label: descripcion de lo que se pide, para logs y errores

        Raises:
            SyncAbortedError: si se agota el presupuesto de intentos
            AuthError: si falla el refresh del token
        """
        if self._session.is_expired():
            logger.info(f"[crm-retry] Sesion expirada antes de pedir {label}; refrescando")
            await self._session.refresh(account)

        attempt = 0
        rate_limit_waits = 0

        while True:
            try:
                return await call()

            except RateLimitedError as e:
                rate_limit_waits += 1
                if rate_limit_waits > self._max_rate_limit_waits:
                    raise SyncAbortedError(
                        f"failed to fetch {label}: rate limit persistente "
                        f"tras {self._max_rate_limit_waits} esperas",
                        account_id=account.id,
                        operation=label,
                    ) from e
                wait_s = e.retry_after if e.retry_after is not None else self._rate_limit_default_wait_s
                logger.warning(
                    f"[crm-retry] Rate limit pidiendo {label} (cuenta {account.id}). "
                    f"Esperando {wait_s}s"
                )
                await self._sleep(wait_s)

            except UnauthorizedError as e:
                attempt += 1
                logger.warning(
                    f"[crm-retry] 401 pidiendo {label} (cuenta {account.id}), "
                    f"intento {attempt}/{self._max_attempts}. Refrescando token"
                )
                if attempt >= self._max_attempts:
                    raise self._aborted(label, account, attempt) from e
                await self._session.refresh(account)

            except MalformedResponseError as e:
                logger.error(
                    f"[crm-retry] Respuesta invalida pidiendo {label} (cuenta {account.id}): {e.message}"
                )
                raise SyncAbortedError(
                    f"failed to fetch {label}: {e.message}",
                    account_id=account.id,
                    operation=label,
                ) from e

            except CrmApiError as e:
                wait_s = self.backoff_for(attempt)
                attempt += 1
                logger.warning(
                    f"[crm-retry] Error pidiendo {label} (cuenta {account.id}), "
                    f"intento {attempt}/{self._max_attempts}: {e.message}"
                )
                if attempt >= self._max_attempts:
                    raise self._aborted(label, account, attempt) from e
                await self._sleep(wait_s)

    @staticmethod
    def _aborted(label: str, account: Account, attempts: int) -> SyncAbortedError:
        return SyncAbortedError(
            f"failed to fetch {label} after {attempts} attempts",
            account_id=account.id,
            operation=label,
        )
