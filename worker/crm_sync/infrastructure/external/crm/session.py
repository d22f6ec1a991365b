"""
Sesion OAuth contra el CRM.

La sesion es de alcance de proceso: un unico access token compartido por todos
los syncers y todas las cuentas de una corrida. Refrescarla para una cuenta la
sobreescribe para todas.

Invariante de un solo escritor: las cuentas se procesan estrictamente en
secuencia (ver CrmSyncUseCases), por eso no hay locking aqui. Introducir
concurrencia entre cuentas exigiria proteger este objeto.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from loguru import logger

from crm_sync.domain.entities.account import Account
from crm_sync.shared.utils.datetime_utils import ensure_utc, utc_now


class TokenGrant(Protocol):
    access_token: str
    expires_in: int


class TokenRefresher(Protocol):
    """Capacidad externa que ejecuta el grant refresh_token (ver CrmAuthClient)."""

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        ...


class CrmSession:
    """Access token vigente y su instante de expiracion."""

    def __init__(
        self,
        auth_client: TokenRefresher,
        *,
        access_token: str = "",
        expires_at: Optional[datetime] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._auth = auth_client
        self._access_token = access_token
        self._expires_at = ensure_utc(expires_at) if expires_at else None
        self._clock = clock

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._expires_at

    def current_token(self) -> str:
        return self._access_token

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True si `now` ya paso la expiracion o si nunca se registro una."""
        if self._expires_at is None:
            return True
        now = ensure_utc(now) if now else self._clock()
        return now > self._expires_at

    async def refresh(self, account: Account) -> str:
        """
        Obtiene un access token nuevo con el refresh token de la cuenta.

        Escribe el token en la cuenta si cambio; la persistencia queda a cargo
        del caller (se guarda junto con el checkpoint).

        Raises:
            AuthError: si el grant falla. No se reintenta aqui.
        """
        called_at = self._clock()
        grant = await self._auth.refresh_access_token(account.refresh_token)

        self._access_token = grant.access_token
        self._expires_at = called_at + timedelta(seconds=grant.expires_in)

        if grant.access_token != account.access_token:
            account.access_token = grant.access_token

        logger.info(
            f"[crm-session] Token refrescado para cuenta {account.id} "
            f"(expira {self._expires_at.isoformat()})"
        )
        return self._access_token
