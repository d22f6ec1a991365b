"""
Cliente HTTP async del CRM (httpx).

Requisitos cubiertos:
- busqueda paginada por offset (`after`)
- batch read de asociaciones persona -> organizacion
- asociaciones reunion -> asistentes y detalle (email) de cada asistente
- grant refresh_token

Este modulo NO reintenta: solo clasifica errores para que RetryExecutor decida.
- 429 -> RateLimitedError (con Retry-After si vino)
- 401 -> UnauthorizedError
- red / 5xx / cualquier otro no-2xx / payload inesperado -> TransientError
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from crm_sync.core.config import settings
from crm_sync.domain.entities.record import SearchPage
from crm_sync.infrastructure.external.crm.schemas import (
    AssociationBatchResponseSchema,
    AssociationListResponseSchema,
    ContactEmailSchema,
    SearchResponseSchema,
    TokenResponseSchema,
)
from crm_sync.infrastructure.external.crm.session import CrmSession
from crm_sync.shared.exceptions.sync import (
    AuthError,
    MalformedResponseError,
    RateLimitedError,
    TransientError,
    UnauthorizedError,
)


def _parse_retry_after(raw: Optional[str]) -> Optional[float]:
    """Retry-After en segundos; None si falta o no es numerico."""
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None


def raise_for_crm_status(resp: httpx.Response) -> None:
    """Traduce una respuesta no exitosa a la taxonomia de errores del sync."""
    if 200 <= resp.status_code < 300:
        return

    if resp.status_code == 429:
        raise RateLimitedError(
            message=f"CRM rate limit en {resp.request.url.path}",
            retry_after=_parse_retry_after(resp.headers.get("Retry-After")),
        )

    if resp.status_code == 401:
        raise UnauthorizedError(f"CRM respondio 401 en {resp.request.url.path}")

    raise TransientError(
        f"CRM respondio {resp.status_code} en {resp.request.url.path}: {resp.text[:500]}",
        status=resp.status_code,
    )


class CrmClient:
    """
    Cliente del API de objetos del CRM.

    El bearer token se lee de la sesion en cada request, asi un refresh hecho
    por el ejecutor de reintentos aplica al siguiente intento sin recrear nada.
    """

    def __init__(
        self,
        session: CrmSession,
        *,
        base_url: str = settings.CRM_API_BASE_URL,
        timeout_s: float = settings.CRM_HTTP_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "CrmClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def search(self, object_type: str, body: Dict[str, Any]) -> SearchPage:
        """Ejecuta una pagina de busqueda sobre `object_type`."""
        payload = await self._request_json(
            "POST", f"/crm/v3/objects/{object_type}/search", json=body
        )
        return self._parse(SearchResponseSchema, payload, "busqueda").to_page()

    async def batch_read_associations(
        self, from_type: str, to_type: str, ids: Iterable[str]
    ) -> Dict[str, str]:
        """
        Resuelve, para cada id origen, su primer objeto asociado.

        Las entradas sin referencia "from" (o sin destinos) se ignoran.
        """
        inputs = [{"id": i} for i in ids]
        if not inputs:
            return {}

        payload = await self._request_json(
            "POST",
            f"/crm/v3/associations/{from_type}/{to_type}/batch/read",
            json={"inputs": inputs},
        )
        parsed = self._parse(AssociationBatchResponseSchema, payload, "asociaciones")

        associations: Dict[str, str] = {}
        for result in parsed.results:
            if result.from_ is None or not result.to:
                continue
            associations.setdefault(result.from_.id, result.to[0].id)
        return associations

    async def list_associations(
        self, object_type: str, object_id: str, to_type: str
    ) -> List[str]:
        """Ids de los objetos `to_type` asociados a un objeto."""
        payload = await self._request_json(
            "GET", f"/crm/v3/objects/{object_type}/{object_id}/associations/{to_type}"
        )
        parsed = self._parse(AssociationListResponseSchema, payload, "asociaciones")
        return [ref.id for ref in parsed.results]

    async def get_contact_email(self, contact_id: str) -> Optional[str]:
        """Email de un contacto, o None si no tiene."""
        payload = await self._request_json(
            "GET",
            f"/crm/v3/objects/contacts/{contact_id}",
            params={"properties": "email"},
        )
        properties = payload.get("properties") if isinstance(payload, dict) else None
        return self._parse(ContactEmailSchema, properties or {}, "contacto").email

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._session.current_token()}",
            "Content-Type": "application/json",
        }
        try:
            resp = await self._http.request(
                method, f"{self._base_url}{path}", json=json, params=params, headers=headers
            )
        except httpx.HTTPError as e:
            raise TransientError(f"Error de red contra el CRM ({method} {path}): {e}") from e

        raise_for_crm_status(resp)

        try:
            return resp.json()
        except ValueError as e:
            raise TransientError(
                f"El CRM devolvio un cuerpo no JSON en {path}", status=resp.status_code
            ) from e

    @staticmethod
    def _parse(schema, payload: Any, what: str):
        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"[crm-client] Respuesta de {what} con formato inesperado: {e}")
            raise MalformedResponseError(f"Respuesta de {what} con formato inesperado") from e


class CrmAuthClient:
    """Grant OAuth refresh_token con las credenciales de la app."""

    def __init__(
        self,
        *,
        client_id: str = settings.CRM_CLIENT_ID,
        client_secret: str = settings.CRM_CLIENT_SECRET,
        base_url: str = settings.CRM_API_BASE_URL,
        timeout_s: float = settings.CRM_HTTP_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def refresh_access_token(self, refresh_token: str) -> TokenResponseSchema:
        """
        Canjea el refresh token por un access token nuevo.

        Raises:
            AuthError: ante cualquier fallo (red, status no-2xx, payload invalido)
        """
        if not refresh_token:
            raise AuthError("La cuenta no tiene refresh token")

        form = {
            "grant_type": "refresh_token",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "refresh_token": refresh_token,
        }
        try:
            resp = await self._http.post(f"{self._base_url}/oauth/v1/token", data=form)
        except httpx.HTTPError as e:
            raise AuthError(f"Error de red refrescando token: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise AuthError(f"Refresh de token rechazado ({resp.status_code}): {resp.text[:500]}")

        try:
            return TokenResponseSchema.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise AuthError("Respuesta de refresh de token invalida") from e
