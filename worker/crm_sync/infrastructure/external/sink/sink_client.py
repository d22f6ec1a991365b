"""
Cliente para entregar lotes de acciones al sink de analitica.
"""
from typing import List, Optional, Sequence

import httpx
from loguru import logger

from crm_sync.core.config import settings
from crm_sync.domain.entities.action import Action
from crm_sync.shared.exceptions.sync import SinkDeliveryError


class SinkClient:
    """
    Entrega lotes ordenados de acciones via HTTP POST.

    El sink tolera duplicados entre corridas (contrato at-least-once).
    """

    def __init__(
        self,
        url: str = settings.SINK_URL,
        api_key: str = settings.SINK_API_KEY,
        *,
        timeout_s: float = settings.SINK_HTTP_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def deliver(self, actions: Sequence[Action]) -> int:
        """
        Envia un lote de acciones.

        Args:
            actions: acciones en orden de push

        Returns:
            int: cantidad de acciones entregadas

        Raises:
            SinkDeliveryError: si el sink no esta configurado o rechaza el lote
        """
        if not actions:
            return 0
        if not self.url:
            raise SinkDeliveryError(
                "SINK_URL no configurada; no se pueden entregar acciones",
                failed_actions=len(actions),
            )

        payload: List[dict] = [a.to_payload() for a in actions]
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        try:
            response = await self._http.post(self.url, json={"actions": payload}, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[sink] Error al entregar lote de {len(actions)} acciones: {e}")
            raise SinkDeliveryError(
                f"El sink rechazo el lote: {e}", failed_actions=len(actions)
            ) from e

        logger.info(f"[sink] Lote entregado: {len(actions)} acciones")
        return len(actions)
