"""
Cursor de paginacion sobre una ventana de tiempo.

El API de busqueda pagina por offset (`after`) pero rechaza offsets >= 10.000,
sin importar cuantos registros cumplan el filtro. Al acercarse al techo el
cursor hace "rebase": vuelve el offset a cero y mueve el inicio de la ventana
al instante de modificacion del ultimo registro visto. Como los resultados van
ordenados ascendente por ese campo, la nueva ventana continua donde quedo la
anterior (el borde se re-lee, lo cual es seguro: el sink tolera duplicados).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from crm_sync.domain.entities.record import Record
from crm_sync.shared.constants.sync_constants import (
    DEFAULT_OFFSET_CEILING,
    DEFAULT_PAGE_SIZE,
)
from crm_sync.shared.exceptions.sync import SyncAbortedError
from crm_sync.shared.utils.datetime_utils import ensure_utc, to_epoch_ms


def build_date_filter_group(
    date_property: str, window_start: Optional[datetime], window_end: datetime
) -> Dict[str, Any]:
    """
    Filtro `[window_start, window_end]` sobre `date_property`, en epoch ms.

    Sin inicio de ventana (primera corrida sin checkpoint) solo se acota el fin.
    """
    filters: List[Dict[str, Any]] = []
    if window_start is not None:
        filters.append(
            {"propertyName": date_property, "operator": "GTE", "value": str(to_epoch_ms(window_start))}
        )
    filters.append(
        {"propertyName": date_property, "operator": "LTE", "value": str(to_epoch_ms(window_end))}
    )
    return {"filters": filters}


class PaginationCursor:
    """Offset y baseline de la travesia de un tipo de entidad."""

    def __init__(
        self,
        checkpoint: Optional[datetime],
        run_start: datetime,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        offset_ceiling: int = DEFAULT_OFFSET_CEILING,
    ) -> None:
        self.checkpoint = ensure_utc(checkpoint) if checkpoint else None
        self.run_start = ensure_utc(run_start)
        self.page_size = page_size
        self.offset_ceiling = offset_ceiling
        self.offset: Optional[int] = None
        self.baseline: Optional[datetime] = None
        self.rebases = 0
        self._finished = False

    @property
    def window_start(self) -> Optional[datetime]:
        return self.baseline or self.checkpoint

    def has_more(self) -> bool:
        return not self._finished

    def next_request(self, date_property: str, properties: List[str]) -> Dict[str, Any]:
        """Cuerpo de la siguiente busqueda (orden ascendente por `date_property`)."""
        body: Dict[str, Any] = {
            "filterGroups": [
                build_date_filter_group(date_property, self.window_start, self.run_start)
            ],
            "sorts": [{"propertyName": date_property, "direction": "ASCENDING"}],
            "properties": list(properties),
            "limit": self.page_size,
        }
        if self.offset:
            body["after"] = str(self.offset)
        return body

    def advance(self, next_after: Optional[str], last_record: Optional[Record]) -> bool:
        """
        Avanza con el token de la respuesta.

        Returns:
            bool: True si hay que pedir otra pagina.

        Raises:
            SyncAbortedError: si un rebase no lograria mover la ventana.
        """
        if last_record is None:
            self._finish()
            return False

        offset = self._parse_after(next_after)
        if not offset or offset < 0:
            self._finish()
            return False

        if offset >= self.offset_ceiling:
            new_baseline = ensure_utc(last_record.updated_at)
            current_start = self.window_start
            if current_start is not None and new_baseline <= current_start:
                raise SyncAbortedError(
                    f"La paginacion no avanza: mas de {self.offset_ceiling} registros "
                    f"con fecha de modificacion {new_baseline.isoformat()}",
                    operation="pagination_rebase",
                )
            logger.info(
                f"[crm-pagination] Offset {offset} alcanza el techo ({self.offset_ceiling}); "
                f"rebase de ventana a {new_baseline.isoformat()}"
            )
            self.offset = None
            self.baseline = new_baseline
            self.rebases += 1
            return True

        self.offset = offset
        return True

    def _finish(self) -> None:
        self._finished = True
        self.offset = None

    @staticmethod
    def _parse_after(next_after: Optional[str]) -> Optional[int]:
        if next_after is None or next_after == "":
            return None
        try:
            return int(next_after)
        except (TypeError, ValueError):
            logger.warning(f"[crm-pagination] Token de pagina no numerico ignorado: {next_after!r}")
            return None
