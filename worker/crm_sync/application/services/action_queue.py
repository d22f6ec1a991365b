"""
Buffer de acciones hacia el sink.

- push(): agrega al buffer. Si el buffer supera el umbral, se toma un snapshot,
  se vacia el buffer y se lanza la entrega como task de asyncio SIN esperarla,
  para no frenar la paginacion por la latencia del sink.
- drain(): unico punto de union. Espera las entregas en vuelo y entrega lo que
  quedo en el buffer.

Cada accion termina en exactamente un lote (overflow o drain). Las tasks se
retienen en la cola, asi ningun fallo de entrega queda sin observar: se loguea
al terminar y drain() lo reporta con SinkDeliveryError.

Limitacion conocida: no hay backpressure. Si el sink es lento, las entregas en
vuelo se acumulan hasta el drain.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Awaitable, Callable, List, Sequence, Set

from loguru import logger

from crm_sync.core.config import settings
from crm_sync.domain.entities.action import Action
from crm_sync.shared.exceptions.sync import SinkDeliveryError

DeliverBatch = Callable[[Sequence[Action]], Awaitable[object]]


class ActionQueue:
    """Cola en memoria con flush automatico por overflow."""

    def __init__(
        self,
        deliver: DeliverBatch,
        *,
        flush_threshold: int = settings.QUEUE_FLUSH_THRESHOLD,
        label: str = "",
    ) -> None:
        self._deliver = deliver
        self._flush_threshold = flush_threshold
        self._label = label
        self._buffer: List[Action] = []
        self._inflight: Set[asyncio.Task] = set()
        self._failures: List[BaseException] = []
        self._failed_actions = 0
        self.pushed = 0
        self.delivered = 0
        self.batches = 0

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def push(self, action: Action) -> None:
        """
        Encola una accion. Debe llamarse dentro de un event loop corriendo.

        No espera la entrega disparada por overflow.
        """
        self._buffer.append(action)
        self.pushed += 1

        if len(self._buffer) > self._flush_threshold:
            batch = list(self._buffer)
            self._buffer.clear()
            logger.info(
                f"[action-queue]{self._prefix()} Overflow: enviando {len(batch)} acciones al sink"
            )
            task = asyncio.get_running_loop().create_task(self._deliver_batch(batch))
            self._inflight.add(task)
            task.add_done_callback(partial(self._on_flush_done, size=len(batch)))

    async def drain(self) -> int:
        """
        Espera las entregas en vuelo y entrega el remanente del buffer.

        Returns:
            int: total de acciones entregadas por esta cola

        Raises:
            SinkDeliveryError: si algun lote (overflow o final) no se entrego
        """
        if self._inflight:
            logger.info(
                f"[action-queue]{self._prefix()} Esperando {len(self._inflight)} entregas en vuelo"
            )
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

        if self._buffer:
            batch = list(self._buffer)
            self._buffer.clear()
            try:
                await self._deliver_batch(batch)
            except Exception as e:
                self._record_failure(e, len(batch))

        if self._failures:
            raise SinkDeliveryError(
                f"{len(self._failures)} lote(s) de acciones no se entregaron al sink",
                failed_batches=len(self._failures),
                failed_actions=self._failed_actions,
            ) from self._failures[0]

        return self.delivered

    async def _deliver_batch(self, batch: List[Action]) -> None:
        await self._deliver(batch)
        self.delivered += len(batch)
        self.batches += 1

    def _on_flush_done(self, task: asyncio.Task, *, size: int) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            self._record_failure(asyncio.CancelledError(), size)
            return
        exc = task.exception()
        if exc is not None:
            self._record_failure(exc, size)

    def _record_failure(self, exc: BaseException, size: int) -> None:
        self._failures.append(exc)
        self._failed_actions += size
        logger.error(
            f"[action-queue]{self._prefix()} Fallo la entrega de {size} acciones al sink: {exc}"
        )

    def _prefix(self) -> str:
        return f"[{self._label}]" if self._label else ""
