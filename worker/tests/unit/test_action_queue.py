"""
Tests unitarios para ActionQueue.

Toda accion encolada se entrega exactamente en un lote (overflow o drain).
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import List

import pytest

from crm_sync.application.services.action_queue import ActionQueue
from crm_sync.domain.entities.action import Action
from crm_sync.shared.constants.sync_constants import EntityType
from crm_sync.shared.exceptions.sync import SinkDeliveryError


def _action(i: int) -> Action:
    return Action(
        entity_type=EntityType.PERSON,
        created=True,
        action_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        identity=f"user{i}@example.com",
    )


class RecordingSink:
    """Sink en memoria que registra cada lote recibido."""

    def __init__(self, fail_on_batch: int = -1, delay: float = 0.0) -> None:
        self.batches: List[List[Action]] = []
        self.fail_on_batch = fail_on_batch
        self.delay = delay
        self._calls = 0

    async def deliver(self, actions) -> int:
        call = self._calls
        self._calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if call == self.fail_on_batch:
            raise SinkDeliveryError("sink caido", failed_actions=len(actions))
        self.batches.append(list(actions))
        return len(actions)


class TestActionQueue:
    """Tests para ActionQueue."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count, expected_batches", [(0, 0), (2000, 1), (2001, 1), (4500, 3)])
    async def test_every_pushed_action_is_delivered_once(self, count, expected_batches) -> None:
        sink = RecordingSink()
        queue = ActionQueue(sink.deliver, flush_threshold=2000)

        for i in range(count):
            queue.push(_action(i))
        delivered = await queue.drain()

        assert delivered == count
        assert sum(len(b) for b in sink.batches) == count
        assert len(sink.batches) == expected_batches
        identities = [a.identity for batch in sink.batches for a in batch]
        assert len(set(identities)) == count

    @pytest.mark.asyncio
    async def test_exactly_threshold_waits_for_drain(self) -> None:
        """2000 acciones no superan el umbral: nada sale antes del drain."""
        sink = RecordingSink()
        queue = ActionQueue(sink.deliver, flush_threshold=2000)

        for i in range(2000):
            queue.push(_action(i))
        await asyncio.sleep(0)

        assert sink.batches == []
        assert queue.inflight == 0
        await queue.drain()
        assert len(sink.batches[0]) == 2000

    @pytest.mark.asyncio
    async def test_overflow_flush_does_not_block_push(self) -> None:
        sink = RecordingSink(delay=0.01)
        queue = ActionQueue(sink.deliver, flush_threshold=3)

        for i in range(4):
            queue.push(_action(i))

        assert queue.inflight == 1
        assert len(queue) == 0
        await queue.drain()
        assert queue.inflight == 0

    @pytest.mark.asyncio
    async def test_order_is_preserved_within_batch(self) -> None:
        sink = RecordingSink()
        queue = ActionQueue(sink.deliver, flush_threshold=10)

        for i in range(5):
            queue.push(_action(i))
        await queue.drain()

        assert [a.identity for a in sink.batches[0]] == [f"user{i}@example.com" for i in range(5)]

    @pytest.mark.asyncio
    async def test_failed_overflow_flush_surfaces_on_drain(self) -> None:
        """Un fallo del flush en background no se pierde: drain lo reporta."""
        sink = RecordingSink(fail_on_batch=0)
        queue = ActionQueue(sink.deliver, flush_threshold=3)

        for i in range(5):
            queue.push(_action(i))

        with pytest.raises(SinkDeliveryError) as exc_info:
            await queue.drain()

        assert exc_info.value.failed_batches == 1
        assert exc_info.value.failed_actions == 4
        # El remanente igual se entrego
        assert sum(len(b) for b in sink.batches) == 1

    @pytest.mark.asyncio
    async def test_failed_final_batch_surfaces_on_drain(self) -> None:
        sink = RecordingSink(fail_on_batch=0)
        queue = ActionQueue(sink.deliver, flush_threshold=10)
        queue.push(_action(1))

        with pytest.raises(SinkDeliveryError):
            await queue.drain()

        assert queue.delivered == 0
