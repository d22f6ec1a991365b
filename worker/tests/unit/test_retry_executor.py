"""
Tests unitarios para RetryExecutor.

Cubre la politica por tipo de fallo: 429 sin consumir intentos, 401 con
refresh, transitorios con backoff exponencial y aborto al agotar intentos.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from crm_sync.domain.entities.account import Account
from crm_sync.infrastructure.external.crm.retry import RetryExecutor
from crm_sync.shared.exceptions.sync import (
    AuthError,
    MalformedResponseError,
    RateLimitedError,
    SyncAbortedError,
    TransientError,
    UnauthorizedError,
)


@pytest.fixture
def account() -> Account:
    return Account(id="acct-1", refresh_token="r-1")


@pytest.fixture
def session() -> MagicMock:
    """Sesion vigente (no expirada) con refresh mockeado."""
    session = MagicMock()
    session.is_expired = MagicMock(return_value=False)
    session.refresh = AsyncMock(return_value="fresh-token")
    return session


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def executor(session, sleep) -> RetryExecutor:
    return RetryExecutor(
        session,
        max_attempts=5,
        backoff_base_s=5,
        rate_limit_default_wait_s=5,
        max_rate_limit_waits=3,
        sleep=sleep,
    )


class TestRetryExecutor:
    """Tests para RetryExecutor.execute."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self, executor, account, session, sleep) -> None:
        call = AsyncMock(return_value="page")

        result = await executor.execute(call, account, label="organizations")

        assert result == "page"
        call.assert_awaited_once()
        session.refresh.assert_not_awaited()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_session_is_refreshed_before_first_attempt(
        self, executor, account, session
    ) -> None:
        """Refresh proactivo si la sesion ya expiro."""
        session.is_expired.return_value = True
        call = AsyncMock(return_value="page")

        await executor.execute(call, account)

        session.refresh.assert_awaited_once_with(account)
        call.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unauthorized_then_success_refreshes_once(
        self, executor, account, session
    ) -> None:
        """Un 401 seguido de exito: un refresh, un reintento, sin aborto."""
        call = AsyncMock(side_effect=[UnauthorizedError(), "page"])

        result = await executor.execute(call, account, label="people")

        assert result == "page"
        assert call.await_count == 2
        session.refresh.assert_awaited_once_with(account)

    @pytest.mark.asyncio
    async def test_five_transient_failures_abort(self, executor, account, sleep) -> None:
        """Cinco fallos transitorios seguidos agotan el presupuesto."""
        call = AsyncMock(side_effect=TransientError("boom", status=500))

        with pytest.raises(SyncAbortedError) as exc_info:
            await executor.execute(call, account, label="meetings")

        assert call.await_count == 5
        assert str(exc_info.value) == "failed to fetch meetings after 5 attempts"
        assert exc_info.value.account_id == "acct-1"
        assert exc_info.value.operation == "meetings"

    @pytest.mark.asyncio
    async def test_malformed_response_aborts_without_retrying(self, executor, account, sleep) -> None:
        call = AsyncMock(side_effect=MalformedResponseError("Respuesta de busqueda con formato inesperado"))

        with pytest.raises(SyncAbortedError) as exc_info:
            await executor.execute(call, account, label="people")

        assert call.await_count == 1
        sleep.assert_not_awaited()
        assert exc_info.value.operation == "people"

    @pytest.mark.asyncio
    async def test_transient_backoff_is_exponential(self, executor, account, sleep) -> None:
        call = AsyncMock(
            side_effect=[TransientError("a"), TransientError("b"), TransientError("c"), "ok"]
        )

        result = await executor.execute(call, account)

        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [5, 10, 20]

    @pytest.mark.asyncio
    async def test_rate_limit_does_not_consume_attempts(self, executor, account, sleep) -> None:
        """Cuatro fallos transitorios + 429 intercalados no llegan al aborto."""
        call = AsyncMock(
            side_effect=[
                TransientError("a"),
                RateLimitedError(retry_after=2),
                TransientError("b"),
                RateLimitedError(),
                TransientError("c"),
                TransientError("d"),
                "ok",
            ]
        )

        result = await executor.execute(call, account)

        assert result == "ok"
        waits = [c.args[0] for c in sleep.await_args_list]
        # Retry-After explicito, luego el default de 5s
        assert 2 in waits
        assert waits.count(5) == 2

    @pytest.mark.asyncio
    async def test_persistent_rate_limit_aborts_after_wait_cap(
        self, executor, account, sleep
    ) -> None:
        call = AsyncMock(side_effect=RateLimitedError(retry_after=1))

        with pytest.raises(SyncAbortedError):
            await executor.execute(call, account, label="organizations")

        assert sleep.await_count == 3

    @pytest.mark.asyncio
    async def test_repeated_unauthorized_aborts(self, executor, account, session) -> None:
        call = AsyncMock(side_effect=UnauthorizedError())

        with pytest.raises(SyncAbortedError):
            await executor.execute(call, account)

        assert call.await_count == 5
        assert session.refresh.await_count == 4

    @pytest.mark.asyncio
    async def test_refresh_failure_propagates(self, executor, account, session) -> None:
        """AuthError del refresh no se reintenta ni se convierte."""
        session.refresh.side_effect = AuthError("invalid_grant", account_id="acct-1")
        call = AsyncMock(side_effect=UnauthorizedError())

        with pytest.raises(AuthError):
            await executor.execute(call, account)

        call.assert_awaited_once()

    def test_backoff_for(self, executor) -> None:
        assert executor.backoff_for(0) == 5
        assert executor.backoff_for(3) == 40
