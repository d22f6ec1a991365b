"""
Configuracion de fixtures para pytest.
"""
import os

# Los modulos crean el engine al importarse: apuntarlo a SQLite antes de importar.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from crm_sync.infrastructure.database.session import Base
from crm_sync.infrastructure.database import models  # noqa: F401
from crm_sync.domain.entities.account import Account


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def db_engine():
    """Engine SQLite en memoria con las tablas creadas."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def db_session_factory(db_engine):
    """Session factory sobre el engine de prueba (misma conexion en memoria)."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(db_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture que proporciona una sesion de base de datos para tests.
    Crea una base de datos en memoria para cada test.
    """
    async with db_session_factory() as session:
        yield session


@pytest.fixture
def account() -> Account:
    """Cuenta con checkpoint propio solo para people."""
    return Account(
        id="acct-1",
        access_token="old-token",
        refresh_token="refresh-1",
        last_pulled_dates={"people": datetime(2024, 1, 1, tzinfo=timezone.utc)},
    )
