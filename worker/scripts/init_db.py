"""
Script para inicializar la base de datos (crea la tabla crm_accounts).

En produccion preferir `alembic upgrade head`.
"""
import asyncio
import sys
from pathlib import Path

from loguru import logger

_WORKER_ROOT = Path(__file__).resolve().parents[1]
if str(_WORKER_ROOT) not in sys.path:
    sys.path.insert(0, str(_WORKER_ROOT))

from crm_sync.infrastructure.database.session import init_db, close_db


async def main():
    """Funcion principal para inicializar la base de datos."""
    logger.info("Inicializando base de datos...")

    try:
        await init_db()
        logger.success("Base de datos inicializada correctamente")
    except Exception as e:
        logger.error(f"Error al inicializar base de datos: {e}")
        raise
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
