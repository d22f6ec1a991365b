"""
Manejadores de eventos de inicio y cierre, y configuracion de logging.
"""
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from crm_sync.core.config import settings
from crm_sync.infrastructure.database.session import init_db, close_db


def setup_logging(log_file: str = settings.LOG_FILE) -> None:
    """
    Configura loguru: stderr con el nivel de settings y archivo rotado.

    Se usa tanto desde la API como desde el CLI de cron.
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)
    if log_file:
        logger.add(
            log_file,
            rotation="500 MB",
            retention="10 days",
            level=settings.LOG_LEVEL
        )


def validate_config() -> None:
    """Advierte sobre configuracion critica ausente (no aborta el arranque)."""
    warnings = []

    if not settings.CRM_CLIENT_ID or not settings.CRM_CLIENT_SECRET:
        warnings.append("CRM_CLIENT_ID/CRM_CLIENT_SECRET no configurados - el refresh de tokens fallara")
    if not settings.SINK_URL:
        warnings.append("SINK_URL no configurada - las acciones no se podran entregar")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            setup_logging()
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            validate_config()

            # Inicializar base de datos (crea tablas si no existen)
            await init_db()
            logger.info("Base de datos inicializada")

            logger.success("Aplicacion iniciada correctamente")

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        await close_db()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Ciclo de vida de la aplicacion: startup antes de servir, shutdown al salir."""
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()
