"""
Manejadores de eventos de inicio y cierre de la aplicacion.

`lifespan` los encadena para pasarlos a FastAPI(lifespan=...).
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from clinical_sync.core.config import settings
from clinical_sync.infrastructure.database.session import init_db, close_db
from clinical_sync.shared.utils.audit_logger import AuditLogger


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
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            _validate_config()

            # Crea tablas si no existen (en produccion manda Alembic)
            await init_db()
            logger.info("Base de datos inicializada")

            AuditLogger.initialize()
            logger.info("Sistema de auditoria de sync inicializado")

            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            logger.success("Aplicacion iniciada correctamente")

            _print_available_urls()

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.DRCHRONO_ACCESS_TOKEN:
        warnings.append("DRCHRONO_ACCESS_TOKEN no configurado - los sync van a fallar")

    if settings.DRCHRONO_PAGE_DELAY_S <= 0:
        warnings.append("DRCHRONO_PAGE_DELAY_S en 0 - riesgo de rate limit en DrChrono")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Sync:        {base_url}/api/v1/sync/drchrono</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Corridas:    {base_url}/api/v1/sync/runs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")


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
    """
    Ciclo de vida de la aplicacion: startup al entrar, shutdown al salir.

    Args:
        app: Instancia de FastAPI
    """
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()
