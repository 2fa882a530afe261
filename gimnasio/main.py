"""
Gimnasio - Servicio de contratos.

Inicializa la base de datos y corre el scheduler de vencimientos hasta
recibir una interrupción.
"""

import asyncio
import logging
import signal

from gimnasio.config import get_settings

# Configurar logging
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def run() -> None:
    """Lifecycle del servicio."""
    logger.info("=" * 50)
    logger.info(f"Iniciando Gimnasio ({settings.app_env})")
    logger.info("=" * 50)

    # ==================== STARTUP ====================

    logger.info("Inicializando base de datos...")
    from gimnasio.db.database import check_db_connection, close_db, init_db
    await init_db()
    if not await check_db_connection():
        logger.error("No se pudo conectar a la base de datos")
        await close_db()
        return

    logger.info("Inicializando scheduler...")
    from gimnasio.scheduler.setup import setup_scheduler, shutdown_scheduler
    await setup_scheduler()

    # Primer barrido al arrancar para no esperar al intervalo
    from gimnasio.scheduler.jobs.contract_expiry import contract_expiry_job
    await contract_expiry_job()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: se detiene con KeyboardInterrupt
            pass

    logger.info("Gimnasio listo")

    try:
        await stop.wait()
    finally:
        # ==================== SHUTDOWN ====================
        logger.info("Deteniendo Gimnasio...")
        await shutdown_scheduler()
        await close_db()
        logger.info("Gimnasio detenido.")


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrumpido por el usuario")


if __name__ == "__main__":
    main()
