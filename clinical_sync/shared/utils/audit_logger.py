"""
AuditLogger - logs de auditoria de las corridas de sincronizacion.

Proporciona funciones simples para registrar:
- Sync: log diario con una linea por corrida
- Run: un archivo por corrida con el detalle completo (entidades y errores)
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger


class AuditLogger:
    """
    Gestor de logs de auditoria de sincronizacion.

    Crea y mantiene logs separados para:
    - sync_logs/: log general por dia
    - run_logs/: un log por cada corrida

    Uso:
        AuditLogger.open_run(run_id, ["patients", "medications"])
        AuditLogger.log_entity_result(run_id, "patients", {"fetched": 3, ...})
        AuditLogger.log_error(run_id, {"entity": "patients", "message": "..."})
        AuditLogger.close_run(run_id, "completed", 1234)
    """

    BASE_LOG_DIR = Path("logs")

    FILE_TIMESTAMP_FORMAT = "%Y-%m-%d"
    LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {message}"

    # Logger y handler de archivo por corrida
    _run_loggers: Dict[int, Any] = {}
    _run_handlers: Dict[int, int] = {}
    _initialized: bool = False

    @classmethod
    def sync_log_dir(cls) -> Path:
        return cls.BASE_LOG_DIR / "sync_logs"

    @classmethod
    def run_log_dir(cls) -> Path:
        return cls.BASE_LOG_DIR / "run_logs"

    @classmethod
    def initialize(cls) -> None:
        """
        Inicializa las carpetas de logs.
        Debe llamarse al inicio de la aplicacion (o lo hace la primera corrida).
        """
        if cls._initialized:
            return

        cls.sync_log_dir().mkdir(parents=True, exist_ok=True)
        cls.run_log_dir().mkdir(parents=True, exist_ok=True)

        today = datetime.now().strftime(cls.FILE_TIMESTAMP_FORMAT)
        logger.add(
            str(cls.sync_log_dir() / f"sync_{today}.log"),
            format=cls.LOG_FORMAT,
            filter=lambda record: record["extra"].get("context") == "sync",
            rotation="1 day",
            retention="30 days",
            level="DEBUG"
        )

        cls._initialized = True
        logger.info("AuditLogger inicializado")

    @classmethod
    def open_run(cls, run_id: int, entities: List[str], mode: str = "full") -> None:
        """Crea el archivo de log de la corrida e imprime el banner inicial."""
        if not cls._initialized:
            cls.initialize()

        if run_id in cls._run_loggers:
            return

        stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        log_file = cls.run_log_dir() / f"run_{run_id}_{stamp}.log"

        run_logger = logger.bind(sync_run_id=run_id)
        handler_id = logger.add(
            str(log_file),
            format=cls.LOG_FORMAT,
            filter=lambda record, rid=run_id: record["extra"].get("sync_run_id") == rid,
            level="DEBUG"
        )

        cls._run_loggers[run_id] = run_logger
        cls._run_handlers[run_id] = handler_id

        run_logger.info("=" * 60)
        run_logger.info("SYNC INICIADO")
        run_logger.info(f"Run ID: {run_id}")
        run_logger.info(f"Modo: {mode}")
        run_logger.info(f"Entidades: {', '.join(entities)}")
        run_logger.info(f"Timestamp: {datetime.now().isoformat()}")
        run_logger.info("=" * 60)

        logger.bind(context="sync").info(f"[run {run_id}] INICIO {mode} {entities}")

    @classmethod
    def log_entity_result(cls, run_id: int, entity: str, counts: Dict[str, int]) -> None:
        if run_id not in cls._run_loggers:
            return
        line = (
            f"ENTIDAD {entity}: "
            f"fetched={counts.get('fetched', 0)} created={counts.get('created', 0)} "
            f"updated={counts.get('updated', 0)} errored={counts.get('errored', 0)}"
        )
        if "elapsed_ms" in counts:
            line += f" ({counts['elapsed_ms']} ms)"
        cls._run_loggers[run_id].info(line)

    @classmethod
    def log_error(cls, run_id: int, entry: Dict[str, Any]) -> None:
        """
        Registra una entrada de error de la corrida.

        Si la corrida no tiene log propio va al log diario.
        """
        if run_id not in cls._run_loggers:
            logger.bind(context="sync").error(f"[run {run_id}] ERROR {json.dumps(entry, default=str)}")
            return
        cls._run_loggers[run_id].warning(f"ERROR {json.dumps(entry, default=str)}")

    @classmethod
    def close_run(cls, run_id: int, status: str, duration_ms: Optional[int] = None) -> None:
        """Imprime el banner final y suelta el handler del archivo de la corrida."""
        run_logger = cls._run_loggers.pop(run_id, None)
        handler_id = cls._run_handlers.pop(run_id, None)

        if run_logger is not None:
            run_logger.info("=" * 60)
            run_logger.info(f"SYNC FINALIZADO: {status}")
            if duration_ms is not None:
                run_logger.info(f"Duracion: {duration_ms} ms")
            run_logger.info(f"Timestamp: {datetime.now().isoformat()}")
            run_logger.info("=" * 60)

        if handler_id is not None:
            logger.remove(handler_id)

        logger.bind(context="sync").info(f"[run {run_id}] FIN {status} ({duration_ms} ms)")


