"""
CLI: DrChrono -> base local (one-way sync).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer), p.ej. cada hora.
  - Mismo orquestador que POST /api/v1/sync/drchrono.

Variables de entorno requeridas:
  - DRCHRONO_ACCESS_TOKEN
  - DATABASE_URL (o DATABASE_HOST/PORT/USER/PASSWORD/NAME)

Ejecución:
  python scripts/run_drchrono_sync.py
  python scripts/run_drchrono_sync.py --entities patients,medications
  python scripts/run_drchrono_sync.py --incremental-hours 2
  python scripts/run_drchrono_sync.py --time-budget 270
  python scripts/run_drchrono_sync.py --since 2026-01-01T00:00:00Z --scope 123456

Códigos de salida: 0 completed, 1 failed, 2 ya había una corrida en curso.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

# Cargar .env antes de importar settings
load_dotenv(_ROOT / ".env", override=False)

from clinical_sync.application.dto.sync_dto import SyncRequestDTO
from clinical_sync.application.use_cases.sync_use_cases import DrChronoSyncUseCases
from clinical_sync.core.config import settings
from clinical_sync.infrastructure.database.session import AsyncSessionLocal, close_db, init_db
from clinical_sync.infrastructure.external.drchrono import build_drchrono_client
from clinical_sync.shared.exceptions.base import AppException
from clinical_sync.shared.exceptions.sync import SyncAlreadyRunningException


def _parse_entities(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    return [name.strip() for name in raw.split(",") if name.strip()]


async def _run(request: SyncRequestDTO, create_tables: bool, time_budget_s: int | None) -> dict:
    if create_tables:
        await init_db()

    client = build_drchrono_client(settings)
    try:
        async with AsyncSessionLocal() as session:
            use_cases = DrChronoSyncUseCases(session, client, time_budget_s=time_budget_s)
            report = await use_cases.run(request)
    finally:
        await close_db()

    return report.model_dump()


def main() -> int:
    parser = argparse.ArgumentParser(description="Sincroniza DrChrono con la base local.")
    parser.add_argument(
        "--entities",
        default=None,
        help="Lista separada por comas (default: todas). Acepta alias: visits, labs, communications, payments.",
    )
    parser.add_argument(
        "--scope",
        default=None,
        help="ID DrChrono del medico para acotar los listados.",
    )
    parser.add_argument(
        "--since",
        default=None,
        help="Solo registros modificados desde esta fecha (ISO 8601).",
    )
    parser.add_argument(
        "--incremental-hours",
        type=int,
        default=None,
        help="Atajo para --since: ahora menos N horas.",
    )
    parser.add_argument(
        "--time-budget",
        type=int,
        default=None,
        help="Segundos maximos de la corrida; las entidades restantes quedan en cero "
             "(default: SYNC_TIME_BUDGET_S).",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Crea las tablas si no existen (entornos sin Alembic).",
    )
    args = parser.parse_args()

    try:
        request = SyncRequestDTO(
            entities=_parse_entities(args.entities),
            scope=args.scope,
            since=args.since,
            incremental_hours=args.incremental_hours,
        )
    except ValueError as e:
        raise SystemExit(f"Parametros invalidos: {e}")

    try:
        report = asyncio.run(_run(request, args.create_tables, args.time_budget))
    except SyncAlreadyRunningException as e:
        logger.warning(e.message)
        return 2
    except AppException as e:
        raise SystemExit(f"{e.error_code}: {e.message}")

    print(json.dumps(report, indent=2, ensure_ascii=False, default=str))
    return 0 if report["status"] == "completed" else 1


if __name__ == "__main__":
    raise SystemExit(main())
