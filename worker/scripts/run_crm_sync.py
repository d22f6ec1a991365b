"""
CLI: sincronizacion incremental CRM -> sink (una corrida y termina).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) cada N minutos.
  - No pasa por la API: evita timeouts de proxies en corridas largas.

Variables de entorno requeridas:
  - DATABASE_URL (o DATABASE_HOST/PORT/USER/PASSWORD/NAME)
  - CRM_CLIENT_ID, CRM_CLIENT_SECRET
  - SINK_URL (y SINK_API_KEY si el sink lo exige)

Ejecucion:
  python scripts/run_crm_sync.py
  python scripts/run_crm_sync.py --account 12345 --account 67890
  python scripts/run_crm_sync.py --full-sync

Codigo de salida: 0 si todas las cuentas terminaron OK, 1 si alguna tuvo errores.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "worker" contiene el paquete raiz `crm_sync/`.
_WORKER_ROOT = Path(__file__).resolve().parents[1]
if str(_WORKER_ROOT) not in sys.path:
    sys.path.insert(0, str(_WORKER_ROOT))

# Cargar variables desde worker/.env o desde la raiz del repo si existen.
load_dotenv(_WORKER_ROOT / ".env", override=False)
load_dotenv(_WORKER_ROOT.parent / ".env", override=False)

from crm_sync.application.use_cases.crm_sync_use_cases import CrmSyncUseCases
from crm_sync.core.events import setup_logging, validate_config
from crm_sync.infrastructure.database.session import close_db


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincroniza cuentas CRM hacia el sink de analitica.")
    parser.add_argument(
        "--account",
        dest="accounts",
        action="append",
        default=None,
        help="Id de cuenta a sincronizar (repetible). Default: todas las activas.",
    )
    parser.add_argument(
        "--full-sync",
        action="store_true",
        help="Borra los checkpoints antes de correr (re-sincroniza todo el historial).",
    )
    return parser


async def run(accounts, full_sync: bool) -> int:
    try:
        reports = await CrmSyncUseCases().pull_data(accounts, full_sync=full_sync)
    finally:
        await close_db()

    for report in reports:
        for entity in report.entities:
            logger.info(
                f"  {report.account_id} / {entity.entity_type.value}: {entity.status.value} "
                f"(paginas={entity.pages}, acciones={entity.actions}, rebases={entity.rebases})"
                + (f" error={entity.error}" if entity.error else "")
            )
        if report.error:
            logger.error(f"  {report.account_id}: {report.error}")

    return 0 if all(r.success for r in reports) else 1


def main() -> int:
    args = build_parser().parse_args()
    setup_logging()
    validate_config()

    logger.info("Iniciando CRM -> sink sync...")
    return asyncio.run(run(args.accounts, args.full_sync))


if __name__ == "__main__":
    raise SystemExit(main())
